#!/usr/bin/env python3
"""
Deployment patcher addon.

Applies cpu/memory requests, replica count and image pull policy to the
``deployment.yaml`` of generic components (am, idm, ig, the UIs ...).
"""

import sys
from pathlib import Path
from typing import Any, List

# Ensure scripts/ helpers are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from manifest_patch import patch_file, patch_workload  # noqa: E402


ADDON_META = {
    "name": "deployment_patch",
    "version": "1.0",
    "description": "Sizing and pull policy patches for Deployment components",
    "triggers": {"kinds": ["deployment"]},
    "priority": 20,
}


class DeploymentPatcher:
    """Patches a single component's Deployment manifest."""

    def __init__(self, entry: Any, record: Any, dry_run: bool = False):
        self.entry = entry
        self.dry_run = dry_run
        self.override = record.get(entry.key)
        self.pull_policy = record.pull_policy

    def patch(self) -> List[str]:
        if self.override is None and self.pull_policy is None:
            return []

        path = self.entry.resource_file
        changed = patch_file(
            path,
            lambda doc: patch_workload(doc, self.override, self.pull_policy),
            self.dry_run,
        )
        return [str(path)] if changed else []


# ------------------------------------------------------------------
# Main interface for addon loader
# ------------------------------------------------------------------


def main(entry: Any, record: Any, dry_run: bool = False) -> List[str]:
    """Patch ``entry`` with ``record``; returns the files that changed (or would)."""
    return DeploymentPatcher(entry, record, dry_run).patch()
