#!/usr/bin/env python3
"""
Directory-Service StatefulSet patcher addon.

Same mapping as the Deployment patcher, plus the DS init container and
the first volume claim template's storage request.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

# Ensure scripts/ helpers are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from manifest_patch import dig, merge_storage, patch_file, patch_workload  # noqa: E402


ADDON_META = {
    "name": "ds_statefulset_patch",
    "version": "1.0",
    "description": "Sizing, disk and pull policy patches for DS StatefulSets",
    "triggers": {"kinds": ["ds_statefulset"]},
    "priority": 20,
}


class StatefulSetPatcher:
    """Patches a DS component's ``sts.yaml``."""

    def __init__(self, entry: Any, record: Any, dry_run: bool = False):
        self.entry = entry
        self.dry_run = dry_run
        self.override = record.get(entry.key)
        self.pull_policy = record.pull_policy

    def _apply(self, doc: Dict[str, Any]) -> None:
        patch_workload(doc, self.override, self.pull_policy, include_init=True)

        if self.override is None or self.override.disk is None:
            return
        claim_spec = dig(doc, "spec", "volumeClaimTemplates", 0, "spec")
        if isinstance(claim_spec, dict):
            merge_storage(claim_spec, self.override.disk)

    def patch(self) -> List[str]:
        if self.override is None and self.pull_policy is None:
            return []
        path = self.entry.resource_file
        return [str(path)] if patch_file(path, self._apply, self.dry_run) else []


def main(entry: Any, record: Any, dry_run: bool = False) -> List[str]:
    return StatefulSetPatcher(entry, record, dry_run).patch()
