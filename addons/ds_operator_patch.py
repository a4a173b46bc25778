#!/usr/bin/env python3
"""
Directory-Service operator custom resource patcher addon.

The DirectoryService resource keeps resources and pull policy under
``spec.podTemplate`` and the volume claim at ``spec.volumeClaimSpec``.
Replica counts are managed by the operator and are left alone.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

# Ensure scripts/ helpers are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from manifest_patch import merge_resources, merge_storage, patch_file  # noqa: E402


ADDON_META = {
    "name": "ds_operator_patch",
    "version": "1.0",
    "description": "Sizing, disk and pull policy patches for DS operator resources",
    "triggers": {"kinds": ["ds_operator"]},
    "priority": 20,
}


class DirectoryServicePatcher:
    """Patches a DS component's ``directoryservice.yaml``."""

    def __init__(self, entry: Any, record: Any, dry_run: bool = False):
        self.entry = entry
        self.dry_run = dry_run
        self.override = record.get(entry.key)
        self.pull_policy = record.pull_policy

    def _apply(self, doc: Dict[str, Any]) -> None:
        spec = doc.get("spec")
        if not isinstance(spec, dict):
            return

        touches_pod = self.pull_policy is not None or (
            self.override is not None
            and (self.override.cpu is not None or self.override.memory is not None)
        )
        if touches_pod:
            pod_template = spec.setdefault("podTemplate", {})
            if self.override is not None:
                merge_resources(pod_template, self.override)
            if self.pull_policy is not None:
                pod_template["imagePullPolicy"] = self.pull_policy

        if self.override is not None and self.override.disk is not None:
            merge_storage(spec.setdefault("volumeClaimSpec", {}), self.override.disk)

    def patch(self) -> List[str]:
        if self.override is None and self.pull_policy is None:
            return []
        path = self.entry.resource_file
        return [str(path)] if patch_file(path, self._apply, self.dry_run) else []


def main(entry: Any, record: Any, dry_run: bool = False) -> List[str]:
    return DirectoryServicePatcher(entry, record, dry_run).patch()
