#!/usr/bin/env python3
"""
Helpers for patching Kubernetes manifests in place.

Used by the resource patchers in ``addons/``. Each helper works on an
already-loaded document and reports whether it changed anything.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from override_collector import ResourceOverride
from yaml_docs import load_yaml, write_yaml

logger = logging.getLogger(__name__)


def dig(doc: Any, *path: Any) -> Optional[Any]:
    """Follow mapping keys / list indexes, returning None when any step is missing."""
    node = doc
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
        elif not isinstance(node, dict) or step not in node:
            return None
        node = node[step]
    return node


def resources_patch(override: ResourceOverride) -> Dict[str, Dict[str, str]]:
    """Build the ``resources`` fragment for the supplied override fields."""
    patch: Dict[str, Dict[str, str]] = {}
    if override.cpu is not None:
        patch.setdefault("requests", {})["cpu"] = override.cpu
    if override.memory is not None:
        patch.setdefault("requests", {})["memory"] = override.memory
    if override.memory_limit is not None:
        patch.setdefault("limits", {})["memory"] = override.memory_limit
    return patch


def merge_resources(target: Dict[str, Any], override: ResourceOverride) -> None:
    """Merge requests/limits into ``target['resources']`` bucket by bucket."""
    patch = resources_patch(override)
    if not patch:
        return
    resources = target.get("resources")
    if not isinstance(resources, dict):
        resources = {}
        target["resources"] = resources
    for bucket, values in patch.items():
        existing = resources.get(bucket)
        if isinstance(existing, dict):
            existing.update(values)
        else:
            resources[bucket] = dict(values)


def merge_storage(claim_spec: Dict[str, Any], disk: str) -> None:
    """Set ``resources.requests.storage`` on a volume claim spec."""
    resources = claim_spec.get("resources")
    if not isinstance(resources, dict):
        resources = {}
        claim_spec["resources"] = resources
    requests = resources.get("requests")
    if not isinstance(requests, dict):
        requests = {}
        resources["requests"] = requests
    requests["storage"] = disk


def patch_file(path: Path, patcher: Callable[[Any], None], dry_run: bool = False) -> bool:
    """Load ``path``, apply ``patcher`` and write back if the document changed.

    Returns False without touching anything when the file does not exist.
    With ``dry_run`` the change is reported but not written.
    """
    if not path.is_file():
        logger.debug(f"Skipping {path}: not present")
        return False

    doc = load_yaml(path)
    if doc is None:
        logger.debug(f"Skipping {path}: empty document")
        return False

    before = copy.deepcopy(doc)
    patcher(doc)
    if doc == before:
        return False

    if dry_run:
        logger.info(f"Would patch {path}")
        return True

    write_yaml(path, doc)
    logger.info(f"Patched {path}")
    return True


def patch_workload(
    doc: Dict[str, Any],
    override: Optional[ResourceOverride],
    pull_policy: Optional[str],
    include_init: bool = False,
) -> None:
    """Apply resources, replicas and pull policy to a Deployment/StatefulSet.

    Touches ``containers[0]`` and, with ``include_init``, ``initContainers[0]``.
    Missing containers are skipped.
    """
    pod_spec = dig(doc, "spec", "template", "spec")
    targets = []
    if isinstance(pod_spec, dict):
        for list_key in ("containers", "initContainers") if include_init else ("containers",):
            container = dig(pod_spec, list_key, 0)
            if isinstance(container, dict):
                targets.append(container)
            else:
                logger.debug(f"No {list_key}[0] in {dig(doc, 'metadata', 'name')}")

    for container in targets:
        if override is not None:
            merge_resources(container, override)
        if pull_policy is not None:
            container["imagePullPolicy"] = pull_policy

    if override is not None and override.replicas is not None and isinstance(doc.get("spec"), dict):
        doc["spec"]["replicas"] = override.replicas
