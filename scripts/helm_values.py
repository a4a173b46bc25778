#!/usr/bin/env python3
"""
Helm values writer.

Each overlay gets four files in its Helm values directory:

    values-sizing.yaml   resources, replicaCount, volumeClaimSpec
    values-images.yaml   image repository/tag/pull policy
    values-ingress.yaml  platform.ingress hosts and class
    values.yaml          everything above deep-merged over prior content

Layer files are merged shallowly into whatever they held before; the
consolidated file is a recursive merge in the order prior content,
sizing, ingress, images.
"""

from __future__ import annotations

import copy
import logging
import shutil
from pathlib import Path
from typing import Any

from image_defaulter import split_image
from manifest_patch import resources_patch
from overlay_errors import PathConflict
from override_collector import OverrideRecord
from yaml_docs import load_yaml, write_yaml

logger = logging.getLogger(__name__)

SIZING_FILE = "values-sizing.yaml"
IMAGES_FILE = "values-images.yaml"
INGRESS_FILE = "values-ingress.yaml"
VALUES_FILE = "values.yaml"

# Chart keys that carry an ``image`` block
IMAGE_COMPONENTS = [
    "am",
    "amster",
    "idm",
    "ig",
    "ds_cts",
    "ds_idrepo",
    "admin_ui",
    "end_user_ui",
    "login_ui",
]


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

def shallow_merge(prior: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Merge ``layer`` into ``prior`` one level below the top-level keys."""
    for key, value in layer.items():
        existing = prior.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            existing.update(copy.deepcopy(value))
        else:
            prior[key] = copy.deepcopy(value)
    return prior


def deep_merge(base: Any, override: Any) -> Any:
    """Recursively merge mappings; later values win, non-mappings replace.

    Returns a new structure; neither argument is modified and no node of
    the result is shared with them.

    >>> deep_merge({"a": {"x": 1}}, {"a": {"y": 2}})
    {'a': {'x': 1, 'y': 2}}
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        return copy.deepcopy(override)
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

def sizing_layer(record: OverrideRecord) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for key, override in record.components.items():
        values: dict[str, Any] = {}
        resources = resources_patch(override)
        if resources:
            values["resources"] = resources
        if override.replicas is not None:
            values["replicaCount"] = override.replicas
        if override.disk is not None:
            values["volumeClaimSpec"] = {"resources": {"requests": {"storage": override.disk}}}
        if values:
            layer[key] = values
    return layer


def images_layer(record: OverrideRecord) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for key, reference in record.images.items():
        image_ref, _, digest = reference.partition("@")
        repo, tag = split_image(image_ref)
        image: dict[str, Any] = {"repository": repo}
        if tag is not None:
            image["tag"] = tag
        if digest:
            image["digest"] = digest
        layer[key] = {"image": image}

    if record.pull_policy is not None:
        for key in IMAGE_COMPONENTS + [k for k in layer if k not in IMAGE_COMPONENTS]:
            layer.setdefault(key, {}).setdefault("image", {})["imagePullPolicy"] = record.pull_policy
    return layer


def ingress_layer(record: OverrideRecord) -> dict[str, Any]:
    ingress: dict[str, Any] = {}
    if record.fqdns:
        ingress["hosts"] = list(record.fqdns)
    if record.ingress_class is not None:
        ingress["className"] = record.ingress_class
    return {"platform": {"ingress": ingress}} if ingress else {}


def build_layers(record: OverrideRecord) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
    """Return the (sizing, images, ingress) layers for ``record``."""
    return sizing_layer(record), images_layer(record), ingress_layer(record)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def _store(path: Path, data: dict[str, Any], dry_run: bool = False) -> bool:
    """Write ``data`` unless the file already holds it; returns True on change."""
    if path.is_file() and load_yaml(path, default={}) == data:
        return False
    if dry_run:
        logger.info(f"Would write {path}")
    else:
        write_yaml(path, data)
    return True


def _load_mapping(path: Path) -> dict[str, Any]:
    prior = load_yaml(path, default={})
    if not isinstance(prior, dict):
        logger.warning(f"{path} did not hold a mapping, replacing it")
        return {}
    return prior


def write_layer(
    path: Path, layer: dict[str, Any], dry_run: bool = False
) -> tuple[dict[str, Any], bool]:
    """Merge ``layer`` over the file's prior content and write it.

    Returns the merged mapping and whether the file changed.
    """
    merged = shallow_merge(_load_mapping(path), layer)
    return merged, _store(path, merged, dry_run)


def prepare_helm_dir(helm_dir: Path, source_dir: Path | None = None, dry_run: bool = False) -> bool:
    """Create ``helm_dir`` on first use, seeded from the source values file.

    Returns True if the directory was (or, with ``dry_run``, would be) created.
    """
    if helm_dir.exists():
        if not helm_dir.is_dir():
            raise PathConflict(f"{helm_dir} exists, but is not a directory. Please remove it.")
        return False

    if dry_run:
        logger.info(f"Would create {helm_dir}")
        return True

    helm_dir.mkdir(parents=True)
    if source_dir is not None and (source_dir / VALUES_FILE).is_file():
        shutil.copy2(source_dir / VALUES_FILE, helm_dir / VALUES_FILE)
        logger.info(f"Seeded {helm_dir / VALUES_FILE} from {source_dir}")
    else:
        logger.info(f"Created {helm_dir}")
    return True


def write_values(helm_dir: Path, record: OverrideRecord, dry_run: bool = False) -> list[str]:
    """Write the three layer files and the consolidated values file.

    Returns the files whose content changed; with ``dry_run`` nothing is
    written and the files that would change are returned.
    """
    changed: list[str] = []
    merged_layers: dict[str, dict[str, Any]] = {}
    for name, layer in zip((SIZING_FILE, IMAGES_FILE, INGRESS_FILE), build_layers(record)):
        path = helm_dir / name
        merged_layers[name], layer_changed = write_layer(path, layer, dry_run)
        if layer_changed:
            changed.append(str(path))

    values = _load_mapping(helm_dir / VALUES_FILE)
    for name in (SIZING_FILE, INGRESS_FILE, IMAGES_FILE):
        values = deep_merge(values, merged_layers[name])
    if _store(helm_dir / VALUES_FILE, values, dry_run):
        changed.append(str(helm_dir / VALUES_FILE))

    if changed and not dry_run:
        logger.info(f"Updated Helm values in {helm_dir}")
    return changed
