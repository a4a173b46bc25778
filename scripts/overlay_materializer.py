#!/usr/bin/env python3
"""
Overlay materializer.

Takes an OverrideRecord and applies it to a Kustomize overlay and its
Helm values directory:

1. prepare the overlay (first run copies the source overlay)
2. classify component directories
3. prune the DS representation that was not requested
4. run the kind-specific patchers from addons/
5. rewrite namespace, ingress patch lists and platform config
6. set image references in the image defaulter
7. write Helm value layers
8. append to both audit logs

With ``dry_run`` every step runs against the current files but nothing on
disk changes and no audit line is appended; the result lists what would
change.

Writes are sequential and not transactional; a failure part way leaves
the files written so far in place.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from addon_loader import PatcherLoader
from helm_values import prepare_helm_dir, write_values
from image_defaulter import set_images
from overlay_classifier import ComponentKind, OverlayEntry, classify_overlay
from overlay_errors import MissingPrerequisite, PathConflict
from overlay_rewriter import rewrite_ingress, rewrite_namespace, rewrite_platform_config
from override_collector import OverrideRecord
from yaml_docs import append_audit_log

logger = logging.getLogger(__name__)



# ------------------------------------------------------------------
# Overlay lifecycle
# ------------------------------------------------------------------


def prepare_overlay(
    overlay: Path,
    source: Optional[Path],
    record: OverrideRecord,
    dry_run: bool = False,
) -> bool:
    """Make sure ``overlay`` exists, copying ``source`` on first run.

    Returns True if the overlay was (or, with ``dry_run``, would be) created.

    Raises:
        PathConflict: ``overlay`` exists but is not a directory.
        MissingPrerequisite: a new overlay was requested without an FQDN,
            or the source overlay does not exist.
    """
    if overlay.exists():
        if not overlay.is_dir():
            raise PathConflict(f"{overlay} exists, but is not a directory. Please remove it.")
        logger.debug(f"Overlay exists: {overlay}")
        return False

    if not record.fqdns:
        raise MissingPrerequisite(f"An FQDN is required to generate a new overlay: {overlay}")
    if source is None or not source.is_dir():
        raise MissingPrerequisite(f"Source overlay doesn't exist: {source}")

    if dry_run:
        logger.info(f"Would create overlay {overlay} from {source}")
        return True

    overlay.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, overlay)
    logger.info(f"Created overlay {overlay} from {source}")
    return True


def prune_representations(
    entries: List[OverlayEntry], operator: bool, dry_run: bool = False
) -> List[OverlayEntry]:
    """Delete DS directories whose representation was not requested.

    Returns the surviving entries in their original order.
    """
    surviving = []
    for entry in entries:
        if entry.kind.is_ds and (entry.kind is ComponentKind.DS_OPERATOR) != operator:
            if dry_run:
                logger.info(f"Would remove {entry.path} ({entry.kind.value} not selected)")
            else:
                logger.info(f"Removing {entry.path} ({entry.kind.value} not selected)")
                shutil.rmtree(entry.path)
            continue
        surviving.append(entry)
    return surviving


def apply_patches(
    entries: List[OverlayEntry],
    record: OverrideRecord,
    loader: Optional[PatcherLoader] = None,
    dry_run: bool = False,
) -> List[str]:
    """Run the resource patchers for each entry; returns changed files."""
    loader = loader or PatcherLoader()
    changed: List[str] = []
    for entry in entries:
        changed.extend(loader.run_patchers(entry, record, dry_run))
    return changed


def rewrite_overlay(
    overlay: Path, entries: List[OverlayEntry], record: OverrideRecord, dry_run: bool = False
) -> List[str]:
    changed = rewrite_namespace(overlay, record, dry_run)
    for entry in entries:
        changed.extend(rewrite_ingress(entry, record, dry_run))
        changed.extend(rewrite_platform_config(entry, record, dry_run))
    return changed


def _rebase(paths: List[str], old_root: Path, new_root: Path) -> List[str]:
    return [str(new_root / Path(p).relative_to(old_root)) for p in paths]


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def materialize_overlay(
    overlay: Path,
    record: OverrideRecord,
    source: Optional[Path] = None,
    loader: Optional[PatcherLoader] = None,
    cmdline: Optional[str] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Apply ``record`` to the Kustomize overlay at ``overlay``."""
    loader = loader or PatcherLoader()
    loader.discover_addons()
    created = prepare_overlay(overlay, source, record, dry_run)

    # A dry run of a new overlay reads the source it would be copied from
    tree = source if dry_run and created else overlay

    entries = prune_representations(classify_overlay(tree), record.operator, dry_run)
    changed = apply_patches(entries, record, loader, dry_run)
    changed.extend(rewrite_overlay(tree, entries, record, dry_run))
    images = set_images(tree, record.images, dry_run) if record.images else []

    if tree != overlay:
        changed = _rebase(changed, tree, overlay)
    if not dry_run:
        append_audit_log(overlay, cmdline)
    return {
        "overlay": str(overlay),
        "created": created,
        "dry_run": dry_run,
        "components": [e.name for e in entries],
        "changed_files": changed,
        "images": images,
    }


def materialize_helm_values(
    helm_dir: Path,
    record: OverrideRecord,
    source: Optional[Path] = None,
    cmdline: Optional[str] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Write Helm value layers for ``record`` into ``helm_dir``."""
    created = prepare_helm_dir(helm_dir, source, dry_run)
    files = write_values(helm_dir, record, dry_run)
    if not dry_run:
        append_audit_log(helm_dir, cmdline)
    return {"helm_dir": str(helm_dir), "created": created, "dry_run": dry_run, "files": files}
