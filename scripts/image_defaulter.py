#!/usr/bin/env python3
"""
Image defaulter editing.

Equivalent of ``kustomize edit set image name=<ref>`` run against the
overlay's ``image-defaulter`` kustomization: upserts an ``images`` entry
keyed by the component's image name.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from overlay_classifier import KUSTOMIZATION_FILE
from yaml_docs import load_yaml, write_yaml

logger = logging.getLogger(__name__)

IMAGE_DEFAULTER_DIR = "image-defaulter"


def split_image(reference: str) -> Tuple[str, Optional[str]]:
    """Split ``repo[:tag]``; a colon before the last ``/`` belongs to the registry port.

    >>> split_image("registry:5000/forgerock/am:7.5.0")
    ('registry:5000/forgerock/am', '7.5.0')
    >>> split_image("am")
    ('am', None)
    """
    repo, sep, tag = reference.rpartition(":")
    if not sep or "/" in tag:
        return reference, None
    return repo, tag


def image_name(component: str) -> str:
    """Image names in the defaulter use hyphens (``ds_cts`` -> ``ds-cts``)."""
    return component.replace("_", "-")


def set_image(overlay: Path, component: str, reference: str, dry_run: bool = False) -> bool:
    """Upsert ``component``'s image in the overlay's image defaulter.

    Returns False when the overlay has no image defaulter or nothing changed.
    With ``dry_run`` the change is reported but not written.
    """
    path = overlay / IMAGE_DEFAULTER_DIR / KUSTOMIZATION_FILE
    if not path.is_file():
        logger.warning(
            f"Missing {path}. Copy an image-defaulter into place, "
            f"or run the container build process against this overlay."
        )
        return False

    doc: Dict[str, Any] = load_yaml(path, default={})
    images: List[Dict[str, Any]] = doc.get("images") or []
    doc["images"] = images

    name = image_name(component)
    image_ref, _, digest = reference.partition("@")
    repo, tag = split_image(image_ref)
    wanted: Dict[str, Any] = {"name": name, "newName": repo}
    if tag is not None:
        wanted["newTag"] = tag
    if digest:
        wanted["digest"] = digest

    for image in images:
        if image.get("name") == name:
            if image == wanted:
                return False
            image.clear()
            image.update(wanted)
            break
    else:
        images.append(wanted)

    if dry_run:
        logger.info(f"Would set image {name}={reference} in {path}")
        return True

    write_yaml(path, doc)
    logger.info(f"Set image {name}={reference} in {path}")
    return True


def set_images(overlay: Path, images: Dict[str, str], dry_run: bool = False) -> List[str]:
    """Apply every ``component -> reference`` pair; returns changed components."""
    return [
        component
        for component, ref in images.items()
        if set_image(overlay, component, ref, dry_run)
    ]
