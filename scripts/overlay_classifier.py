#!/usr/bin/env python3
"""
Overlay classifier.

Each subdirectory of an overlay is resolved once into an ``OverlayEntry``
carrying its kind and the canonical component key used for override
lookups. Everything downstream dispatches on ``entry.kind``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path

DS_PREFIX = "ds"
OPERATOR_MARKER = "_operator"
PLATFORM_CONFIG_KEY = "base"

# Well-known per-component files
KUSTOMIZATION_FILE = "kustomization.yaml"
INGRESS_PATCH_FILE = "ingress-fqdn.yaml"
PLATFORM_CONFIG_FILE = "platform-config.yaml"
DEPLOYMENT_FILE = "deployment.yaml"
STATEFULSET_FILE = "sts.yaml"
DIRECTORY_SERVICE_FILE = "directoryservice.yaml"


class ComponentKind(enum.Enum):
    PLATFORM_CONFIG = "platform_config"
    DS_STATEFULSET = "ds_statefulset"
    DS_OPERATOR = "ds_operator"
    DEPLOYMENT = "deployment"

    @property
    def is_ds(self) -> bool:
        return self in (ComponentKind.DS_STATEFULSET, ComponentKind.DS_OPERATOR)


RESOURCE_FILES = {
    ComponentKind.DEPLOYMENT: DEPLOYMENT_FILE,
    ComponentKind.DS_STATEFULSET: STATEFULSET_FILE,
    ComponentKind.DS_OPERATOR: DIRECTORY_SERVICE_FILE,
}


@dataclass(frozen=True)
class OverlayEntry:
    name: str
    path: Path
    kind: ComponentKind
    key: str

    @property
    def resource_file(self) -> Path | None:
        filename = RESOURCE_FILES.get(self.kind)
        return self.path / filename if filename else None

    @property
    def kustomization_file(self) -> Path:
        return self.path / KUSTOMIZATION_FILE

    @property
    def ingress_patch_file(self) -> Path:
        return self.path / INGRESS_PATCH_FILE

    @property
    def platform_config_file(self) -> Path:
        return self.path / PLATFORM_CONFIG_FILE


def normalize_name(name: str) -> str:
    return name.replace("-", "_")


def classify_name(name: str) -> tuple[ComponentKind, str]:
    """Return ``(kind, canonical key)`` for a component directory name.

    >>> classify_name("ds-cts-operator")
    (<ComponentKind.DS_OPERATOR: 'ds_operator'>, 'ds_cts')
    >>> classify_name("end-user-ui")
    (<ComponentKind.DEPLOYMENT: 'deployment'>, 'end_user_ui')
    """
    normalized = normalize_name(name)

    if normalized == DS_PREFIX or normalized.startswith(DS_PREFIX + "_"):
        if OPERATOR_MARKER in normalized:
            return ComponentKind.DS_OPERATOR, normalized.replace(OPERATOR_MARKER, "")
        return ComponentKind.DS_STATEFULSET, normalized

    if normalized == PLATFORM_CONFIG_KEY:
        return ComponentKind.PLATFORM_CONFIG, normalized

    return ComponentKind.DEPLOYMENT, normalized


def classify_entry(path: Path) -> OverlayEntry:
    kind, key = classify_name(path.name)
    return OverlayEntry(name=path.name, path=path, kind=kind, key=key)


def classify_overlay(overlay: Path) -> list[OverlayEntry]:
    """Classify every subdirectory of ``overlay``, sorted by name."""
    return [
        classify_entry(child)
        for child in sorted(overlay.iterdir(), key=lambda p: p.name)
        if child.is_dir()
    ]
