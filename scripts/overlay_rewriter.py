#!/usr/bin/env python3
"""
Namespace, ingress and FQDN rewriting for an overlay.

Covers the overlay-wide settings that are not tied to a resource shape:
the root kustomization namespace, each component's ingress JSON-patch
list, and the ``base`` platform config (FQDN plus the DS connection
strings derived from replica counts).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from manifest_patch import patch_file
from overlay_classifier import KUSTOMIZATION_FILE, ComponentKind, OverlayEntry
from override_collector import OverrideRecord

logger = logging.getLogger(__name__)

DS_PORT = 1636

# Component key -> (service name, platform config field)
DS_CONNECTION_FIELDS = {
    "ds_cts": ("ds-cts", "AM_STORES_CTS_SERVERS"),
    "ds_idrepo": ("ds-idrepo", "AM_STORES_USER_SERVERS"),
}

INGRESS_CLASS_PATH = "/spec/ingressClassName"
FIRST_RULE_HOST_PATH = "/spec/rules/0/host"


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

def ds_connection_string(name: str, replicas: int, port: int = DS_PORT) -> str:
    """``<name>-<i>.<name>:<port>`` for each replica, comma joined.

    >>> ds_connection_string("ds-cts", 2)
    'ds-cts-0.ds-cts:1636,ds-cts-1.ds-cts:1636'
    """
    return ",".join(f"{name}-{i}.{name}:{port}" for i in range(replicas))


# ---------------------------------------------------------------------------
# Kustomization namespace
# ---------------------------------------------------------------------------

def rewrite_namespace(overlay: Path, record: OverrideRecord, dry_run: bool = False) -> list[str]:
    """Set or drop ``namespace`` in the overlay's root kustomization."""
    if record.namespace is None and not record.no_namespace:
        return []

    def _apply(doc: dict[str, Any]) -> None:
        if record.no_namespace:
            doc.pop("namespace", None)
        else:
            doc["namespace"] = record.namespace

    path = overlay / KUSTOMIZATION_FILE
    return [str(path)] if patch_file(path, _apply, dry_run) else []


# ---------------------------------------------------------------------------
# Ingress patch lists
# ---------------------------------------------------------------------------

def _is_first_fqdn_path(op_path: str) -> bool:
    return op_path == FIRST_RULE_HOST_PATH or (
        op_path.startswith("/spec/tls") and op_path.endswith("/secretName")
    )


def _is_hosts_path(op_path: str) -> bool:
    return op_path.endswith("/hosts")


def rewrite_ingress_ops(ops: list[Any], record: OverrideRecord) -> None:
    """Update a JSON-patch list in place with FQDNs and the ingress class."""
    class_seen = False
    for op in ops:
        if not isinstance(op, dict):
            continue
        op_path = str(op.get("path", ""))
        if record.fqdns and _is_first_fqdn_path(op_path):
            op["value"] = record.fqdns[0]
        elif record.fqdns and _is_hosts_path(op_path):
            op["value"] = list(record.fqdns)
        elif op_path == INGRESS_CLASS_PATH:
            class_seen = True
            if record.ingress_class is not None:
                op["value"] = record.ingress_class

    if record.ingress_class is not None and not class_seen:
        ops.append({"op": "replace", "path": INGRESS_CLASS_PATH, "value": record.ingress_class})


def rewrite_ingress(entry: OverlayEntry, record: OverrideRecord, dry_run: bool = False) -> list[str]:
    if not record.fqdns and record.ingress_class is None:
        return []

    def _apply(doc: Any) -> None:
        if isinstance(doc, list):
            rewrite_ingress_ops(doc, record)
        else:
            logger.warning(f"{entry.ingress_patch_file} is not a patch list, leaving it alone")

    path = entry.ingress_patch_file
    return [str(path)] if patch_file(path, _apply, dry_run) else []


# ---------------------------------------------------------------------------
# Platform config
# ---------------------------------------------------------------------------

def rewrite_platform_config(
    entry: OverlayEntry, record: OverrideRecord, dry_run: bool = False
) -> list[str]:
    """Set FQDN and DS connection strings in ``base/platform-config.yaml``."""
    if entry.kind is not ComponentKind.PLATFORM_CONFIG:
        return []
    if not record.fqdns and not record.ds_replicas_changed:
        return []

    def _apply(doc: dict[str, Any]) -> None:
        data = doc.get("data")
        if not isinstance(data, dict):
            data = {}
            doc["data"] = data
        if record.fqdns:
            data["FQDN"] = record.fqdns[0]
        for key, (name, config_field) in DS_CONNECTION_FIELDS.items():
            replicas = record.replicas_for(key)
            if replicas is not None:
                data[config_field] = ds_connection_string(name, replicas)

    path = entry.platform_config_file
    return [str(path)] if patch_file(path, _apply, dry_run) else []
