#!/usr/bin/env python3
"""
Override collector.

Turns the flat set of named override inputs (``am_cpu``, ``cts_rep``,
``fqdn``, ``single`` ...) into a sparse ``OverrideRecord``. A field left
as ``None`` means "leave the existing file content alone".

All validation of user input happens here so that a bad combination of
flags fails before the overlay or Helm values are touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from overlay_errors import ConflictingInput, MissingPrerequisite
from yaml_docs import load_yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Component tables
# ---------------------------------------------------------------------------

# Flag prefix -> canonical component key
FLAG_PREFIXES = {
    "am": "am",
    "idm": "idm",
    "ig": "ig",
    "cts": "ds_cts",
    "idrepo": "ds_idrepo",
}

REPLICATED_COMPONENTS = ["am", "idm", "ig", "ds_cts", "ds_idrepo"]
DS_COMPONENTS = ["ds_cts", "ds_idrepo"]

SIZE_TIERS = ["small", "medium", "large"]
PULL_POLICIES = ["Always", "IfNotPresent", "Never"]

# Tier file field -> ResourceOverride attribute
_TIER_FIELDS = {
    "cpu": "cpu",
    "memory": "memory",
    "mem": "memory",
    "replicas": "replicas",
    "disk": "disk",
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class ResourceOverride:
    cpu: Optional[str] = None
    memory: Optional[str] = None
    memory_limit: Optional[str] = None
    replicas: Optional[int] = None
    disk: Optional[str] = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.cpu, self.memory, self.memory_limit, self.replicas, self.disk)
        )

    def set_memory(self, memory: str) -> None:
        """Memory limit always tracks the request."""
        self.memory = memory
        self.memory_limit = memory


@dataclass
class OverrideRecord:
    components: dict[str, ResourceOverride] = field(default_factory=dict)
    pull_policy: Optional[str] = None
    fqdns: list[str] = field(default_factory=list)
    ingress_class: Optional[str] = None
    namespace: Optional[str] = None
    no_namespace: bool = False
    operator: bool = False
    images: dict[str, str] = field(default_factory=dict)
    size: Optional[str] = None

    def get(self, key: str) -> Optional[ResourceOverride]:
        return self.components.get(key)

    def replicas_for(self, key: str) -> Optional[int]:
        override = self.components.get(key)
        return override.replicas if override is not None else None

    @property
    def ds_replicas_changed(self) -> bool:
        return any(self.replicas_for(k) is not None for k in DS_COMPONENTS)


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def _supplied(value: Any) -> bool:
    return value is not None and value != ""


def parse_fqdns(value: Any) -> list[str]:
    """Accept a list of names, comma separated strings, or a mix of both."""
    if not _supplied(value):
        return []
    items = [value] if isinstance(value, str) else list(value)
    fqdns: list[str] = []
    for item in items:
        for part in str(item).split(","):
            part = part.strip()
            if part and part not in fqdns:
                fqdns.append(part)
    return fqdns


def parse_images(value: Any) -> dict[str, str]:
    """Parse ``component=reference`` entries into a component key mapping."""
    if not _supplied(value):
        return {}
    if isinstance(value, Mapping):
        pairs = list(value.items())
    else:
        pairs = []
        for entry in ([value] if isinstance(value, str) else value):
            name, sep, ref = str(entry).partition("=")
            if not sep:
                raise MissingPrerequisite(f"Image override must be COMPONENT=IMAGE, got: {entry}")
            pairs.append((name, ref))

    images: dict[str, str] = {}
    for name, ref in pairs:
        name = str(name).strip()
        ref = str(ref).strip()
        if not name or not ref:
            raise MissingPrerequisite(f"Image override needs a component and an image: {name}={ref}")
        images[name.replace("-", "_")] = ref
    return images


def parse_replicas(key: str, value: Any) -> int:
    """Replica count for ``key``; DS tiers need at least one server."""
    replicas = int(value)
    minimum = 1 if key in DS_COMPONENTS else 0
    if replicas < minimum:
        raise MissingPrerequisite(f"{key} replicas must be at least {minimum}, got {replicas}")
    return replicas


def load_size_tier(size: str, sizing_dir: Path) -> dict[str, ResourceOverride]:
    """Load the baseline override record for a size tier."""
    if size not in SIZE_TIERS:
        raise MissingPrerequisite(f"Unknown size tier: {size} (expected one of {', '.join(SIZE_TIERS)})")

    tier_file = sizing_dir / f"{size}.yaml"
    if not tier_file.is_file():
        raise MissingPrerequisite(f"Size tier file not found: {tier_file}")

    data = load_yaml(tier_file, default={})
    if not isinstance(data, dict):
        raise MissingPrerequisite(f"Size tier file must contain a mapping: {tier_file}")

    baseline: dict[str, ResourceOverride] = {}
    for key, fields in data.items():
        if not isinstance(fields, dict):
            continue
        override = ResourceOverride()
        for name, value in fields.items():
            attr = _TIER_FIELDS.get(name)
            if attr is None or value is None:
                continue
            if attr == "memory":
                override.set_memory(str(value))
            elif attr == "replicas":
                override.replicas = parse_replicas(str(key).replace("-", "_"), value)
            else:
                setattr(override, attr, str(value))
        if not override.is_empty():
            baseline[str(key).replace("-", "_")] = override
    logger.debug(f"Loaded size tier {size} from {tier_file}: {sorted(baseline)}")
    return baseline


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------

def _check_conflicts(params: Mapping[str, Any]) -> None:
    if _supplied(params.get("namespace")) and params.get("no_namespace"):
        raise ConflictingInput("namespace and no-namespace cannot be used together")

    if params.get("single"):
        explicit = [f"{p}_rep" for p in FLAG_PREFIXES if _supplied(params.get(f"{p}_rep"))]
        if explicit:
            raise ConflictingInput(
                f"single-instance cannot be combined with replica overrides: {', '.join(explicit)}"
            )


def collect_overrides(params: Mapping[str, Any], sizing_dir: Optional[Path] = None) -> OverrideRecord:
    """Build an OverrideRecord from flat override inputs.

    Args:
        params: Mapping of input name to value. Missing or ``None`` values
            are treated as not supplied.
        sizing_dir: Directory holding ``small.yaml``/``medium.yaml``/``large.yaml``.
            Required only when ``size`` is given.

    Raises:
        ConflictingInput: namespace with no_namespace, or single with any
            explicit ``*_rep`` input.
        MissingPrerequisite: unknown or missing size tier, malformed image
            input, or a replica count below the component's minimum.
    """
    _check_conflicts(params)

    record = OverrideRecord()

    size = params.get("size")
    if _supplied(size):
        if sizing_dir is None:
            raise MissingPrerequisite(f"A sizing directory is required for size tier {size}")
        record.size = size
        record.components.update(load_size_tier(size, sizing_dir))

    for prefix, key in FLAG_PREFIXES.items():
        override = record.components.get(key) or ResourceOverride()

        cpu = params.get(f"{prefix}_cpu")
        if _supplied(cpu):
            override.cpu = str(cpu)

        mem = params.get(f"{prefix}_mem")
        if _supplied(mem):
            override.set_memory(str(mem))

        rep = params.get(f"{prefix}_rep")
        if _supplied(rep):
            override.replicas = parse_replicas(key, rep)

        if key in DS_COMPONENTS:
            disk = params.get(f"{prefix}_disk")
            if _supplied(disk):
                override.disk = str(disk)

        if params.get("single") and key in REPLICATED_COMPONENTS:
            override.replicas = 1

        if not override.is_empty():
            record.components[key] = override
            logger.debug(f"{key} override: {override}")

    pull_policy = params.get("pull_policy")
    if _supplied(pull_policy):
        if pull_policy not in PULL_POLICIES:
            raise MissingPrerequisite(
                f"Invalid pull policy: {pull_policy} (expected one of {', '.join(PULL_POLICIES)})"
            )
        record.pull_policy = pull_policy

    record.fqdns = parse_fqdns(params.get("fqdn"))
    if _supplied(params.get("ingress_class")):
        record.ingress_class = str(params["ingress_class"])
    if _supplied(params.get("namespace")):
        record.namespace = str(params["namespace"])
    record.no_namespace = bool(params.get("no_namespace"))
    record.operator = bool(params.get("operator"))
    record.images = parse_images(params.get("images"))

    logger.debug(
        f"Collected overrides: components={sorted(record.components)} "
        f"fqdns={record.fqdns} ingress_class={record.ingress_class} "
        f"namespace={record.namespace} no_namespace={record.no_namespace}"
    )
    return record
