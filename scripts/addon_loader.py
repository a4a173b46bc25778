#!/usr/bin/env python3
"""
Patcher autodiscovery and loading for overlay materialization.
Scans the addons/ directory, reads each module's ADDON_META, matches the
``kinds`` trigger against a classified overlay entry and runs matching
patchers in priority order.
"""

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Optional

from overlay_classifier import ComponentKind, OverlayEntry
from overlay_errors import MissingPrerequisite

logger = logging.getLogger(__name__)

DEFAULT_ADDONS_DIR = Path(__file__).resolve().parent.parent / "addons"


class AddonSpec:
    """Specification for a patcher addon."""

    def __init__(
        self,
        name: str,
        path: Path,
        module: ModuleType,
        triggers: Dict[str, Any],
        priority: int = 10,
        description: str = "",
    ):
        self.name = name
        self.path = path
        self.module = module
        self.triggers = triggers
        self.priority = priority
        self.description = description

    @property
    def kinds(self) -> List[str]:
        return list(self.triggers.get("kinds", []))

    def matches(self, kind: ComponentKind) -> bool:
        return kind.value in self.kinds

    def __repr__(self) -> str:
        return f"AddonSpec(name={self.name}, priority={self.priority})"


class PatcherLoader:
    """
    Discovers patcher addons and dispatches overlay entries to them.

    Usage:
        loader = PatcherLoader()
        changed = loader.run_patchers(entry, record)
    """

    def __init__(self, addons_dir: Optional[Path] = None):
        if addons_dir is None:
            addons_dir = DEFAULT_ADDONS_DIR
        self.addons_dir = Path(addons_dir)
        self._specs: Optional[List[AddonSpec]] = None

    def load_addon(self, path: Path) -> ModuleType:
        """Import an addon module from its file path."""
        module_spec = importlib.util.spec_from_file_location(path.stem, str(path))
        if module_spec is None or module_spec.loader is None:
            raise ImportError(f"Failed to create module spec for {path}")
        module = importlib.util.module_from_spec(module_spec)
        module_spec.loader.exec_module(module)
        return module

    def discover_addons(self) -> List[AddonSpec]:
        """
        Discover all patcher addons in the addons/ directory.
        Returns list of AddonSpec objects sorted by priority.
        Modules without ADDON_META or a main() are ignored.

        Raises:
            MissingPrerequisite: the directory is missing or holds no patchers.
        """
        if self._specs is not None:
            return self._specs

        if not self.addons_dir.is_dir():
            raise MissingPrerequisite(
                f"Patcher addons directory not found: {self.addons_dir}. "
                "Set addons_path in forgeops.json or ADDONS_PATH."
            )

        discovered: List[AddonSpec] = []

        for addon_file in sorted(self.addons_dir.glob("*.py")):
            if addon_file.name.startswith("_"):
                continue

            module = self.load_addon(addon_file)
            meta = getattr(module, "ADDON_META", None)
            if not isinstance(meta, dict) or not callable(getattr(module, "main", None)):
                logger.debug(f"Skipping {addon_file.name}: no ADDON_META/main")
                continue

            discovered.append(
                AddonSpec(
                    name=meta.get("name", addon_file.stem),
                    path=addon_file,
                    module=module,
                    triggers=meta.get("triggers", {}),
                    priority=meta.get("priority", 50),
                    description=meta.get("description", ""),
                )
            )

        if not discovered:
            raise MissingPrerequisite(f"No patcher addons found in {self.addons_dir}")

        # Lower priority value runs first
        self._specs = sorted(discovered, key=lambda s: (s.priority, s.name))
        return self._specs

    def match_addons(self, kind: ComponentKind) -> List[AddonSpec]:
        return [spec for spec in self.discover_addons() if spec.matches(kind)]

    def run_patchers(self, entry: OverlayEntry, record: Any, dry_run: bool = False) -> List[str]:
        """
        Run every patcher matching ``entry.kind``.
        With ``dry_run`` nothing is written.

        Returns:
            Paths of the files that changed, in patcher order.
        """
        changed: List[str] = []
        for spec in self.match_addons(entry.kind):
            logger.debug(f"Running patcher {spec.name} on {entry.name}")
            changed.extend(spec.module.main(entry, record, dry_run=dry_run))
        return changed
