#!/usr/bin/env python3
"""
Tool configuration for overlay generation.

Values are resolved in three layers: built-in defaults, an optional
``forgeops.json`` at the repository root, then environment variables.
Command line flags are applied on top by the CLI.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parent.parent


def default_root() -> Path:
    """The checkout holding ``addons/`` and ``sizing/``, else the working directory.

    An installed copy has no checkout next to it; it is run from inside one.
    """
    if (REPO_ROOT / "addons").is_dir():
        return REPO_ROOT
    return Path.cwd()


# Environment variable -> config key
ENV_KEYS = {
    "KUSTOMIZE_PATH": "kustomize_path",
    "HELM_PATH": "helm_path",
    "SIZING_PATH": "sizing_path",
    "ADDONS_PATH": "addons_path",
    "OVERLAY": "overlay",
    "SOURCE": "source",
    "NO_HELM": "no_helm",
    "NO_KUSTOMIZE": "no_kustomize",
    "OPERATOR": "operator",
    "PULL_POLICY": "pull_policy",
}

BOOL_KEYS = {"no_helm", "no_kustomize", "operator"}
PATH_KEYS = {"kustomize_path", "helm_path", "sizing_path", "addons_path"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class ForgeopsConfig:
    """Resolved configuration for one invocation."""

    def __init__(self, root: Optional[Path] = None, env: Optional[Mapping[str, str]] = None):
        self.root = Path(root) if root is not None else default_root()
        self.env = os.environ if env is None else env
        self.settings: Dict[str, Any] = {}
        self.load_config()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _default_config() -> Dict[str, Any]:
        return {
            "kustomize_path": "kustomize",
            "helm_path": "helm",
            "sizing_path": "sizing",
            "addons_path": "addons",
            "overlay": "demo",
            "source": "default",
            "no_helm": False,
            "no_kustomize": False,
            "operator": False,
            "pull_policy": None,
        }

    def load_config(self):
        """Merge defaults, forgeops.json and environment variables."""
        settings = self._default_config()

        config_file = self.root / "forgeops.json"
        if config_file.is_file():
            with open(config_file, "r") as fh:
                file_settings = json.load(fh)
            unknown = set(file_settings) - set(settings)
            if unknown:
                logger.warning(f"Ignoring unknown keys in {config_file}: {sorted(unknown)}")
            settings.update({k: v for k, v in file_settings.items() if k in settings})

        for env_name, key in ENV_KEYS.items():
            if env_name in self.env and self.env[env_name] != "":
                settings[key] = self.env[env_name]
                logger.debug(f"{key} set from ${env_name}")

        for key in BOOL_KEYS:
            settings[key] = _as_bool(settings[key])

        self.settings = settings

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def resolve_path(self, key: str) -> Path:
        """Return a path setting; relative values are taken from the repo root."""
        if key not in PATH_KEYS:
            raise KeyError(key)
        path = Path(self.settings[key])
        return path if path.is_absolute() else self.root / path

    @property
    def kustomize_path(self) -> Path:
        return self.resolve_path("kustomize_path")

    @property
    def helm_path(self) -> Path:
        return self.resolve_path("helm_path")

    @property
    def sizing_path(self) -> Path:
        return self.resolve_path("sizing_path")

    @property
    def addons_path(self) -> Path:
        return self.resolve_path("addons_path")

    def overlay_dir(self, name: str) -> Path:
        """Overlay names are full paths or relative to ``<kustomize>/overlay``."""
        path = Path(name)
        return path if path.is_absolute() else self.kustomize_path / "overlay" / path

    def helm_dir(self, name: str) -> Path:
        """Helm values for an overlay live in ``<helm>/<overlay basename>``."""
        return self.helm_path / Path(name).name
