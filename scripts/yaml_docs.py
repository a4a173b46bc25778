#!/usr/bin/env python3
"""
YAML document helpers shared by the overlay and Helm values writers.

Documents are read with ``yaml.safe_load`` and written block style, in
insertion order, without anchors or aliases.
"""

from __future__ import annotations

import datetime
import logging
import shlex
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

logger = logging.getLogger(__name__)

AUDIT_LOG_NAME = "env.log"


class NoAliasDumper(yaml.SafeDumper):
    """SafeDumper that expands every repeated node into a literal copy."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load a YAML document, returning ``default`` for a missing or empty file."""
    if not path.is_file():
        return default
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return default if data is None else data


def dump_yaml(data: Any) -> str:
    return yaml.dump(
        data,
        Dumper=NoAliasDumper,
        default_flow_style=False,
        sort_keys=False,
    )


def write_yaml(path: Path, data: Any) -> Path:
    """Write ``data`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(dump_yaml(data))
    logger.debug(f"Wrote {path}")
    return path


def command_line(argv: Optional[Sequence[str]] = None) -> str:
    """Render the invoking command line the way a shell user would type it."""
    args = list(sys.argv if argv is None else argv)
    return " ".join(shlex.quote(a) for a in args)


def append_audit_log(root: Path, cmdline: Optional[str] = None) -> Path:
    """Append ``<UTC timestamp> <command line>`` to ``root/env.log``.

    The log is never rotated or truncated here.
    """
    log_path = root / AUDIT_LOG_NAME
    stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    line = f"{stamp} {cmdline if cmdline is not None else command_line()}\n"
    root.mkdir(parents=True, exist_ok=True)
    with open(log_path, "a", encoding="utf-8") as fh:
        fh.write(line)
    return log_path
