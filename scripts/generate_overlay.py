#!/usr/bin/env python3
"""
CLI entry point for overlay generation.

Usage:
    python3 generate_overlay.py -l OVERLAY [-s SOURCE] [-f FQDN]... [--small|--medium|--large]
                                [--am-cpu CPU] [--cts-rep N] ... [--operator] [--dryrun] [--json]

Creates or updates a Kustomize overlay and its Helm values from a sparse
set of sizing, image and ingress overrides.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure sibling module is importable
sys.path.insert(0, str(Path(__file__).resolve().parent))

from addon_loader import PatcherLoader  # noqa: E402
from forgeops_config import ForgeopsConfig  # noqa: E402
from overlay_errors import OverlayError  # noqa: E402
from overlay_materializer import materialize_helm_values, materialize_overlay  # noqa: E402
from override_collector import FLAG_PREFIXES, PULL_POLICIES, collect_overrides  # noqa: E402
from yaml_docs import command_line  # noqa: E402

logger = logging.getLogger("generate_overlay")

DS_FLAG_PREFIXES = ["cts", "idrepo"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forgeops-generate",
        description="Generate or update a Kustomize overlay and Helm values for the identity platform.",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Turn on debug logging")
    parser.add_argument(
        "--dryrun",
        action="store_true",
        dest="dry_run",
        help="Report the files that would change without writing anything",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Machine-readable JSON output",
    )
    parser.add_argument(
        "-l", "--overlay",
        default=None,
        help="Overlay to generate (full path or relative to <kustomize>/overlay)",
    )
    parser.add_argument(
        "-s", "--source",
        default=None,
        help="Overlay to copy when creating a new one (default: default)",
    )
    parser.add_argument("-k", "--kustomize", default=None, help="Path to the kustomize dir")
    parser.add_argument("-H", "--helm", default=None, help="Path to the helm values dir")
    parser.add_argument("--sizing-path", default=None, help="Directory holding the size tier files")
    parser.add_argument("--addons-path", default=None, help="Directory holding the patcher addons")
    parser.add_argument("--no-helm", action="store_true", default=None, help="Don't write Helm values")
    parser.add_argument("--no-kustomize", action="store_true", default=None, help="Don't touch the overlay")
    parser.add_argument(
        "-o", "--operator",
        action="store_true",
        default=None,
        help="Use the DS operator resources instead of StatefulSets",
    )

    net = parser.add_argument_group("networking")
    net.add_argument(
        "-f", "--fqdn",
        action="append",
        default=None,
        help="FQDN for the platform ingress (repeatable, comma separated allowed)",
    )
    net.add_argument("--ingress-class", default=None, help="Ingress class name")
    net.add_argument("-n", "--namespace", default=None, help="Namespace to set in the overlay")
    net.add_argument(
        "--no-namespace",
        action="store_true",
        help="Remove the namespace from the overlay",
    )

    sizing = parser.add_argument_group("sizing")
    size = sizing.add_mutually_exclusive_group()
    for tier in ("small", "medium", "large"):
        size.add_argument(
            f"--{tier}",
            action="store_const",
            const=tier,
            dest="size",
            help=f"Start from the {tier} size tier",
        )
    sizing.add_argument(
        "--single-instance",
        action="store_true",
        dest="single",
        help="Run a single replica of every replicated component",
    )
    for prefix in FLAG_PREFIXES:
        sizing.add_argument(f"--{prefix}-cpu", dest=f"{prefix}_cpu", help=f"{prefix} CPU request")
        sizing.add_argument(f"--{prefix}-mem", dest=f"{prefix}_mem", help=f"{prefix} memory request and limit")
        sizing.add_argument(f"--{prefix}-rep", dest=f"{prefix}_rep", type=int, help=f"{prefix} replicas")
    for prefix in DS_FLAG_PREFIXES:
        sizing.add_argument(f"--{prefix}-disk", dest=f"{prefix}_disk", help=f"{prefix} volume size")

    images = parser.add_argument_group("images")
    images.add_argument("--pull-policy", choices=PULL_POLICIES, default=None, help="Image pull policy")
    images.add_argument(
        "--image",
        action="append",
        dest="images",
        default=None,
        metavar="COMPONENT=IMAGE",
        help="Image reference for a component (repeatable)",
    )
    return parser


def _resolve(args: argparse.Namespace, config: ForgeopsConfig, key: str):
    value = getattr(args, key, None)
    return config.get(key) if value is None else value


def run_generate(args: argparse.Namespace, config: ForgeopsConfig) -> dict:
    """Collect overrides and materialize the overlay and Helm values."""
    if args.kustomize:
        config.settings["kustomize_path"] = args.kustomize
    if args.helm:
        config.settings["helm_path"] = args.helm
    if args.sizing_path:
        config.settings["sizing_path"] = args.sizing_path
    if args.addons_path:
        config.settings["addons_path"] = args.addons_path

    params = vars(args).copy()
    params["operator"] = _resolve(args, config, "operator")
    params["pull_policy"] = _resolve(args, config, "pull_policy")
    record = collect_overrides(params, config.sizing_path)

    overlay_name = _resolve(args, config, "overlay")
    source_name = _resolve(args, config, "source")
    cmdline = command_line()

    result = {"overlay": None, "helm": None}
    if not _resolve(args, config, "no_kustomize"):
        result["overlay"] = materialize_overlay(
            config.overlay_dir(overlay_name),
            record,
            source=config.overlay_dir(source_name),
            loader=PatcherLoader(config.addons_path),
            cmdline=cmdline,
            dry_run=args.dry_run,
        )
    if not _resolve(args, config, "no_helm"):
        result["helm"] = materialize_helm_values(
            config.helm_dir(overlay_name),
            record,
            source=config.helm_dir(source_name),
            cmdline=cmdline,
            dry_run=args.dry_run,
        )
    return result


def print_result(result: dict, as_json: bool):
    if as_json:
        print(json.dumps(result, indent=2))
        return

    dry_run = any(part and part.get("dry_run") for part in result.values())
    created = " (would be created)" if dry_run else " (created)"
    changed = "Would change       :" if dry_run else "Changed files      :"

    overlay = result.get("overlay")
    if overlay:
        print(f"Overlay            : {overlay['overlay']}{created if overlay['created'] else ''}")
        print(f"Components         : {', '.join(overlay['components']) or '(none)'}")
        print(changed)
        for f in overlay["changed_files"]:
            print(f"  - {f}")
        if overlay["images"]:
            print(f"Images set         : {', '.join(overlay['images'])}")
    helm = result.get("helm")
    if helm:
        print(f"Helm values        : {helm['helm_dir']}{created if helm['created'] else ''}")
        print(changed)
        for f in helm["files"]:
            print(f"  - {f}")


def main(argv=None, config=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        result = run_generate(args, config or ForgeopsConfig())
    except OverlayError as e:
        logger.error(str(e))
        return e.exit_code

    print_result(result, args.json_output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
