from __future__ import annotations

from pathlib import Path

from overlay_classifier import classify_entry
from overlay_rewriter import (
    ds_connection_string,
    rewrite_ingress,
    rewrite_ingress_ops,
    rewrite_namespace,
    rewrite_platform_config,
)
from override_collector import OverrideRecord, collect_overrides
from yaml_docs import load_yaml, write_yaml


def test_ds_connection_string() -> None:
    assert ds_connection_string("ds-cts", 3) == (
        "ds-cts-0.ds-cts:1636,ds-cts-1.ds-cts:1636,ds-cts-2.ds-cts:1636"
    )
    assert ds_connection_string("ds-idrepo", 1) == "ds-idrepo-0.ds-idrepo:1636"


def test_namespace_set_and_removed(overlay: Path) -> None:
    rewrite_namespace(overlay, collect_overrides({"namespace": "staging"}))
    assert load_yaml(overlay / "kustomization.yaml")["namespace"] == "staging"

    rewrite_namespace(overlay, collect_overrides({"no_namespace": True}))
    assert "namespace" not in load_yaml(overlay / "kustomization.yaml")


def test_namespace_untouched_without_directive(overlay: Path) -> None:
    assert rewrite_namespace(overlay, OverrideRecord()) == []
    assert load_yaml(overlay / "kustomization.yaml")["namespace"] == "prod"


def test_ingress_ops_rewritten(overlay: Path) -> None:
    record = collect_overrides({"fqdn": "a.example.com,b.example.com"})
    changed = rewrite_ingress(classify_entry(overlay / "ingress"), record)
    assert changed == [str(overlay / "ingress" / "ingress-fqdn.yaml")]

    ops = load_yaml(overlay / "ingress" / "ingress-fqdn.yaml")
    values = {op["path"]: op["value"] for op in ops}
    assert values == {
        "/spec/rules/0/host": "a.example.com",
        "/spec/tls/0/hosts": ["a.example.com", "b.example.com"],
        "/spec/tls/0/secretName": "a.example.com",
    }


def test_ingress_class_appended_when_missing() -> None:
    ops = [{"op": "replace", "path": "/spec/rules/0/host", "value": "old"}]
    rewrite_ingress_ops(ops, collect_overrides({"ingress_class": "nginx"}))
    assert ops == [
        {"op": "replace", "path": "/spec/rules/0/host", "value": "old"},
        {"op": "replace", "path": "/spec/ingressClassName", "value": "nginx"},
    ]


def test_ingress_class_replaced_when_present() -> None:
    ops = [{"op": "add", "path": "/spec/ingressClassName", "value": "traefik"}]
    rewrite_ingress_ops(ops, collect_overrides({"ingress_class": "nginx"}))
    assert ops == [{"op": "add", "path": "/spec/ingressClassName", "value": "nginx"}]


def test_ingress_without_patch_file_is_skipped(overlay: Path) -> None:
    record = collect_overrides({"fqdn": "a.example.com"})
    assert rewrite_ingress(classify_entry(overlay / "am"), record) == []


def test_ingress_non_list_document_left_alone(tmp_path: Path) -> None:
    component = tmp_path / "ingress"
    write_yaml(component / "ingress-fqdn.yaml", {"not": "a list"})
    record = collect_overrides({"fqdn": "a.example.com"})
    assert rewrite_ingress(classify_entry(component), record) == []


def test_platform_config_fqdn_and_servers(overlay: Path) -> None:
    record = collect_overrides({"fqdn": "iam.example.com", "idrepo_rep": 2})
    rewrite_platform_config(classify_entry(overlay / "base"), record)

    data = load_yaml(overlay / "base" / "platform-config.yaml")["data"]
    assert data["FQDN"] == "iam.example.com"
    assert data["AM_STORES_USER_SERVERS"] == "ds-idrepo-0.ds-idrepo:1636,ds-idrepo-1.ds-idrepo:1636"
    assert data["AM_STORES_CTS_SERVERS"] == "ds-cts-0.ds-cts:1636"


def test_platform_config_only_for_base(overlay: Path) -> None:
    record = collect_overrides({"fqdn": "iam.example.com"})
    assert rewrite_platform_config(classify_entry(overlay / "am"), record) == []
