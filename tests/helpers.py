"""Sample overlay trees for the tests."""

from __future__ import annotations

from pathlib import Path

from yaml_docs import write_yaml


def _deployment(name: str) -> dict:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name},
        "spec": {
            "replicas": 1,
            "template": {
                "spec": {
                    "containers": [
                        {
                            "name": name,
                            "image": name,
                            "imagePullPolicy": "IfNotPresent",
                            "resources": {
                                "requests": {"cpu": "100m", "memory": "1Gi"},
                                "limits": {"cpu": "1", "memory": "1Gi"},
                            },
                        }
                    ]
                }
            },
        },
    }


def _statefulset(name: str) -> dict:
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {"name": name},
        "spec": {
            "replicas": 1,
            "template": {
                "spec": {
                    "initContainers": [
                        {"name": "init", "image": "ds", "resources": {"requests": {"cpu": "100m"}}}
                    ],
                    "containers": [
                        {
                            "name": "ds",
                            "image": "ds",
                            "resources": {"requests": {"cpu": "100m", "memory": "2Gi"}},
                        }
                    ],
                }
            },
            "volumeClaimTemplates": [
                {
                    "metadata": {"name": "data"},
                    "spec": {
                        "accessModes": ["ReadWriteOnce"],
                        "storageClassName": "fast",
                        "resources": {"requests": {"storage": "10Gi"}},
                    },
                }
            ],
        },
    }


def _directory_service(name: str) -> dict:
    return {
        "apiVersion": "directory.forgerock.io/v1alpha1",
        "kind": "DirectoryService",
        "metadata": {"name": name},
        "spec": {
            "replicas": 1,
            "image": "ds",
            "podTemplate": {
                "resources": {"requests": {"cpu": "100m", "memory": "2Gi"}},
            },
            "volumeClaimSpec": {
                "storageClassName": "fast",
                "resources": {"requests": {"storage": "10Gi"}},
            },
        },
    }


def build_overlay(root: Path) -> Path:
    """Write a small but complete source overlay under ``root``."""
    write_yaml(
        root / "kustomization.yaml",
        {
            "apiVersion": "kustomize.config.k8s.io/v1beta1",
            "kind": "Kustomization",
            "namespace": "prod",
            "resources": ["base", "am", "idm", "ds-cts", "ds-idrepo", "ingress"],
        },
    )
    write_yaml(root / "base" / "kustomization.yaml", {"resources": ["platform-config.yaml"]})
    write_yaml(
        root / "base" / "platform-config.yaml",
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "platform-config"},
            "data": {
                "FQDN": "default.iam.example.com",
                "AM_STORES_CTS_SERVERS": "ds-cts-0.ds-cts:1636",
                "AM_STORES_USER_SERVERS": "ds-idrepo-0.ds-idrepo:1636",
            },
        },
    )
    for name in ("am", "idm"):
        write_yaml(root / name / "kustomization.yaml", {"resources": ["deployment.yaml"]})
        write_yaml(root / name / "deployment.yaml", _deployment(name))
    for name in ("ds-cts", "ds-idrepo"):
        write_yaml(root / name / "sts.yaml", _statefulset(name))
        write_yaml(root / f"{name}-operator" / "directoryservice.yaml", _directory_service(name))
    write_yaml(
        root / "ingress" / "ingress-fqdn.yaml",
        [
            {"op": "replace", "path": "/spec/rules/0/host", "value": "default.iam.example.com"},
            {"op": "replace", "path": "/spec/tls/0/hosts", "value": ["default.iam.example.com"]},
            {"op": "replace", "path": "/spec/tls/0/secretName", "value": "default.iam.example.com"},
        ],
    )
    write_yaml(
        root / "image-defaulter" / "kustomization.yaml",
        {
            "apiVersion": "kustomize.config.k8s.io/v1alpha1",
            "kind": "Component",
            "images": [{"name": "am", "newName": "am"}],
        },
    )
    (root / "README.md").write_text("not a component\n")
    return root


def snapshot(root: Path, skip: tuple = ("env.log",)) -> dict:
    """Map relative path -> file content for every file under ``root``."""
    return {
        str(p.relative_to(root)): p.read_text()
        for p in sorted(root.rglob("*"))
        if p.is_file() and p.name not in skip
    }


