from __future__ import annotations

import json
from pathlib import Path

import pytest

import forgeops_config
from forgeops_config import REPO_ROOT, ForgeopsConfig, default_root


def test_defaults(tmp_path: Path) -> None:
    config = ForgeopsConfig(root=tmp_path, env={})
    assert config.get("overlay") == "demo"
    assert config.get("source") == "default"
    assert config.get("no_helm") is False
    assert config.get("pull_policy") is None
    assert config.kustomize_path == tmp_path / "kustomize"
    assert config.helm_path == tmp_path / "helm"
    assert config.sizing_path == tmp_path / "sizing"
    assert config.addons_path == tmp_path / "addons"


def test_config_file_then_environment(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "forgeops.json").write_text(
        json.dumps({"overlay": "stage", "helm_path": "/srv/helm", "operator": True, "bogus": 1})
    )
    config = ForgeopsConfig(root=tmp_path, env={"OVERLAY": "prod", "NO_HELM": "true", "SOURCE": ""})

    assert config.get("overlay") == "prod"
    assert config.get("source") == "default"
    assert config.get("operator") is True
    assert config.get("no_helm") is True
    assert config.helm_path == Path("/srv/helm")
    assert "bogus" in caplog.text


@pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("false", False), ("0", False)])
def test_boolean_environment_values(tmp_path: Path, value: str, expected: bool) -> None:
    assert ForgeopsConfig(root=tmp_path, env={"OPERATOR": value}).get("operator") is expected


def test_overlay_and_helm_dirs(tmp_path: Path) -> None:
    config = ForgeopsConfig(root=tmp_path, env={"KUSTOMIZE_PATH": "/opt/kustomize"})
    assert config.overlay_dir("demo") == Path("/opt/kustomize/overlay/demo")
    assert config.overlay_dir("/abs/overlay") == Path("/abs/overlay")
    assert config.helm_dir("/abs/overlay") == tmp_path / "helm" / "overlay"


def test_resolve_path_rejects_other_keys(tmp_path: Path) -> None:
    with pytest.raises(KeyError):
        ForgeopsConfig(root=tmp_path, env={}).resolve_path("overlay")


def test_addons_path_from_environment(tmp_path: Path) -> None:
    config = ForgeopsConfig(root=tmp_path, env={"ADDONS_PATH": "/opt/forgeops/addons"})
    assert config.addons_path == Path("/opt/forgeops/addons")


def test_default_root_is_the_checkout() -> None:
    # the test suite runs from a checkout, which has addons/ next to scripts/
    assert default_root() == REPO_ROOT


def test_installed_copy_uses_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(forgeops_config, "REPO_ROOT", tmp_path / "site-packages")
    monkeypatch.chdir(tmp_path)
    assert default_root().resolve() == tmp_path.resolve()
    assert ForgeopsConfig(env={}).addons_path.resolve() == (tmp_path / "addons").resolve()
