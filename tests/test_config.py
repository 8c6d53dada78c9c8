from __future__ import annotations

import pytest

from pkiplot.config import DEFAULT_FORMAT, RunConfig, dump_config, load_run_config
from pkiplot.util.errors import ConfigError


def test_defaults_from_argv_only() -> None:
    cfg = load_run_config(["pki.yaml"])

    assert isinstance(cfg, RunConfig)
    assert cfg.sources == ("pki.yaml",)
    assert cfg.format == DEFAULT_FORMAT
    assert cfg.cluster_resource_namespace == "cert-manager"
    assert cfg.show_secrets is False
    assert cfg.show_synthetics is False
    assert cfg.styles is True
    assert cfg.log_level == "WARNING"


def test_graph_and_render_options_follow_flags() -> None:
    cfg = load_run_config(
        [
            "--show-secrets",
            "--show-synthetics",
            "--no-styles",
            "--cluster-resource-namespace",
            "pki",
            "a.yaml",
            "b.yaml",
        ]
    )

    opts = cfg.graph_options()
    assert opts.include_secrets is True
    assert opts.include_synthetic is True
    assert opts.cluster_resource_namespace == "pki"
    assert cfg.render_options().styles is False
    assert cfg.sources == ("a.yaml", "b.yaml")


def test_env_overrides_config_file_and_cli_overrides_env(tmp_path, monkeypatch) -> None:
    cfg_path = tmp_path / "pkiplot.yaml"
    cfg_path.write_text("format: graphviz\nnamespace: from-config\nshow_secrets: true\n", encoding="utf-8")
    monkeypatch.setenv("PKIPLOT_NAMESPACE", "from-env")

    cfg = load_run_config(["--config", str(cfg_path), "x.yaml"])
    assert cfg.format == "graphviz"
    assert cfg.namespace == "from-env"
    assert cfg.show_secrets is True

    cfg = load_run_config(["--config", str(cfg_path), "-n", "from-cli", "--no-show-secrets", "x.yaml"])
    assert cfg.namespace == "from-cli"
    assert cfg.show_secrets is False
    assert cfg.loader_options().namespace == "from-cli"


def test_verbose_enables_debug_logging(monkeypatch) -> None:
    monkeypatch.setenv("PKIPLOT_LOG_LEVEL", "error")

    assert load_run_config(["x.yaml"]).log_level == "ERROR"
    assert load_run_config(["-v", "x.yaml"]).log_level == "DEBUG"


def test_config_file_type_errors(tmp_path) -> None:
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text("show_secrets: maybe\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="show_secrets"):
        load_run_config(["--config", str(cfg_path), "x.yaml"])


def test_config_file_unknown_keys_warn(tmp_path) -> None:
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text('{"format": "mermaid", "colour": "blue"}', encoding="utf-8")

    with pytest.warns(UserWarning, match="colour"):
        cfg = load_run_config(["--config", str(cfg_path), "x.yaml"])
    assert cfg.format == "mermaid"


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_run_config(["--config", str(tmp_path / "nope.yaml"), "x.yaml"])


def test_dump_config_is_plain_dict() -> None:
    dumped = dump_config(load_run_config(["-f", "GraphViz", "x.yaml"]))

    assert dumped["format"] == "graphviz"
    assert dumped["sources"] == ["x.yaml"]
