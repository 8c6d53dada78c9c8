from __future__ import annotations

import io

import pytest

from pkiplot.cli import cmd_render, main, select_renderer
from pkiplot.config import load_run_config
from pkiplot.export.renderers import default_renderers
from pkiplot.util.errors import (
    ConfigError,
    ExitCode,
    LoadError,
    MissingIdentityError,
    RenderError,
    as_exit_code,
)

EXAMPLE = """\
apiVersion: cert-manager.io/v1
kind: ClusterIssuer
metadata:
  name: ci
---
apiVersion: cert-manager.io/v1
kind: Certificate
metadata:
  name: c1
  namespace: default
spec:
  secretName: c1-tls
  issuerRef:
    name: ci
    kind: ClusterIssuer
"""


def _write_example(tmp_path):
    path = tmp_path / "pki.yaml"
    path.write_text(EXAMPLE, encoding="utf-8")
    return path


def test_main_prints_mermaid(tmp_path, capsys) -> None:
    path = _write_example(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["--no-styles", str(path)])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert out.startswith("graph TB\n")
    assert "\tclusterissuer_ci --> certificate_default_c1\n" in out
    assert "classDef" not in out


def test_main_prints_graphviz(tmp_path, capsys) -> None:
    path = _write_example(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["-f", "graphviz", str(path)])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "digraph pki {" in out
    assert "certificate_default_c1 -> clusterissuer_ci" in out


def test_main_version(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("pkiplot ")


def test_main_without_sources_is_config_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == int(ExitCode.CONFIG_ERROR)
    assert "No input file(s) provided" in capsys.readouterr().err


def test_main_rejects_unknown_format(tmp_path, capsys) -> None:
    path = _write_example(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["-f", "svg", str(path)])

    assert excinfo.value.code == int(ExitCode.CONFIG_ERROR)
    assert "must be one of graphviz, mermaid" in capsys.readouterr().err


def test_main_missing_source_is_load_error(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.yaml")])

    assert excinfo.value.code == int(ExitCode.LOAD_ERROR)
    assert capsys.readouterr().out == ""


def test_cmd_render_reads_stdin() -> None:
    cfg = load_run_config(["--show-synthetics", "-"])
    out = io.StringIO()

    rc = cmd_render(cfg, default_renderers(cfg.render_options()), stdout=out, stdin=io.StringIO(EXAMPLE))

    assert rc == 0
    assert "\tclusterissuer_ci([ci]):::clusterissuer" in out.getvalue()
    assert out.getvalue().endswith("\n")


def test_select_renderer_unknown_name() -> None:
    with pytest.raises(ConfigError, match="'dot'"):
        select_renderer(default_renderers(), "dot")


def test_exit_code_mapping() -> None:
    assert as_exit_code(ConfigError("x")) == ExitCode.CONFIG_ERROR
    assert as_exit_code(LoadError("x")) == ExitCode.LOAD_ERROR
    assert as_exit_code(MissingIdentityError("Certificate", 3)) == ExitCode.BUILD_ERROR
    assert as_exit_code(RenderError("x")) == ExitCode.RENDER_ERROR
    assert as_exit_code(RuntimeError("x")) == 1
