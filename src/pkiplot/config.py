from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .export.renderers import RenderOptions
from .graph.builder import DEFAULT_CLUSTER_RESOURCE_NAMESPACE, GraphOptions
from .load.loader import LoaderOptions
from .util.errors import ConfigError

# --------
# Defaults
# --------
DEFAULT_FORMAT = "mermaid"
DEFAULT_LOG_LEVEL = "WARNING"
ALLOWED_CONFIG_KEYS = {
    "format",
    "namespace",
    "cluster_resource_namespace",
    "show_secrets",
    "show_synthetics",
    "styles",
    "log_level",
    "json_logs",
}
BOOL_CONFIG_KEYS = {"show_secrets", "show_synthetics", "styles", "json_logs"}
STR_CONFIG_KEYS = {"format", "namespace", "cluster_resource_namespace", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    sources: Tuple[str, ...] = field(default_factory=tuple)
    format: str = DEFAULT_FORMAT

    # Loader
    namespace: Optional[str] = None

    # Graph
    cluster_resource_namespace: str = DEFAULT_CLUSTER_RESOURCE_NAMESPACE
    show_secrets: bool = False
    show_synthetics: bool = False

    # Rendering
    styles: bool = True

    # Logging / misc
    verbose: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False
    version: bool = False

    def loader_options(self) -> LoaderOptions:
        return LoaderOptions(namespace=self.namespace or None)

    def graph_options(self) -> GraphOptions:
        return GraphOptions(
            include_secrets=self.show_secrets,
            include_synthetic=self.show_synthetics,
            cluster_resource_namespace=self.cluster_resource_namespace,
        )

    def render_options(self) -> RenderOptions:
        return RenderOptions(styles=self.styles)


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"Config field '{key}' must be a boolean")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ConfigError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkiplot",
        description="Render cert-manager Certificates, Issuers and Secrets as a diagram",
    )
    parser.add_argument(
        "sources",
        nargs="*",
        metavar="SOURCE",
        help="YAML file, directory or '-' for stdin",
    )
    parser.add_argument(
        "-n",
        "--namespace",
        default=None,
        help="Only include namespace-scoped resources in this namespace "
        "(also the default namespace for resources without namespace set)",
    )
    parser.add_argument("-f", "--format", default=None, help=f"Output format (default: {DEFAULT_FORMAT})")
    parser.add_argument(
        "--cluster-resource-namespace",
        default=None,
        help="cert-manager's cluster resource namespace, used to find secrets referenced by "
        f"cluster-scoped objects (default: {DEFAULT_CLUSTER_RESOURCE_NAMESPACE})",
    )
    parser.add_argument(
        "--show-secrets",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include Kubernetes Secrets in the graph",
    )
    parser.add_argument(
        "--show-synthetics",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include objects that are only referenced, but not included in the YAML files",
    )
    parser.add_argument(
        "--styles",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Append styling directives to the diagram (default: on)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable more verbose output")
    parser.add_argument("-V", "--version", action="store_true", help="Show version info and exit immediately")
    parser.add_argument("--config", type=Path, default=None, help="Optional YAML/JSON config file")
    parser.add_argument("--log-level", default=None, help="Log level (WARNING, INFO, DEBUG, ...)")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable JSON logs",
    )
    return parser


def load_run_config(argv: Optional[List[str]] = None) -> RunConfig:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.
    """
    parser = build_parser()
    ns = parser.parse_args(argv)

    base: Dict[str, Any] = {
        "format": DEFAULT_FORMAT,
        "namespace": None,
        "cluster_resource_namespace": DEFAULT_CLUSTER_RESOURCE_NAMESPACE,
        "show_secrets": False,
        "show_synthetics": False,
        "styles": True,
        "log_level": DEFAULT_LOG_LEVEL,
        "json_logs": False,
    }

    file_cfg: Dict[str, Any] = {}
    if ns.config:
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "format": _env_str("PKIPLOT_FORMAT"),
            "namespace": _env_str("PKIPLOT_NAMESPACE"),
            "cluster_resource_namespace": _env_str("PKIPLOT_CLUSTER_RESOURCE_NAMESPACE"),
            "show_secrets": _env_bool("PKIPLOT_SHOW_SECRETS"),
            "show_synthetics": _env_bool("PKIPLOT_SHOW_SYNTHETICS"),
            "styles": _env_bool("PKIPLOT_STYLES"),
            "log_level": _env_str("PKIPLOT_LOG_LEVEL"),
            "json_logs": _env_bool("PKIPLOT_JSON_LOGS"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "format": ns.format,
            "namespace": ns.namespace,
            "cluster_resource_namespace": ns.cluster_resource_namespace,
            "show_secrets": ns.show_secrets,
            "show_synthetics": ns.show_synthetics,
            "styles": ns.styles,
            "log_level": "DEBUG" if ns.verbose else ns.log_level,
            "json_logs": ns.json_logs,
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    crn = str(merged.get("cluster_resource_namespace") or "").strip()
    if not crn:
        raise ConfigError("cluster resource namespace must not be empty")

    return RunConfig(
        sources=tuple(ns.sources),
        format=str(merged["format"]).strip().lower(),
        namespace=str(merged["namespace"]) if merged.get("namespace") else None,
        cluster_resource_namespace=crn,
        show_secrets=bool(merged["show_secrets"]),
        show_synthetics=bool(merged["show_synthetics"]),
        styles=bool(merged["styles"]),
        verbose=bool(ns.verbose),
        log_level=str(merged.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
        json_logs=bool(merged["json_logs"]),
        version=bool(ns.version),
    )


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "sources": list(cfg.sources),
        "format": cfg.format,
        "namespace": cfg.namespace,
        "cluster_resource_namespace": cfg.cluster_resource_namespace,
        "show_secrets": cfg.show_secrets,
        "show_synthetics": cfg.show_synthetics,
        "styles": cfg.styles,
        "verbose": cfg.verbose,
        "log_level": cfg.log_level,
        "json_logs": cfg.json_logs,
    }
