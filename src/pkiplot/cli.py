from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError, version as dist_version
from typing import List, Mapping, Optional, TextIO

from .config import RunConfig, dump_config, load_run_config
from .export.renderers import Renderer, default_renderers, renderer_names
from .graph.builder import build_graph
from .load.loader import load_pki
from .logging import LogConfig, get_logger, setup_logging
from .util.errors import ConfigError, as_exit_code

LOG = get_logger(__name__)


def package_version() -> str:
    try:
        return dist_version("pkiplot")
    except PackageNotFoundError:
        return "dev"


def select_renderer(renderers: Mapping[str, Renderer], name: str) -> Renderer:
    renderer = renderers.get(name)
    if renderer is None:
        raise ConfigError(f"Invalid output format {name!r}, must be one of {', '.join(renderer_names(renderers))}")
    return renderer


def cmd_render(
    cfg: RunConfig,
    renderers: Mapping[str, Renderer],
    *,
    stdout: Optional[TextIO] = None,
    stdin: Optional[TextIO] = None,
) -> int:
    out = stdout or sys.stdout
    if not cfg.sources:
        raise ConfigError("No input file(s) provided")
    renderer = select_renderer(renderers, cfg.format)

    collection = load_pki(cfg.sources, cfg.loader_options(), stdin=stdin)
    graph = build_graph(collection, cfg.graph_options())
    rendered = renderer.render(graph)

    out.write(rendered)
    out.write("\n")
    out.flush()
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    try:
        cfg = load_run_config(argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        LOG.debug("Configuration loaded", extra={"config": dump_config(cfg)})

        if cfg.version:
            print(f"pkiplot {package_version()}")
            sys.exit(0)

        renderers = default_renderers(cfg.render_options())
        sys.exit(cmd_render(cfg, renderers))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.debug("Execution failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
