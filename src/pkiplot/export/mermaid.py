from __future__ import annotations

from typing import List, Optional

from ..graph.builder import Node, PkiGraph
from ..logging import get_logger
from .renderers import (
    NODE_STYLES,
    SYNTHETIC_MERMAID_STYLE,
    SYNTHETIC_SUFFIX,
    RenderOptions,
    diagram_ids,
    iter_display_edges,
    node_class,
)

LOG = get_logger(__name__)


def _mermaid_label(value: str) -> str:
    # Stadium nodes use ([...]); keep those delimiters out of the label.
    safe = str(value).replace('"', "'")
    for ch in ("[", "]", "(", ")"):
        safe = safe.replace(ch, "")
    return safe


def _render_node(node: Node, node_id: str) -> str:
    return f"\t{node_id}([{_mermaid_label(node.label)}]):::{node_class(node)}"


def _style_block_lines() -> List[str]:
    lines: List[str] = []
    for cls, style, _ in NODE_STYLES:
        lines.append(f"\tclassDef {cls} {style}")
    for cls, style, _ in NODE_STYLES:
        lines.append(f"\tclassDef {cls}{SYNTHETIC_SUFFIX} {style},{SYNTHETIC_MERMAID_STYLE}")
    return lines


class MermaidRenderer:
    name = "mermaid"

    def __init__(self, options: Optional[RenderOptions] = None) -> None:
        self.options = options or RenderOptions()

    def render(self, graph: PkiGraph) -> str:
        lines: List[str] = ["graph TB"]
        ids = diagram_ids(graph)

        # nodes first, sorted by identifier for stable output
        for node in graph.nodes():
            lines.append(_render_node(node, ids[node.key]))
        lines.append("")

        # To have the chart read from top to bottom, edges are drawn from the
        # dependency to the dependent.
        for dependency, dependent in iter_display_edges(graph):
            lines.append(f"\t{ids[dependency.key]} --> {ids[dependent.key]}")

        if self.options.styles:
            lines.append("")
            lines.extend(_style_block_lines())

        LOG.debug("Rendered mermaid diagram", extra={"lines": len(lines)})
        return "\n".join(lines)
