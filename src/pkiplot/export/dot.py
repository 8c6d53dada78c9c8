from __future__ import annotations

from typing import Dict, Optional

import graphviz

from ..graph.builder import Node, PkiGraph
from ..logging import get_logger
from .renderers import NODE_STYLES, SYNTHETIC_GRAPHVIZ_STYLE, SYNTHETIC_SUFFIX, RenderOptions, diagram_ids, node_class

LOG = get_logger(__name__)

_BASE_STYLES: Dict[str, Dict[str, str]] = {cls: dict(attrs) for cls, _, attrs in NODE_STYLES}


def _node_attrs(node: Node, *, styles: bool) -> Dict[str, str]:
    cls = node_class(node)
    attrs: Dict[str, str] = {"class": cls}
    if not styles:
        return attrs
    base = cls[: -len(SYNTHETIC_SUFFIX)] if node.synthetic else cls
    attrs.update(_BASE_STYLES.get(base, {}))
    if node.synthetic:
        attrs["style"] = SYNTHETIC_GRAPHVIZ_STYLE
    return attrs


class GraphvizRenderer:
    """DOT output through the graphviz package; edges keep their logical direction."""

    name = "graphviz"

    def __init__(self, options: Optional[RenderOptions] = None) -> None:
        self.options = options or RenderOptions()

    def render(self, graph: PkiGraph) -> str:
        # rankdir=BT puts signers above the objects that depend on them
        dot = graphviz.Digraph(name="pki", strict=True, graph_attr={"rankdir": "BT"})
        ids = diagram_ids(graph)

        for node in graph.nodes():
            dot.node(ids[node.key], label=node.label, **_node_attrs(node, styles=self.options.styles))

        for src_key, dst_key in graph.edges():
            dot.edge(ids[src_key], ids[dst_key])

        LOG.debug("Rendered graphviz diagram", extra={"edges": len(graph.edges())})
        return dot.source
