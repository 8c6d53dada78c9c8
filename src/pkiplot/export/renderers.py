from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Set, Tuple

from ..graph.builder import Node, PkiGraph
from ..pki.types import ResourceKind

SYNTHETIC_SUFFIX = "_synthetic"

# (class, mermaid style, graphviz attributes); one entry per node class
NODE_STYLES: Tuple[Tuple[str, str, Mapping[str, str]], ...] = (
    ("clusterissuer", "color:#7F7", {"color": "#77FF77"}),
    ("issuer", "color:#77F", {"color": "#7777FF"}),
    ("ca", "color:#F77", {"color": "#FF7777"}),
    ("cert", "color:orange", {"color": "orange"}),
    ("secret", "color:red", {"color": "red"}),
)
SYNTHETIC_MERMAID_STYLE = "stroke-dasharray: 4 3"
SYNTHETIC_GRAPHVIZ_STYLE = "dashed"


class Renderer(Protocol):
    name: str

    def render(self, graph: PkiGraph) -> str:
        ...


@dataclass(frozen=True)
class RenderOptions:
    styles: bool = True


def node_class(node: Node) -> str:
    kind = node.kind
    if kind is ResourceKind.CLUSTER_ISSUER:
        cls = "clusterissuer"
    elif kind is ResourceKind.ISSUER:
        cls = "issuer"
    elif kind is ResourceKind.CERTIFICATE:
        cls = "ca" if node.is_ca else "cert"
    elif kind is ResourceKind.SECRET:
        cls = "secret"
    else:
        raise ValueError(f"Unknown resource kind: {kind}")
    if node.synthetic:
        cls += SYNTHETIC_SUFFIX
    return cls


def diagram_id(node: Node) -> str:
    """Identifier safe for both Mermaid and DOT, e.g. `certificate_default_web_tls`."""
    parts = [node.kind.value.lower()]
    if node.id.namespace:
        parts.append(node.id.namespace)
    parts.append(node.id.name)
    return re.sub(r"[^A-Za-z0-9_]", "_", "_".join(parts))


def diagram_ids(graph: PkiGraph) -> Dict[str, str]:
    """Map every vertex key to a unique diagram identifier.

    Sanitising can map distinct keys (`issuer:a-b:c`, `issuer:a:b-c`) onto the
    same `diagram_id`; later keys in sorted order then get a numeric suffix.
    """
    ids: Dict[str, str] = {}
    used: Set[str] = set()
    for node in graph.nodes():
        base = diagram_id(node)
        candidate = base
        n = 2
        while candidate in used:
            candidate = f"{base}_{n}"
            n += 1
        used.add(candidate)
        ids[node.key] = candidate
    return ids


def iter_display_edges(graph: PkiGraph) -> List[Tuple[Node, Node]]:
    """(dependency, dependent) pairs in sorted order, reversed for top-down reading."""
    out: List[Tuple[Node, Node]] = []
    for src_key in graph.keys():
        src = graph.node(src_key)
        for dst_key in graph.successors(src_key):
            out.append((graph.node(dst_key), src))
    return out


def default_renderers(options: Optional[RenderOptions] = None) -> Dict[str, Renderer]:
    from .dot import GraphvizRenderer
    from .mermaid import MermaidRenderer

    opts = options or RenderOptions()
    renderers: List[Renderer] = [MermaidRenderer(opts), GraphvizRenderer(opts)]
    return {r.name: r for r in renderers}


def renderer_names(renderers: Mapping[str, Renderer]) -> List[str]:
    return sorted(renderers)
