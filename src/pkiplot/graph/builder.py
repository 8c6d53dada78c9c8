from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

import networkx as nx

from ..logging import get_logger
from ..pki.ident import ResourceId, identify, reference_id
from ..pki.types import Resource, ResourceCollection, ResourceKind
from ..util.errors import InconsistentGraphError

LOG = get_logger(__name__)

DEFAULT_CLUSTER_RESOURCE_NAMESPACE = "cert-manager"
_NODE_ATTR = "node"


@dataclass(frozen=True)
class GraphOptions:
    include_secrets: bool = False
    include_synthetic: bool = False
    cluster_resource_namespace: str = DEFAULT_CLUSTER_RESOURCE_NAMESPACE


@dataclass(frozen=True)
class Node:
    id: ResourceId
    resource: Optional[Resource] = None
    # True when the object was only referenced by name and not found in the input.
    synthetic: bool = False

    @property
    def key(self) -> str:
        return self.id.key

    @property
    def kind(self) -> ResourceKind:
        return self.id.kind

    @property
    def label(self) -> str:
        return self.id.name

    @property
    def is_ca(self) -> bool:
        return bool(self.resource is not None and self.resource.is_ca)


class PkiGraph:
    """Directed graph of PKI nodes. Edges point from a dependent to its dependency."""

    def __init__(self, raw: Optional[nx.DiGraph] = None) -> None:
        self._g: nx.DiGraph = raw if raw is not None else nx.DiGraph()

    def node(self, key: str) -> Node:
        if key not in self._g:
            raise InconsistentGraphError(f"inconsistent graph: unknown vertex {key!r}")
        node = self._g.nodes[key].get(_NODE_ATTR)
        if not isinstance(node, Node):
            raise InconsistentGraphError(f"inconsistent graph: vertex {key!r} has no node data")
        return node

    def keys(self) -> List[str]:
        return sorted(self._g.nodes)

    def nodes(self) -> List[Node]:
        return [self.node(key) for key in self.keys()]

    def synthetic_nodes(self) -> List[Node]:
        return [n for n in self.nodes() if n.synthetic]

    def successors(self, key: str) -> List[str]:
        return sorted(self._g.successors(key))

    def adjacency(self) -> Mapping[str, FrozenSet[str]]:
        return MappingProxyType({key: frozenset(self._g.successors(key)) for key in self.keys()})

    def edges(self) -> List[Tuple[str, str]]:
        return [(src, dst) for src in self.keys() for dst in self.successors(src)]

    def has_edge(self, src: str, dst: str) -> bool:
        return self._g.has_edge(src, dst)

    def __contains__(self, key: object) -> bool:
        return key in self._g

    def __len__(self) -> int:
        return self._g.number_of_nodes()


class _Builder:
    def __init__(self, options: GraphOptions) -> None:
        self.options = options
        self.graph = nx.DiGraph()
        self.synthesized = 0
        self.dropped = 0

    def add_resource(self, rid: ResourceId, resource: Resource) -> None:
        self.graph.add_node(rid.key, **{_NODE_ATTR: Node(id=rid, resource=resource)})

    def find_or_synthesize(self, rid: ResourceId, *, referrer: ResourceId) -> Optional[str]:
        if rid.key in self.graph:
            return rid.key
        if not self.options.include_synthetic:
            self.dropped += 1
            LOG.debug("Dropping reference to missing object", extra={"source": str(referrer), "target": str(rid)})
            return None
        self.graph.add_node(rid.key, **{_NODE_ATTR: Node(id=rid, synthetic=True)})
        self.synthesized += 1
        LOG.debug("Synthesized missing object", extra={"source": str(referrer), "target": str(rid)})
        return rid.key

    def link(self, src: ResourceId, dst: ResourceId) -> None:
        target = self.find_or_synthesize(dst, referrer=src)
        if target is None:
            return
        self.graph.add_edge(src.key, target)


def _issuer_ca_secret_id(rid: ResourceId, resource: Resource, options: GraphOptions) -> Optional[ResourceId]:
    if not resource.ca_secret_name:
        return None
    if rid.kind is ResourceKind.CLUSTER_ISSUER:
        namespace = options.cluster_resource_namespace
    else:
        namespace = rid.namespace
    return reference_id(ResourceKind.SECRET, namespace, resource.ca_secret_name)


def _certificate_secret_id(rid: ResourceId, resource: Resource) -> Optional[ResourceId]:
    if not resource.secret_name:
        return None
    return reference_id(ResourceKind.SECRET, rid.namespace, resource.secret_name)


def _certificate_issuer_id(rid: ResourceId, resource: Resource) -> Optional[ResourceId]:
    ref = resource.issuer_ref
    if ref is None or not ref.name:
        return None
    kind = ref.resolved_kind
    if kind is None:
        LOG.debug(
            "Ignoring issuer reference outside cert-manager",
            extra={"source": str(rid), "issuer_kind": ref.kind, "issuer_group": ref.group},
        )
        return None
    return reference_id(kind, rid.namespace, ref.name)


def _identify_all(collection: ResourceCollection, options: GraphOptions) -> List[Tuple[ResourceId, Resource]]:
    out: List[Tuple[ResourceId, Resource]] = []
    for kind in (ResourceKind.CERTIFICATE, ResourceKind.ISSUER, ResourceKind.CLUSTER_ISSUER, ResourceKind.SECRET):
        if kind is ResourceKind.SECRET and not options.include_secrets:
            continue
        for idx, res in enumerate(collection.by_kind(kind)):
            out.append((identify(res, idx), res))
    return out


def build_graph(collection: ResourceCollection, options: Optional[GraphOptions] = None) -> PkiGraph:
    """Derive the trust/provisioning graph for a loaded collection.

    Every identity is resolved before the first vertex is added, so a
    MissingIdentityError never leaves a partial graph behind.
    """
    opts = options or GraphOptions()
    entries = _identify_all(collection, opts)
    b = _Builder(opts)

    for rid, res in entries:
        b.add_resource(rid, res)

    # certificates keyed by the Secret they produce, for bridging
    certs_by_secret: Dict[ResourceId, List[ResourceId]] = {}

    for rid, res in entries:
        kind = rid.kind
        if kind is ResourceKind.CERTIFICATE:
            secret_id = _certificate_secret_id(rid, res)
            if secret_id is not None:
                if opts.include_secrets:
                    b.link(rid, secret_id)
                else:
                    certs_by_secret.setdefault(secret_id, []).append(rid)
            issuer_id = _certificate_issuer_id(rid, res)
            if issuer_id is not None:
                b.link(rid, issuer_id)
        elif kind is ResourceKind.ISSUER or kind is ResourceKind.CLUSTER_ISSUER:
            if opts.include_secrets:
                secret_id = _issuer_ca_secret_id(rid, res, opts)
                if secret_id is not None:
                    b.link(rid, secret_id)
        elif kind is ResourceKind.SECRET:
            pass
        else:
            raise ValueError(f"Unknown resource kind: {kind}")

    if not opts.include_secrets:
        for rid, res in entries:
            if not rid.kind.is_issuer:
                continue
            secret_id = _issuer_ca_secret_id(rid, res, opts)
            if secret_id is None:
                continue
            for cert_id in certs_by_secret.get(secret_id, []):
                b.graph.add_edge(rid.key, cert_id.key)

    LOG.info(
        "Graph built",
        extra={
            "nodes": b.graph.number_of_nodes(),
            "edges": b.graph.number_of_edges(),
            "synthetic": b.synthesized,
            "dropped_references": b.dropped,
        },
    )
    return PkiGraph(b.graph)
