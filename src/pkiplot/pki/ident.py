from __future__ import annotations

from typing import NamedTuple, Optional

from ..util.errors import MissingIdentityError
from .types import Resource, ResourceKind


class ResourceId(NamedTuple):
    kind: ResourceKind
    namespace: str
    name: str

    @property
    def key(self) -> str:
        """Stable vertex hash, e.g. `certificate:default:web` or `clusterissuer:root`."""
        kind = self.kind.value.lower()
        if self.namespace:
            return f"{kind}:{self.namespace}:{self.name}"
        return f"{kind}:{self.name}"

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind.value} {self.namespace}/{self.name}"
        return f"{self.kind.value} {self.name}"


def reference_id(kind: ResourceKind, namespace: str, name: str) -> ResourceId:
    if kind.cluster_scoped:
        namespace = ""
    return ResourceId(kind, namespace or "", name)


def identify(resource: Resource, index: Optional[int] = None) -> ResourceId:
    name = resource.name or resource.generate_name
    if not name:
        raise MissingIdentityError(resource.kind.value, index)
    return reference_id(resource.kind, resource.namespace, name)
