from __future__ import annotations

from .ident import ResourceId, identify, reference_id
from .types import IssuerRef, Resource, ResourceCollection, ResourceKind

__all__ = [
    "IssuerRef",
    "Resource",
    "ResourceCollection",
    "ResourceId",
    "ResourceKind",
    "identify",
    "reference_id",
]
