from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple

CERT_MANAGER_GROUP = "cert-manager.io"
SECRET_TYPE_TLS = "kubernetes.io/tls"


class ResourceKind(str, Enum):
    CERTIFICATE = "Certificate"
    ISSUER = "Issuer"
    CLUSTER_ISSUER = "ClusterIssuer"
    SECRET = "Secret"

    @property
    def cluster_scoped(self) -> bool:
        return self is ResourceKind.CLUSTER_ISSUER

    @property
    def is_issuer(self) -> bool:
        return self in (ResourceKind.ISSUER, ResourceKind.CLUSTER_ISSUER)


@dataclass(frozen=True)
class IssuerRef:
    name: str
    kind: str = ""
    group: str = ""

    @property
    def resolved_kind(self) -> Optional[ResourceKind]:
        """Kind of the referenced issuer; None for issuers outside cert-manager."""
        if self.group and self.group != CERT_MANAGER_GROUP:
            return None
        if not self.kind or self.kind == ResourceKind.ISSUER.value:
            return ResourceKind.ISSUER
        if self.kind == ResourceKind.CLUSTER_ISSUER.value:
            return ResourceKind.CLUSTER_ISSUER
        return None


@dataclass(frozen=True)
class Resource:
    """One PKI object. The `kind` tag decides which relationship fields apply.

    Certificate: secret_name, issuer_ref, is_ca
    Issuer / ClusterIssuer: ca_secret_name
    Secret: secret_type (no outgoing relationships)
    """

    kind: ResourceKind
    name: str = ""
    namespace: str = ""
    generate_name: str = ""
    secret_name: str = ""
    issuer_ref: Optional[IssuerRef] = None
    is_ca: bool = False
    ca_secret_name: str = ""
    secret_type: str = ""

    @classmethod
    def certificate(
        cls,
        name: str,
        namespace: str,
        *,
        secret_name: str = "",
        issuer_ref: Optional[IssuerRef] = None,
        is_ca: bool = False,
        generate_name: str = "",
    ) -> Resource:
        return cls(
            kind=ResourceKind.CERTIFICATE,
            name=name,
            namespace=namespace,
            generate_name=generate_name,
            secret_name=secret_name,
            issuer_ref=issuer_ref,
            is_ca=is_ca,
        )

    @classmethod
    def issuer(cls, name: str, namespace: str, *, ca_secret_name: str = "", generate_name: str = "") -> Resource:
        return cls(
            kind=ResourceKind.ISSUER,
            name=name,
            namespace=namespace,
            generate_name=generate_name,
            ca_secret_name=ca_secret_name,
        )

    @classmethod
    def cluster_issuer(cls, name: str, *, ca_secret_name: str = "", generate_name: str = "") -> Resource:
        return cls(
            kind=ResourceKind.CLUSTER_ISSUER,
            name=name,
            generate_name=generate_name,
            ca_secret_name=ca_secret_name,
        )

    @classmethod
    def secret(
        cls,
        name: str,
        namespace: str,
        *,
        secret_type: str = SECRET_TYPE_TLS,
        generate_name: str = "",
    ) -> Resource:
        return cls(
            kind=ResourceKind.SECRET,
            name=name,
            namespace=namespace,
            generate_name=generate_name,
            secret_type=secret_type,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.generate_name


def resource_sort_key(resource: Resource) -> Tuple[int, str, str]:
    # cluster-scoped objects sort before namespaced ones
    return (1 if resource.namespace else 0, resource.namespace, resource.display_name)


@dataclass(frozen=True)
class ResourceCollection:
    certificates: Tuple[Resource, ...] = field(default_factory=tuple)
    issuers: Tuple[Resource, ...] = field(default_factory=tuple)
    cluster_issuers: Tuple[Resource, ...] = field(default_factory=tuple)
    secrets: Tuple[Resource, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, *resources: Resource) -> ResourceCollection:
        """Group loose resources by kind, keeping the loader's sort order."""
        grouped = {kind: [] for kind in ResourceKind}
        for res in resources:
            grouped[res.kind].append(res)
        return cls(
            certificates=tuple(sorted(grouped[ResourceKind.CERTIFICATE], key=resource_sort_key)),
            issuers=tuple(sorted(grouped[ResourceKind.ISSUER], key=resource_sort_key)),
            cluster_issuers=tuple(sorted(grouped[ResourceKind.CLUSTER_ISSUER], key=resource_sort_key)),
            secrets=tuple(sorted(grouped[ResourceKind.SECRET], key=resource_sort_key)),
        )

    def by_kind(self, kind: ResourceKind) -> Tuple[Resource, ...]:
        if kind is ResourceKind.CERTIFICATE:
            return self.certificates
        if kind is ResourceKind.ISSUER:
            return self.issuers
        if kind is ResourceKind.CLUSTER_ISSUER:
            return self.cluster_issuers
        if kind is ResourceKind.SECRET:
            return self.secrets
        raise ValueError(f"Unknown resource kind: {kind}")

    def resources(self) -> Iterator[Resource]:
        yield from self.certificates
        yield from self.issuers
        yield from self.cluster_issuers
        yield from self.secrets

    def __len__(self) -> int:
        return len(self.certificates) + len(self.issuers) + len(self.cluster_issuers) + len(self.secrets)
