from __future__ import annotations

import pytest

from pkiplot.pki.ident import ResourceId, identify, reference_id
from pkiplot.pki.types import IssuerRef, Resource, ResourceKind
from pkiplot.util.errors import MissingIdentityError


def test_identify_namespaced_certificate() -> None:
    rid = identify(Resource.certificate("web", "default"))
    assert rid == ResourceId(ResourceKind.CERTIFICATE, "default", "web")
    assert rid.key == "certificate:default:web"


def test_identify_falls_back_to_generate_name() -> None:
    rid = identify(Resource.issuer("", "team-a", generate_name="issuer-"))
    assert rid.name == "issuer-"
    assert rid.key == "issuer:team-a:issuer-"


def test_identify_cluster_issuer_ignores_namespace() -> None:
    # populated by mistake; must not influence identity
    res = Resource(kind=ResourceKind.CLUSTER_ISSUER, name="root", namespace="oops")
    rid = identify(res)
    assert rid.namespace == ""
    assert rid.key == "clusterissuer:root"
    assert rid == identify(Resource.cluster_issuer("root"))


def test_reference_id_clears_namespace_for_cluster_scope() -> None:
    assert reference_id(ResourceKind.CLUSTER_ISSUER, "default", "ci").key == "clusterissuer:ci"
    assert reference_id(ResourceKind.SECRET, "cert-manager", "ca").key == "secret:cert-manager:ca"


def test_identify_missing_name_names_kind_and_index() -> None:
    with pytest.raises(MissingIdentityError) as excinfo:
        identify(Resource.certificate("", "default"), 3)
    assert excinfo.value.kind == "Certificate"
    assert excinfo.value.index == 3
    assert "Certificate 3" in str(excinfo.value)


def test_issuer_ref_kind_defaults_to_issuer() -> None:
    assert IssuerRef(name="x").resolved_kind is ResourceKind.ISSUER
    assert IssuerRef(name="x", kind="ClusterIssuer").resolved_kind is ResourceKind.CLUSTER_ISSUER
    assert IssuerRef(name="x", kind="ClusterIssuer", group="cert-manager.io").resolved_kind is ResourceKind.CLUSTER_ISSUER
    assert IssuerRef(name="x", kind="AWSPCAIssuer", group="awspca.cert-manager.io").resolved_kind is None
