from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, TextIO, Tuple

import yaml

from ..logging import get_logger
from ..pki.ident import identify
from ..pki.types import (
    CERT_MANAGER_GROUP,
    SECRET_TYPE_TLS,
    IssuerRef,
    Resource,
    ResourceCollection,
    ResourceKind,
    resource_sort_key,
)
from ..util.errors import LoadError, MissingIdentityError

LOG = get_logger(__name__)

STDIN_SOURCE = "-"
DEFAULT_FILE_EXTENSIONS: Tuple[str, ...] = ("yaml", "yml")


@dataclass(frozen=True)
class LoaderOptions:
    # Only keep namespaced objects in this namespace; also the default for objects without one.
    namespace: Optional[str] = None
    file_extensions: Tuple[str, ...] = DEFAULT_FILE_EXTENSIONS


def _api_group(api_version: str) -> str:
    if "/" in api_version:
        return api_version.split("/", 1)[0]
    return ""


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _metadata(doc: Mapping[str, Any]) -> Tuple[str, str, str]:
    md = _mapping(doc.get("metadata"))
    return _str(md.get("name")), _str(md.get("namespace")), _str(md.get("generateName"))


def _parse_certificate(doc: Mapping[str, Any]) -> Resource:
    name, namespace, generate_name = _metadata(doc)
    spec = _mapping(doc.get("spec"))
    ref = _mapping(spec.get("issuerRef"))
    issuer_ref = None
    if ref:
        issuer_ref = IssuerRef(name=_str(ref.get("name")), kind=_str(ref.get("kind")), group=_str(ref.get("group")))
    return Resource.certificate(
        name,
        namespace,
        generate_name=generate_name,
        secret_name=_str(spec.get("secretName")),
        issuer_ref=issuer_ref,
        is_ca=spec.get("isCA") is True,
    )


def _ca_secret_name(doc: Mapping[str, Any]) -> str:
    spec = _mapping(doc.get("spec"))
    return _str(_mapping(spec.get("ca")).get("secretName"))


def _parse_document(doc: Mapping[str, Any]) -> List[Resource]:
    kind = _str(doc.get("kind"))
    group = _api_group(_str(doc.get("apiVersion")))

    # recurse into lists
    if kind == "List" or (kind.endswith("List") and isinstance(doc.get("items"), list)):
        out: List[Resource] = []
        for item in doc.get("items") or []:
            if isinstance(item, Mapping):
                out.extend(_parse_document(item))
        return out

    if kind == "Secret" and group == "":
        # non-TLS secrets (ACME account keys, etc.) do not shape the PKI
        if _str(doc.get("type")) != SECRET_TYPE_TLS:
            return []
        name, namespace, generate_name = _metadata(doc)
        return [Resource.secret(name, namespace, generate_name=generate_name)]

    if group != CERT_MANAGER_GROUP:
        return []

    if kind == "Certificate":
        return [_parse_certificate(doc)]
    if kind == "Issuer":
        name, namespace, generate_name = _metadata(doc)
        return [Resource.issuer(name, namespace, generate_name=generate_name, ca_secret_name=_ca_secret_name(doc))]
    if kind == "ClusterIssuer":
        # cluster-scoped: any metadata.namespace is misleading and dropped
        name, _, generate_name = _metadata(doc)
        return [Resource.cluster_issuer(name, generate_name=generate_name, ca_secret_name=_ca_secret_name(doc))]
    return []


def _apply_namespace(resources: Iterable[Resource], options: LoaderOptions, *, where: str) -> List[Resource]:
    out: List[Resource] = []
    for res in resources:
        if res.kind.cluster_scoped:
            out.append(res)
            continue
        if not res.namespace:
            if not options.namespace:
                raise LoadError(f"{where}: {res.kind.value} has no metadata.namespace set and no --namespace provided")
            res = _with_namespace(res, options.namespace)
        if options.namespace and res.namespace != options.namespace:
            continue
        out.append(res)
    return out


def _with_namespace(res: Resource, namespace: str) -> Resource:
    return replace(res, namespace=namespace)


def parse_stream(text: str, options: LoaderOptions, *, source: str) -> List[Resource]:
    """Decode a (possibly multi-document) YAML/JSON stream into PKI resources."""
    out: List[Resource] = []
    try:
        docs = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise LoadError(f"{source}: document is not valid YAML: {e}") from e
    for i, doc in enumerate(docs, start=1):
        if doc is None:
            continue
        if not isinstance(doc, Mapping):
            raise LoadError(f"{source}: document {i} is not a Kubernetes object")
        out.extend(_apply_namespace(_parse_document(doc), options, where=f"{source}: document {i}"))
    return out


def _has_extension(path: Path, extensions: Sequence[str]) -> bool:
    return path.suffix.lstrip(".") in extensions


def _iter_directory(root: Path, extensions: Sequence[str]) -> Iterable[Path]:
    for entry in sorted(root.iterdir()):
        if entry.is_dir() and entry.is_symlink():
            LOG.debug("Skipping symlinked directory", extra={"path": str(entry)})
            continue
        if entry.is_dir():
            yield from _iter_directory(entry, extensions)
        elif _has_extension(entry, extensions):
            yield entry


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise LoadError(f"failed to read file {path}: {e}") from e


def _load_source(source: str, options: LoaderOptions, stdin: Optional[TextIO]) -> List[Resource]:
    if source == STDIN_SOURCE:
        stream = stdin if stdin is not None else sys.stdin
        if stream.isatty():
            raise LoadError("no data provided on stdin")
        return parse_stream(stream.read(), options, source="<stdin>")

    path = Path(source)
    if not path.exists():
        raise LoadError(f"invalid source {source!r}: no such file or directory")
    if path.is_dir():
        out: List[Resource] = []
        for file_path in _iter_directory(path, options.file_extensions):
            LOG.debug("Loading manifest file", extra={"path": str(file_path)})
            out.extend(parse_stream(_read_file(file_path), options, source=str(file_path)))
        return out
    return parse_stream(_read_file(path), options, source=source)


def _check_identities(resources: Sequence[Resource]) -> None:
    seen: Dict[ResourceKind, Set[str]] = {}
    counters: Dict[ResourceKind, int] = {}
    for res in resources:
        idx = counters.get(res.kind, 0)
        counters[res.kind] = idx + 1
        try:
            rid = identify(res, idx)
        except MissingIdentityError as e:
            raise LoadError(f"{res.kind.value} {idx} is invalid: {e}") from e
        keys = seen.setdefault(res.kind, set())
        if rid.key in keys:
            raise LoadError(f"found multiple definitions for {rid}")
        keys.add(rid.key)


def load_pki(
    sources: Sequence[str],
    options: Optional[LoaderOptions] = None,
    *,
    stdin: Optional[TextIO] = None,
) -> ResourceCollection:
    """Load all sources into one sorted, duplicate-free ResourceCollection."""
    opts = options or LoaderOptions()
    resources: List[Resource] = []
    for source in sources:
        resources.extend(_load_source(source, opts, stdin))

    _check_identities(resources)
    collection = ResourceCollection.of(*sorted(resources, key=resource_sort_key))
    LOG.info(
        "Manifests loaded",
        extra={
            "sources": len(sources),
            "certificates": len(collection.certificates),
            "issuers": len(collection.issuers),
            "cluster_issuers": len(collection.cluster_issuers),
            "secrets": len(collection.secrets),
        },
    )
    return collection
