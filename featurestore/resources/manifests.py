"""Load and dump multi-document YAML manifests.

A manifest file may hold any mix of ``FeatureStore`` and ``Secret``
documents separated by ``---``, in any order.
"""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from featurestore.config import settings
from featurestore.errors import ManifestError, SecretResolutionError
from featurestore.resources.models import KIND, FeatureStoreResource
from featurestore.resources.secrets import SecretManifest, SecretResolver

logger = structlog.get_logger()

OIDC_REQUIRED_KEYS = ("client_id", "auth_discovery_url")


@dataclass
class ManifestBundle:
    feature_stores: list[FeatureStoreResource] = field(default_factory=list)
    secrets: list[SecretManifest] = field(default_factory=list)
    default_namespace: str = field(default_factory=lambda: settings.default_namespace)

    def resolver(self) -> SecretResolver:
        return SecretResolver(self.secrets, default_namespace=self.default_namespace)

    def get(self, name: str | None = None) -> FeatureStoreResource:
        """Return the FeatureStore named ``name``, or the only one in the bundle."""
        if name is None:
            if len(self.feature_stores) != 1:
                raise LookupError(
                    f"bundle holds {len(self.feature_stores)} FeatureStore documents; "
                    "pass a name to pick one"
                )
            return self.feature_stores[0]
        for resource in self.feature_stores:
            if resource.metadata.name == name:
                return resource
        raise LookupError(f"FeatureStore '{name}' not found in bundle")

    def validate(self) -> list[str]:
        """Cross-document checks. Returns a list of problems, empty when valid."""
        problems: list[str] = []
        resolver = self.resolver()

        names = Counter(
            ("FeatureStore", fs.namespace_or(self.default_namespace), fs.metadata.name)
            for fs in self.feature_stores
        )
        names.update(
            ("Secret", s.metadata.namespace or self.default_namespace, s.metadata.name)
            for s in self.secrets
        )
        for (kind, namespace, name), count in sorted(names.items()):
            if count > 1:
                problems.append(
                    f"{kind} '{name}' is declared {count} times in namespace '{namespace}'"
                )

        projects = Counter(
            (fs.namespace_or(self.default_namespace), fs.spec.project_name)
            for fs in self.feature_stores
        )
        for (namespace, project), count in sorted(projects.items()):
            if count > 1:
                problems.append(
                    f"project '{project}' is declared by {count} FeatureStores "
                    f"in namespace '{namespace}'"
                )

        for fs in self.feature_stores:
            namespace = fs.namespace_or(self.default_namespace)
            for service, backend in fs.spec.services.backends().items():
                if backend.store is None:
                    continue
                try:
                    resolver.resolve_store(backend.store, namespace)
                except SecretResolutionError as e:
                    problems.append(f"{fs.metadata.name}: {service}: {e}")

            authz = fs.spec.authorization
            if authz is not None and authz.oidc is not None:
                ref = authz.oidc.secret_reference
                try:
                    params = resolver.resolve_bundle(ref, namespace)
                except SecretResolutionError as e:
                    problems.append(f"{fs.metadata.name}: authz: {e}")
                    continue
                missing = [key for key in OIDC_REQUIRED_KEYS if not params.get(key)]
                if missing:
                    problems.append(
                        f"{fs.metadata.name}: authz: Secret '{ref.secret_name}' in namespace "
                        f"'{namespace}' is missing OIDC keys {missing}"
                    )

        logger.info(
            "manifest_bundle_validated",
            feature_stores=len(self.feature_stores),
            secrets=len(self.secrets),
            problems=len(problems),
        )
        return problems


def _parse_document(index: int, document: Any) -> FeatureStoreResource | SecretManifest:
    if not isinstance(document, dict):
        raise ManifestError(
            f"expected a mapping, got {type(document).__name__}", document_index=index
        )

    kind = document.get("kind")
    try:
        if kind == KIND:
            return FeatureStoreResource.from_manifest(document)
        if kind == "Secret":
            return SecretManifest.model_validate(document)
    except ValidationError as e:
        raise ManifestError(f"invalid {kind}: {e}", document_index=index) from e
    raise ManifestError(f"unsupported kind '{kind}'", document_index=index)


def load_manifests(source: str | Path, default_namespace: str | None = None) -> ManifestBundle:
    """Parse a manifest bundle from YAML text or a file path."""
    if isinstance(source, Path):
        text = source.read_text(encoding="utf-8")
        origin = str(source)
    else:
        text = source
        origin = "<string>"

    bundle = ManifestBundle(default_namespace=default_namespace or settings.default_namespace)
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}") from e

    for index, document in enumerate(documents):
        if document is None:
            continue
        parsed = _parse_document(index, document)
        if isinstance(parsed, FeatureStoreResource):
            bundle.feature_stores.append(parsed)
        else:
            bundle.secrets.append(parsed)

    logger.debug(
        "manifests_loaded",
        origin=origin,
        feature_stores=len(bundle.feature_stores),
        secrets=len(bundle.secrets),
    )
    return bundle


def dump_manifests(bundle: ManifestBundle) -> str:
    """Serialize a bundle back to multi-document YAML, secrets first."""
    documents = [s.to_manifest() for s in bundle.secrets]
    documents += [fs.to_manifest() for fs in bundle.feature_stores]
    return yaml.safe_dump_all(documents, sort_keys=False)
