"""Render the feature repository configuration a feature server reads.

This is the ``feature_store.yaml`` the operator writes into each service
container after resolving secret references.
"""

from typing import Any

import structlog
import yaml

from featurestore.resources.models import FeatureStoreResource, ServiceBackend
from featurestore.resources.secrets import SecretResolver

logger = structlog.get_logger()

ENTITY_KEY_SERIALIZATION_VERSION = 3
DEFAULT_OFFLINE_FILE_TYPE = "dask"
DEFAULT_ONLINE_STORE_PATH = "/feast-data/online_store.db"
DEFAULT_REGISTRY_PATH = "/feast-data/registry.db"


def _online_store(
    backend: ServiceBackend | None, resolver: SecretResolver, namespace: str
) -> dict[str, Any]:
    if backend is None:
        return {"type": "sqlite", "path": DEFAULT_ONLINE_STORE_PATH}
    if backend.store is not None:
        return resolver.resolve_store(backend.store, namespace)
    return {"type": "sqlite", "path": backend.path}


def _offline_store(
    backend: ServiceBackend | None, resolver: SecretResolver, namespace: str
) -> dict[str, Any]:
    if backend is None:
        return {"type": DEFAULT_OFFLINE_FILE_TYPE}
    if backend.store is not None:
        return resolver.resolve_store(backend.store, namespace)
    return {"type": backend.backend_type or DEFAULT_OFFLINE_FILE_TYPE}


def _registry(
    resource: FeatureStoreResource, resolver: SecretResolver, namespace: str
) -> dict[str, Any]:
    registry = resource.spec.services.registry
    if registry is None:
        return {"registry_type": "file", "path": DEFAULT_REGISTRY_PATH}
    if registry.remote is not None:
        return {"registry_type": "remote", "path": registry.remote.hostname}

    backend = registry.local.persistence
    if backend.store is None:
        return {"registry_type": "file", "path": backend.path}

    params = resolver.resolve_store(backend.store, namespace)
    store_type = params.pop("type")
    return {"registry_type": store_type, **params}


def _auth(
    resource: FeatureStoreResource, resolver: SecretResolver, namespace: str
) -> dict[str, Any]:
    authz = resource.spec.authorization
    if authz is None:
        return {"type": "no_auth"}
    if authz.oidc is not None:
        return {"type": "oidc", **resolver.resolve_bundle(authz.oidc.secret_reference, namespace)}
    return {"type": "kubernetes"}


def render_repo_config(resource: FeatureStoreResource, resolver: SecretResolver) -> dict[str, Any]:
    """Build the resolved repository configuration for one FeatureStore.

    Raises:
        SecretResolutionError: if any referenced secret or key is missing.
    """
    namespace = resource.namespace_or(resolver.default_namespace)
    services = resource.spec.services

    online = services.online_store.persistence if services.online_store else None
    offline = services.offline_store.persistence if services.offline_store else None

    config = {
        "project": resource.spec.project_name,
        "provider": "local",
        "online_store": _online_store(online, resolver, namespace),
        "offline_store": _offline_store(offline, resolver, namespace),
        "registry": _registry(resource, resolver, namespace),
        "auth": _auth(resource, resolver, namespace),
        "entity_key_serialization_version": ENTITY_KEY_SERIALIZATION_VERSION,
    }

    logger.info(
        "repo_config_rendered",
        feature_store=resource.metadata.name,
        namespace=namespace,
        project=resource.spec.project_name,
        online_store=config["online_store"]["type"],
        offline_store=config["offline_store"]["type"],
        registry=config["registry"]["registry_type"],
    )
    return config


def dump_repo_config(config: dict[str, Any]) -> str:
    return yaml.safe_dump(config, sort_keys=False)
