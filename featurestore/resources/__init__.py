from featurestore.resources.manifests import ManifestBundle, dump_manifests, load_manifests
from featurestore.resources.models import (
    FeatureStoreConfig,
    FeatureStoreResource,
    PersistenceKind,
    SecretReference,
    ServiceBackend,
)
from featurestore.resources.repo_config import dump_repo_config, render_repo_config
from featurestore.resources.secrets import SecretManifest, SecretResolver

__all__ = [
    "FeatureStoreConfig",
    "FeatureStoreResource",
    "ManifestBundle",
    "PersistenceKind",
    "SecretManifest",
    "SecretReference",
    "SecretResolver",
    "ServiceBackend",
    "dump_manifests",
    "dump_repo_config",
    "load_manifests",
    "render_repo_config",
]
