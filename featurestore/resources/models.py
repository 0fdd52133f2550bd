"""Pydantic models for the FeatureStore custom resource.

Field names are snake_case in Python and camelCase on the wire
(``feastProject``, ``onlineStore``, ``secretRef`` ...). Every model is
frozen: a resource is held immutably until it is re-applied.

Wire shape of a service backend::

    persistence:
      file:
        path: /data/online_store.db
    # or
    persistence:
      store:
        type: postgres
        secretRef:
          name: postgres-secret
        secretKeyName: postgres-params   # optional, defaults to ``type``
"""

import re
from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

API_VERSION = "feast.dev/v1alpha1"
KIND = "FeatureStore"

PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_]*$")

ONLINE_STORE_TYPES = frozenset(
    {
        "snowflake.online",
        "redis",
        "ikv",
        "datastore",
        "dynamodb",
        "bigtable",
        "postgres",
        "cassandra",
        "mysql",
        "hazelcast",
        "singlestore",
        "hbase",
        "elasticsearch",
        "qdrant",
        "couchbase.online",
        "milvus",
    }
)
OFFLINE_STORE_TYPES = frozenset(
    {
        "snowflake.offline",
        "bigquery",
        "redshift",
        "spark",
        "postgres",
        "trino",
        "athena",
        "mssql",
        "couchbase.offline",
    }
)
OFFLINE_FILE_TYPES = frozenset({"file", "dask", "duckdb"})
REGISTRY_STORE_TYPES = frozenset({"sql", "snowflake.registry"})


class PersistenceKind(StrEnum):
    FILE = "file"
    EXTERNAL_STORE = "external_store"


class ServiceName(StrEnum):
    ONLINE_STORE = "online_store"
    OFFLINE_STORE = "offline_store"
    REGISTRY = "registry"


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire aliases, leaving out unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SecretReference(_Model):
    """Pointer into an external secret store. Never owns the secret."""

    secret_name: str = Field(min_length=1)
    secret_key_name: str | None = None

    def effective_key(self, store_type: str) -> str:
        return self.secret_key_name or store_type


class LocalObjectReference(_Model):
    name: str = Field(min_length=1)


class FilePersistence(_Model):
    path: str | None = None
    backend_type: str | None = Field(default=None, alias="type")


class StorePersistence(_Model):
    store_type: str = Field(alias="type", min_length=1)
    secret_ref: LocalObjectReference = Field(alias="secretRef")
    secret_key_name: str | None = Field(default=None, alias="secretKeyName")

    @property
    def secret_reference(self) -> SecretReference:
        return SecretReference(
            secret_name=self.secret_ref.name,
            secret_key_name=self.secret_key_name,
        )

    @property
    def effective_secret_key(self) -> str:
        return self.secret_reference.effective_key(self.store_type)


class ServiceBackend(_Model):
    """How one service persists its data: a local file or an external store."""

    file: FilePersistence | None = None
    store: StorePersistence | None = None

    allowed_store_types: ClassVar[frozenset[str]] = frozenset()
    allowed_file_types: ClassVar[frozenset[str] | None] = None
    file_requires_path: ClassVar[bool] = True
    file_accepts_path: ClassVar[bool] = True

    @model_validator(mode="after")
    def _check_persistence(self) -> "ServiceBackend":
        if (self.file is None) == (self.store is None):
            raise ValueError("persistence must set exactly one of 'file' or 'store'")

        if self.file is not None:
            if self.file_requires_path and not self.file.path:
                raise ValueError("file persistence requires a 'path'")
            if not self.file_accepts_path and self.file.path is not None:
                raise ValueError("file persistence of this service does not accept a 'path'")
            if not self.file.path and not self.file.backend_type:
                raise ValueError("file persistence requires a 'path' or a 'type'")
            backend_type = self.file.backend_type
            if backend_type is not None:
                if self.allowed_file_types is None:
                    raise ValueError("file persistence of this service does not accept a 'type'")
                if backend_type not in self.allowed_file_types:
                    raise ValueError(
                        f"unsupported file type '{backend_type}', "
                        f"expected one of {sorted(self.allowed_file_types)}"
                    )

        if self.store is not None and self.allowed_store_types:
            if self.store.store_type not in self.allowed_store_types:
                raise ValueError(
                    f"unsupported store type '{self.store.store_type}', "
                    f"expected one of {sorted(self.allowed_store_types)}"
                )
        return self

    @property
    def persistence_kind(self) -> PersistenceKind:
        return PersistenceKind.FILE if self.file is not None else PersistenceKind.EXTERNAL_STORE

    @property
    def path(self) -> str | None:
        return self.file.path if self.file else None

    @property
    def backend_type(self) -> str | None:
        return self.file.backend_type if self.file else None

    @property
    def store_type(self) -> str | None:
        return self.store.store_type if self.store else None

    @property
    def secret_reference(self) -> SecretReference | None:
        return self.store.secret_reference if self.store else None

    def effective_secret_key(self) -> str | None:
        return self.store.effective_secret_key if self.store else None


class OnlineStoreBackend(ServiceBackend):
    allowed_store_types: ClassVar[frozenset[str]] = ONLINE_STORE_TYPES


class OfflineStoreBackend(ServiceBackend):
    # Offline file stores are engines over repository files, named by type only.
    allowed_store_types: ClassVar[frozenset[str]] = OFFLINE_STORE_TYPES
    allowed_file_types: ClassVar[frozenset[str] | None] = OFFLINE_FILE_TYPES
    file_requires_path: ClassVar[bool] = False
    file_accepts_path: ClassVar[bool] = False


class RegistryBackend(ServiceBackend):
    allowed_store_types: ClassVar[frozenset[str]] = REGISTRY_STORE_TYPES


class OnlineStore(_Model):
    persistence: OnlineStoreBackend


class OfflineStore(_Model):
    persistence: OfflineStoreBackend


class LocalRegistry(_Model):
    persistence: RegistryBackend


class RemoteRegistry(_Model):
    hostname: str = Field(min_length=1)


class Registry(_Model):
    local: LocalRegistry | None = None
    remote: RemoteRegistry | None = None

    @model_validator(mode="after")
    def _one_of(self) -> "Registry":
        if (self.local is None) == (self.remote is None):
            raise ValueError("registry must set exactly one of 'local' or 'remote'")
        return self


class Services(_Model):
    online_store: OnlineStore | None = Field(default=None, alias="onlineStore")
    offline_store: OfflineStore | None = Field(default=None, alias="offlineStore")
    registry: Registry | None = None

    def backends(self) -> dict[ServiceName, ServiceBackend]:
        """Backends of the configured services, keyed by service name."""
        found: dict[ServiceName, ServiceBackend] = {}
        if self.online_store is not None:
            found[ServiceName.ONLINE_STORE] = self.online_store.persistence
        if self.offline_store is not None:
            found[ServiceName.OFFLINE_STORE] = self.offline_store.persistence
        if self.registry is not None and self.registry.local is not None:
            found[ServiceName.REGISTRY] = self.registry.local.persistence
        return found


class OidcAuthorization(_Model):
    secret_ref: LocalObjectReference = Field(alias="secretRef")

    @property
    def secret_reference(self) -> SecretReference:
        return SecretReference(secret_name=self.secret_ref.name)


class KubernetesAuthorization(_Model):
    roles: list[str] = Field(default_factory=list)


class Authorization(_Model):
    oidc: OidcAuthorization | None = None
    kubernetes: KubernetesAuthorization | None = None

    @model_validator(mode="after")
    def _one_of(self) -> "Authorization":
        if (self.oidc is None) == (self.kubernetes is None):
            raise ValueError("authz must set exactly one of 'oidc' or 'kubernetes'")
        return self

    @property
    def mode(self) -> str:
        return "oidc" if self.oidc is not None else "kubernetes"


class FeatureStoreConfig(_Model):
    """The ``spec`` of a FeatureStore resource."""

    project_name: str = Field(alias="feastProject")
    services: Services = Field(default_factory=Services)
    authorization: Authorization | None = Field(default=None, alias="authz")

    @field_validator("project_name")
    @classmethod
    def _valid_project_name(cls, v: str) -> str:
        if not PROJECT_NAME_PATTERN.match(v):
            raise ValueError(
                f"invalid project name '{v}': use letters, digits and underscores, "
                "starting with a letter or digit"
            )
        return v


class ObjectMeta(BaseModel):
    # Applied resources carry server-populated metadata we do not model.
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    namespace: str | None = None


class FeatureStoreResource(_Model):
    """A complete ``FeatureStore`` manifest document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_version: Literal["feast.dev/v1alpha1"] = Field(default=API_VERSION, alias="apiVersion")
    kind: Literal["FeatureStore"] = KIND
    metadata: ObjectMeta
    spec: FeatureStoreConfig

    def namespace_or(self, default: str) -> str:
        return self.metadata.namespace or default

    @classmethod
    def from_manifest(cls, document: dict[str, Any]) -> "FeatureStoreResource":
        return cls.model_validate(document)

    def to_manifest(self) -> dict[str, Any]:
        return self.to_wire()
