"""Kubernetes Secret documents and resolution of secret references.

The operator resolves secret references at reconciliation time. This module
performs the same lookup offline against Secret documents supplied alongside
the FeatureStore manifest, so that a bundle can be validated and rendered
without a cluster.

Each entry of a store secret holds a YAML mapping of connection parameters::

    stringData:
      postgres: |
        host: 127.0.0.1
        port: 55001
        database: feast
"""

import base64
import binascii
from collections.abc import Iterable
from typing import Any, Literal

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from featurestore.config import settings
from featurestore.errors import (
    InvalidSecretPayloadError,
    SecretKeyNotFoundError,
    SecretNotFoundError,
)
from featurestore.resources.models import ObjectMeta, SecretReference, StorePersistence

logger = structlog.get_logger()


class SecretManifest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_version: Literal["v1"] = Field(default="v1", alias="apiVersion")
    kind: Literal["Secret"] = "Secret"
    metadata: ObjectMeta
    string_data: dict[str, str] = Field(default_factory=dict, alias="stringData")
    data: dict[str, str] = Field(default_factory=dict)
    type: str | None = None

    def entries(self) -> dict[str, str]:
        """Merged secret entries. ``stringData`` wins over decoded ``data``."""
        merged: dict[str, str] = {}
        for key, encoded in self.data.items():
            try:
                merged[key] = base64.b64decode(encoded, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                raise InvalidSecretPayloadError(
                    f"Secret '{self.metadata.name}' key '{key}' is not valid base64 text: {e}",
                    secret_name=self.metadata.name,
                    namespace=self.metadata.namespace or "",
                ) from e
        merged.update(self.string_data)
        return merged

    def to_manifest(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SecretResolver:
    """Resolves secret references against an in-memory set of Secrets."""

    def __init__(
        self,
        secrets: Iterable[SecretManifest] = (),
        default_namespace: str | None = None,
    ) -> None:
        self._default_namespace = default_namespace or settings.default_namespace
        self._secrets: dict[tuple[str, str], SecretManifest] = {}
        for secret in secrets:
            self.add(secret)

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    def add(self, secret: SecretManifest) -> None:
        namespace = secret.metadata.namespace or self._default_namespace
        self._secrets[(namespace, secret.metadata.name)] = secret

    def __len__(self) -> int:
        return len(self._secrets)

    def get(self, name: str, namespace: str | None = None) -> SecretManifest:
        namespace = namespace or self._default_namespace
        try:
            return self._secrets[(namespace, name)]
        except KeyError:
            raise SecretNotFoundError(name, namespace) from None

    def resolve_bundle(self, ref: SecretReference, namespace: str | None = None) -> dict[str, str]:
        """Return every entry of the referenced secret, e.g. OIDC parameters."""
        secret = self.get(ref.secret_name, namespace)
        entries = secret.entries()
        if ref.secret_key_name is not None:
            if ref.secret_key_name not in entries:
                raise SecretKeyNotFoundError(
                    ref.secret_name, namespace or self._default_namespace, ref.secret_key_name
                )
            return {ref.secret_key_name: entries[ref.secret_key_name]}
        return entries

    def resolve_store(
        self, store: StorePersistence, namespace: str | None = None
    ) -> dict[str, Any]:
        """Turn a store persistence block into connection parameters.

        The entry named by the effective key (``secretKeyName`` or the store
        type) is parsed as YAML and merged under ``type``.
        """
        namespace = namespace or self._default_namespace
        ref = store.secret_reference
        key = store.effective_secret_key

        entries = self.get(ref.secret_name, namespace).entries()
        if key not in entries:
            raise SecretKeyNotFoundError(ref.secret_name, namespace, key)

        try:
            params = yaml.safe_load(entries[key])
        except yaml.YAMLError as e:
            raise InvalidSecretPayloadError(
                f"Secret '{ref.secret_name}' key '{key}' is not valid YAML: {e}",
                secret_name=ref.secret_name,
                namespace=namespace,
            ) from e

        if not isinstance(params, dict):
            raise InvalidSecretPayloadError(
                f"Secret '{ref.secret_name}' key '{key}' must hold a mapping of "
                f"connection parameters, got {type(params).__name__}",
                secret_name=ref.secret_name,
                namespace=namespace,
            )

        declared = params.get("type")
        if declared is not None and declared != store.store_type:
            raise InvalidSecretPayloadError(
                f"Secret '{ref.secret_name}' key '{key}' declares type '{declared}' "
                f"but the store is '{store.store_type}'",
                secret_name=ref.secret_name,
                namespace=namespace,
            )

        logger.debug(
            "secret_reference_resolved",
            secret=ref.secret_name,
            namespace=namespace,
            key=key,
            parameter_count=len(params),
        )
        return {"type": store.store_type, **{k: v for k, v in params.items() if k != "type"}}
