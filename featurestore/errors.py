"""Exception hierarchy for configuration, secret resolution and serving calls."""


class FeatureStoreConfigError(Exception):
    """Base class for every error raised by this package."""


class ManifestError(FeatureStoreConfigError, ValueError):
    """A manifest document could not be parsed or failed schema validation."""

    def __init__(self, message: str, document_index: int | None = None) -> None:
        self.document_index = document_index
        if document_index is not None:
            message = f"document {document_index}: {message}"
        super().__init__(message)


class SecretResolutionError(FeatureStoreConfigError):
    """A secret reference could not be turned into connection parameters."""

    def __init__(self, message: str, secret_name: str, namespace: str) -> None:
        self.secret_name = secret_name
        self.namespace = namespace
        super().__init__(message)


class SecretNotFoundError(SecretResolutionError, LookupError):
    def __init__(self, secret_name: str, namespace: str) -> None:
        super().__init__(
            f"Secret '{secret_name}' not found in namespace '{namespace}'",
            secret_name=secret_name,
            namespace=namespace,
        )


class SecretKeyNotFoundError(SecretResolutionError, LookupError):
    def __init__(self, secret_name: str, namespace: str, key: str) -> None:
        self.key = key
        super().__init__(
            f"Secret '{secret_name}' in namespace '{namespace}' has no key '{key}'",
            secret_name=secret_name,
            namespace=namespace,
        )


class InvalidSecretPayloadError(SecretResolutionError, ValueError):
    pass


class FeatureServerError(FeatureStoreConfigError):
    """The feature server answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class FeatureServerUnavailableError(FeatureServerError):
    """The feature server could not be reached at all."""
