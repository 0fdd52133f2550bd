from featurestore.serving.client import FeatureServerClient, feature_vector
from featurestore.serving.models import (
    FeatureStatus,
    OnlineFeaturesRequest,
    OnlineFeaturesResponse,
)

__all__ = [
    "FeatureServerClient",
    "FeatureStatus",
    "OnlineFeaturesRequest",
    "OnlineFeaturesResponse",
    "feature_vector",
]
