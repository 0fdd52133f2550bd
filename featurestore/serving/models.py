"""Pydantic models for the online feature server's HTTP contract.

Request body of ``POST /get-online-features``::

    {"entities": {"driver_id": [1001, 1002]},
     "features": ["driver_hourly_stats:conv_rate"]}

Response body::

    {"metadata": {"feature_names": ["driver_id", "conv_rate"]},
     "results": [{"values": [1001, 1002],
                  "statuses": ["PRESENT", "PRESENT"],
                  "event_timestamps": ["1970-01-01T00:00:00Z", ...]},
                 ...]}

Every list inside ``results`` is aligned by position to the entity rows.
"""

import re
from enum import StrEnum
from typing import Any

import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator

FEATURE_REF_PATTERN = re.compile(r"^[A-Za-z0-9_\-.]+:[A-Za-z0-9_\-.]+$")


class FeatureStatus(StrEnum):
    INVALID = "INVALID"
    PRESENT = "PRESENT"
    NULL_VALUE = "NULL_VALUE"
    NOT_FOUND = "NOT_FOUND"
    OUTSIDE_MAX_AGE = "OUTSIDE_MAX_AGE"


class OnlineFeaturesRequest(BaseModel):
    entities: dict[str, list[Any]]
    features: list[str] | None = None
    feature_service: str | None = None
    full_feature_names: bool = False

    @field_validator("entities")
    @classmethod
    def validate_entities(cls, v: dict[str, list[Any]]) -> dict[str, list[Any]]:
        if not v:
            raise ValueError("at least one entity key is required")
        lengths = {len(values) for values in v.values()}
        if len(lengths) != 1:
            raise ValueError(f"entity value lists must have equal length, got {sorted(lengths)}")
        if lengths == {0}:
            raise ValueError("entity value lists must not be empty")
        return v

    @field_validator("features")
    @classmethod
    def validate_feature_refs(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("features must not be empty")
        bad = [ref for ref in v if not FEATURE_REF_PATTERN.match(ref)]
        if bad:
            raise ValueError(f"feature references must look like 'view:feature', got {bad}")
        return v

    @model_validator(mode="after")
    def one_feature_source(self) -> "OnlineFeaturesRequest":
        if (self.features is None) == (self.feature_service is None):
            raise ValueError("set exactly one of 'features' or 'feature_service'")
        return self

    @property
    def row_count(self) -> int:
        return len(next(iter(self.entities.values())))

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ResponseMetadata(BaseModel):
    feature_names: list[str] = Field(default_factory=list)


class FeatureVector(BaseModel):
    values: list[Any] = Field(default_factory=list)
    statuses: list[FeatureStatus] = Field(default_factory=list)
    event_timestamps: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def aligned(self) -> "FeatureVector":
        if not (len(self.values) == len(self.statuses) == len(self.event_timestamps)):
            raise ValueError(
                "values, statuses and event_timestamps must have equal length, got "
                f"{len(self.values)}, {len(self.statuses)}, {len(self.event_timestamps)}"
            )
        return self


class OnlineFeaturesResponse(BaseModel):
    metadata: ResponseMetadata
    results: list[FeatureVector]

    @model_validator(mode="after")
    def aligned(self) -> "OnlineFeaturesResponse":
        if len(self.results) != len(self.metadata.feature_names):
            raise ValueError(
                f"{len(self.metadata.feature_names)} feature names but "
                f"{len(self.results)} result columns"
            )
        lengths = {len(r.values) for r in self.results}
        if len(lengths) > 1:
            raise ValueError(f"result columns have different row counts: {sorted(lengths)}")
        return self

    @property
    def feature_names(self) -> list[str]:
        return self.metadata.feature_names

    @property
    def row_count(self) -> int:
        return len(self.results[0].values) if self.results else 0

    def _column(self, name: str) -> FeatureVector:
        try:
            return self.results[self.metadata.feature_names.index(name)]
        except ValueError:
            raise KeyError(name) from None

    def to_dict(self) -> dict[str, list[Any]]:
        """Feature name to values, one value per entity row."""
        return {name: list(r.values) for name, r in zip(self.feature_names, self.results)}

    def statuses_for(self, name: str) -> list[FeatureStatus]:
        return list(self._column(name).statuses)

    def timestamps_for(self, name: str) -> list[str]:
        return list(self._column(name).event_timestamps)

    def missing(self) -> list[str]:
        """Names of features with at least one value not PRESENT."""
        return [
            name
            for name, r in zip(self.feature_names, self.results)
            if any(s != FeatureStatus.PRESENT for s in r.statuses)
        ]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per entity, one column per feature name."""
        return pd.DataFrame(self.to_dict(), columns=self.feature_names)
