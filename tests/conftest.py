"""Shared test fixtures for featurestore tests."""

import os
from pathlib import Path

import pytest

os.environ.setdefault("FEATURESTORE_DEFAULT_NAMESPACE", "default")
os.environ.setdefault("FEATURESTORE_FEATURE_SERVER_URL", "http://feature-server.test")

SAMPLES_PATH = Path(__file__).parent.parent / "config" / "samples"


@pytest.fixture
def samples_path() -> Path:
    return SAMPLES_PATH


@pytest.fixture
def db_persistence_manifest() -> Path:
    return SAMPLES_PATH / "db_persistence.yaml"


@pytest.fixture
def oidc_manifest() -> Path:
    return SAMPLES_PATH / "oidc_auth.yaml"


@pytest.fixture
def postgres_online_spec() -> dict:
    return {
        "feastProject": "my_project",
        "services": {
            "onlineStore": {
                "persistence": {
                    "store": {
                        "type": "postgres",
                        "secretRef": {"name": "postgres-secret"},
                    }
                }
            }
        },
    }


@pytest.fixture
def postgres_secret_document() -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "postgres-secret", "namespace": "test"},
        "stringData": {
            "postgres": (
                "host: 127.0.0.1\n"
                "port: 55001\n"
                "database: feast\n"
                "db_schema: public\n"
                "user: postgres\n"
                "password: mysecretpassword\n"
            ),
        },
    }


@pytest.fixture
def online_features_body() -> dict:
    return {
        "metadata": {"feature_names": ["driver_id", "conv_rate", "acc_rate"]},
        "results": [
            {
                "values": [1001, 1002],
                "statuses": ["PRESENT", "PRESENT"],
                "event_timestamps": ["1970-01-01T00:00:00Z", "1970-01-01T00:00:00Z"],
            },
            {
                "values": [0.55, 0.12],
                "statuses": ["PRESENT", "PRESENT"],
                "event_timestamps": ["2026-10-18T12:00:00Z", "2026-10-18T12:00:00Z"],
            },
            {
                "values": [0.91, None],
                "statuses": ["PRESENT", "NOT_FOUND"],
                "event_timestamps": ["2026-10-18T12:00:00Z", "1970-01-01T00:00:00Z"],
            },
        ],
    }
