"""Tests for the featurestore command-line interface."""

import argparse
import json
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from featurestore.cli import _parse_entity, main
from featurestore.serving.models import OnlineFeaturesResponse


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(["--log-level", "WARNING", *argv])
    return exc.value.code


class TestValidateCommand:
    def test_valid_sample(self, db_persistence_manifest, capsys):
        assert _run(["validate", str(db_persistence_manifest)]) == 0
        assert "1 FeatureStore(s) valid" in capsys.readouterr().out

    def test_dangling_reference(self, tmp_path, capsys):
        manifest = tmp_path / "fs.yaml"
        manifest.write_text(
            yaml.safe_dump(
                {
                    "apiVersion": "feast.dev/v1alpha1",
                    "kind": "FeatureStore",
                    "metadata": {"name": "example"},
                    "spec": {
                        "feastProject": "p",
                        "services": {
                            "onlineStore": {
                                "persistence": {
                                    "store": {"type": "redis", "secretRef": {"name": "gone"}}
                                }
                            }
                        },
                    },
                }
            )
        )
        assert _run(["validate", str(manifest)]) == 1
        assert "gone" in capsys.readouterr().err

    def test_invalid_manifest(self, tmp_path, capsys):
        manifest = tmp_path / "bad.yaml"
        manifest.write_text("apiVersion: v1\nkind: Pod\n")
        assert _run(["validate", str(manifest)]) == 1
        assert "unsupported kind" in capsys.readouterr().err


class TestRenderCommand:
    def test_render_sample(self, db_persistence_manifest, capsys):
        assert _run(["render", str(db_persistence_manifest)]) == 0
        config = yaml.safe_load(capsys.readouterr().out)
        assert config["project"] == "my_project"
        assert config["online_store"]["type"] == "postgres"

    def test_render_unknown_name(self, oidc_manifest, capsys):
        assert _run(["render", str(oidc_manifest), "--name", "missing"]) == 1
        assert "not found" in capsys.readouterr().err


class TestGetOnlineFeaturesCommand:
    def test_prints_response(self, online_features_body, capsys):
        response = OnlineFeaturesResponse.model_validate(online_features_body)
        with patch(
            "featurestore.cli.FeatureServerClient.get_online_features",
            new=AsyncMock(return_value=response),
        ) as fetch:
            code = _run(
                [
                    "get-online-features",
                    "--url",
                    "http://feast.test",
                    "--entity",
                    "driver_id=1001,1002",
                    "--feature",
                    "driver_hourly_stats:conv_rate",
                ]
            )
        assert code == 0
        request = fetch.await_args.args[0]
        assert request.entities == {"driver_id": [1001, 1002]}
        printed = json.loads(capsys.readouterr().out)
        assert printed["metadata"]["feature_names"] == ["driver_id", "conv_rate", "acc_rate"]

    def test_invalid_feature_reference(self, capsys):
        code = _run(["get-online-features", "--entity", "driver_id=1", "--feature", "conv_rate"])
        assert code == 1
        assert "view:feature" in capsys.readouterr().err


class TestParseEntity:
    def test_ints_and_strings(self):
        assert _parse_entity("driver_id=1001,abc,-5") == ("driver_id", [1001, "abc", -5])

    def test_missing_values(self):
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_entity("driver_id=")

    def test_zero_padded_ids_stay_strings(self):
        assert _parse_entity("customer_id=007,0042,0,10") == ("customer_id", ["007", "0042", 0, 10])

    def test_negative_zero_padded_stays_string(self):
        assert _parse_entity("offset=-007,-7") == ("offset", ["-007", -7])


def test_missing_manifest_file(tmp_path, capsys):
    assert _run(["validate", str(tmp_path / "absent.yaml")]) == 1
    assert "absent.yaml" in capsys.readouterr().err
