"""Tests for multi-document manifest loading, validation and dumping."""

import pytest

from featurestore.errors import ManifestError
from featurestore.resources.manifests import dump_manifests, load_manifests
from featurestore.resources.models import PersistenceKind

TWO_PROJECTS = """
apiVersion: feast.dev/v1alpha1
kind: FeatureStore
metadata:
  name: first
spec:
  feastProject: shared
---
apiVersion: feast.dev/v1alpha1
kind: FeatureStore
metadata:
  name: second
spec:
  feastProject: shared
"""

DANGLING = """
apiVersion: feast.dev/v1alpha1
kind: FeatureStore
metadata:
  name: dangling
  namespace: test
spec:
  feastProject: my_project
  services:
    onlineStore:
      persistence:
        store:
          type: redis
          secretRef:
            name: redis-secret
  authz:
    oidc:
      secretRef:
        name: oidc-secret
"""


class TestLoadManifests:
    def test_db_persistence_sample(self, db_persistence_manifest):
        bundle = load_manifests(db_persistence_manifest)
        assert len(bundle.feature_stores) == 1
        assert len(bundle.secrets) == 1

        resource = bundle.get()
        assert resource.metadata.namespace == "test"
        online = resource.spec.services.online_store.persistence
        assert online.persistence_kind == PersistenceKind.EXTERNAL_STORE
        assert online.effective_secret_key() == "postgres"
        registry = resource.spec.services.registry.local.persistence
        assert registry.effective_secret_key() == "postgres-secret-parameters"

    def test_oidc_sample(self, oidc_manifest):
        bundle = load_manifests(oidc_manifest)
        resource = bundle.get("sample-oidc-auth")
        assert resource.spec.authorization.mode == "oidc"
        offline = resource.spec.services.offline_store.persistence
        assert offline.backend_type == "dask"

    def test_loads_from_text(self):
        bundle = load_manifests(TWO_PROJECTS)
        assert [fs.metadata.name for fs in bundle.feature_stores] == ["first", "second"]

    def test_empty_documents_skipped(self):
        bundle = load_manifests("---\n---\n")
        assert bundle.feature_stores == []
        assert bundle.secrets == []

    def test_unknown_kind(self):
        with pytest.raises(ManifestError, match="unsupported kind 'ConfigMap'") as exc:
            load_manifests("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: x\n")
        assert exc.value.document_index == 0

    def test_invalid_document_reports_index(self):
        text = TWO_PROJECTS + "---\napiVersion: feast.dev/v1alpha1\nkind: FeatureStore\n"
        with pytest.raises(ManifestError, match="document 2") as exc:
            load_manifests(text)
        assert exc.value.document_index == 2

    def test_non_mapping_document(self):
        with pytest.raises(ManifestError, match="expected a mapping"):
            load_manifests("- a\n- b\n")

    def test_invalid_yaml(self):
        with pytest.raises(ManifestError, match="invalid YAML"):
            load_manifests("kind: [unclosed")


class TestManifestBundle:
    def test_samples_are_valid(self, db_persistence_manifest, oidc_manifest):
        assert load_manifests(db_persistence_manifest).validate() == []
        assert load_manifests(oidc_manifest).validate() == []

    def test_duplicate_project_in_namespace(self):
        problems = load_manifests(TWO_PROJECTS).validate()
        assert len(problems) == 1
        assert "project 'shared'" in problems[0]

    def test_same_project_in_different_namespaces(self):
        text = TWO_PROJECTS.replace("name: second", "name: second\n  namespace: other")
        assert load_manifests(text).validate() == []

    def test_dangling_references(self):
        problems = load_manifests(DANGLING).validate()
        assert len(problems) == 2
        assert any("online_store" in p and "redis-secret" in p for p in problems)
        assert any("authz" in p and "oidc-secret" in p for p in problems)

    def test_duplicate_feature_store_names(self):
        text = TWO_PROJECTS.replace("name: second", "name: first").replace(
            "feastProject: shared\n---", "feastProject: other\n---"
        )
        problems = load_manifests(text).validate()
        assert problems == ["FeatureStore 'first' is declared 2 times in namespace 'default'"]

    def test_duplicate_secret_names(self):
        secret = "apiVersion: v1\nkind: Secret\nmetadata:\n  name: same\nstringData:\n  k: v\n"
        problems = load_manifests(secret + "---\n" + secret).validate()
        assert problems == ["Secret 'same' is declared 2 times in namespace 'default'"]

    def test_oidc_secret_missing_required_keys(self):
        secret = (
            "apiVersion: v1\nkind: Secret\nmetadata:\n  name: oidc-secret\n  namespace: test\n"
            "stringData:\n  client_secret: s\n"
        )
        problems = load_manifests(DANGLING + "---\n" + secret).validate()
        oidc = [p for p in problems if "authz" in p]
        assert len(oidc) == 1
        assert "client_id" in oidc[0]
        assert "auth_discovery_url" in oidc[0]

    def test_get_requires_name_when_ambiguous(self):
        bundle = load_manifests(TWO_PROJECTS)
        with pytest.raises(LookupError):
            bundle.get()
        assert bundle.get("second").metadata.name == "second"

    def test_get_unknown_name(self):
        with pytest.raises(LookupError):
            load_manifests(TWO_PROJECTS).get("third")

    def test_default_namespace_applies(self, oidc_manifest):
        bundle = load_manifests(oidc_manifest, default_namespace="feast")
        assert bundle.resolver().get("oidc-secret", "feast").metadata.name == "oidc-secret"


def test_dump_and_reload(db_persistence_manifest):
    bundle = load_manifests(db_persistence_manifest)
    reloaded = load_manifests(dump_manifests(bundle))
    assert reloaded.feature_stores == bundle.feature_stores
    assert reloaded.secrets == bundle.secrets
