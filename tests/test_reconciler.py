"""Tests for the web sign-in lifecycle reconciler."""

from __future__ import annotations

import pytest
from graph_mock import NOT_FOUND_DIAGNOSTIC, FakeGraphDirectory, SleepRecorder

from websignin.errors import (
    ExistenceTimeoutError,
    ExternalToolError,
    PropertyValidationError,
    UnsupportedOperationError,
)
from websignin.graph_client import HttpMethod, InvokeResult, Outcome
from websignin.reconciler import WebSignInReconciler

PROPS = {"objectId": "abc-123", "hostName": "app.example.com"}


class TestCreate:
    """Tests for Create."""

    def test_create_configures_existing_application(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")

        result = reconciler.create(PROPS)

        assert result.id == "abc-123"
        assert result.outputs == {"objectId": "abc-123", "hostName": "app.example.com"}
        assert directory.call_sequence() == [("GET", "abc-123"), ("PATCH", "abc-123")]

        body = directory.application("abc-123").last_patch
        assert body is not None
        assert body["web"]["homePageUrl"] == "https://app.example.com"
        assert body["web"]["redirectUris"] == ["https://app.example.com/signin-oidc"]
        assert body["web"]["logoutUrl"] == "https://app.example.com/signout-oidc"
        assert body["api"] == {"requestedAccessTokenVersion": 2}
        assert body["signInAudience"] == "AzureADandPersonalMicrosoftAccount"

    def test_create_waits_for_replication(
        self,
        directory: FakeGraphDirectory,
        reconciler: WebSignInReconciler,
        sleeper: SleepRecorder,
    ) -> None:
        directory.register("abc-123", hidden_probes=3)

        reconciler.create(PROPS)

        assert directory.methods() == ["GET", "GET", "GET", "GET", "PATCH"]
        assert sleeper.count == 3

    def test_missing_host_name_makes_no_calls(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        with pytest.raises(PropertyValidationError) as exc_info:
            reconciler.create({"objectId": "abc-123"})

        assert "hostName" in exc_info.value.fields
        assert directory.calls == []

    def test_python_field_names_are_not_inputs(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")

        with pytest.raises(PropertyValidationError) as exc_info:
            reconciler.create({"object_id": "abc-123", "host_name": "app.example.com"})

        assert set(exc_info.value.fields) == {"objectId", "hostName"}
        assert directory.calls == []

    def test_application_never_appears(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        with pytest.raises(ExistenceTimeoutError):
            reconciler.create(PROPS)

        assert "PATCH" not in directory.methods()

    def test_patch_failure_surfaces_diagnostic(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")
        directory.fail_next(HttpMethod.PATCH)

        with pytest.raises(ExternalToolError) as exc_info:
            reconciler.create(PROPS)

        assert "Insufficient privileges" in str(exc_info.value)


class TestUpdate:
    """Tests for Update."""

    def test_no_change_has_no_side_effects(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        outputs = reconciler.update(PROPS, dict(PROPS))

        assert outputs == PROPS
        assert directory.calls == []

    def test_host_name_change_patches_in_place(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")
        news = {**PROPS, "hostName": "new.example.com"}

        outputs = reconciler.update(PROPS, news)

        assert outputs == news
        # No existence re-check before the patch
        assert directory.call_sequence() == [("PATCH", "abc-123")]
        body = directory.application("abc-123").last_patch
        assert body is not None
        assert body["web"]["homePageUrl"] == "https://new.example.com"

    def test_object_id_change_deletes_then_recreates(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123", lingering_probes=1)
        directory.register("def-456")
        news = {**PROPS, "objectId": "def-456"}

        outputs = reconciler.update(PROPS, news)

        assert outputs == news
        assert directory.call_sequence() == [
            ("GET", "abc-123"),
            ("DELETE", "abc-123"),
            ("GET", "abc-123"),
            ("GET", "abc-123"),
            ("GET", "def-456"),
            ("PATCH", "def-456"),
        ]
        assert directory.application("abc-123").deleted

    def test_object_id_change_with_old_already_gone(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("def-456")
        news = {**PROPS, "objectId": "def-456"}

        reconciler.update(PROPS, news)

        assert "DELETE" not in directory.methods()
        assert directory.call_sequence()[-1] == ("PATCH", "def-456")

    def test_invalid_news_rejected(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        with pytest.raises(PropertyValidationError):
            reconciler.update(PROPS, {"objectId": "abc-123", "hostName": 42})

        assert directory.calls == []


class TestDelete:
    """Tests for Delete."""

    def test_delete_present_application(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")

        reconciler.delete(PROPS)

        assert directory.call_sequence() == [
            ("GET", "abc-123"),
            ("DELETE", "abc-123"),
            ("GET", "abc-123"),
        ]

    def test_delete_absent_application_is_idempotent(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        reconciler.delete(PROPS)

        assert directory.methods() == ["GET"]

    def test_delete_404_race_is_success(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        """Test a 404 from DELETE is treated as already gone, then polled."""
        app = directory.register("abc-123", lingering_probes=1)
        directory.fail_next(
            HttpMethod.DELETE, diagnostic=NOT_FOUND_DIAGNOSTIC, outcome=Outcome.NOT_FOUND
        )
        # Someone else deleted it between our probe and our DELETE
        original_get = directory.get_application_id

        def get_then_delete(object_id: str) -> InvokeResult:
            result = original_get(object_id)
            app.deleted = True
            return result

        directory.get_application_id = get_then_delete  # type: ignore[method-assign]

        reconciler.delete(PROPS)

        assert directory.methods() == ["GET", "DELETE", "GET", "GET"]

    def test_delete_failure_is_fatal(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        directory.register("abc-123")
        directory.fail_next(HttpMethod.DELETE)

        with pytest.raises(ExternalToolError):
            reconciler.delete(PROPS)

        assert directory.methods() == ["GET", "DELETE"]

    def test_delete_only_requires_object_id(
        self, directory: FakeGraphDirectory, reconciler: WebSignInReconciler
    ) -> None:
        reconciler.delete({"objectId": "abc-123"})

        assert directory.methods() == ["GET"]


class TestCheckAndRead:
    """Tests for Check, Diff and Read."""

    def test_check_reports_failures(self, reconciler: WebSignInReconciler) -> None:
        failures = reconciler.check({"objectId": "abc-123"})

        assert [f.property for f in failures] == ["hostName"]

    def test_check_valid_inputs(self, reconciler: WebSignInReconciler) -> None:
        assert reconciler.check(PROPS) == []

    def test_check_rejects_python_field_names(self, reconciler: WebSignInReconciler) -> None:
        failures = reconciler.check({"object_id": "abc-123", "host_name": "app.example.com"})

        assert [f.property for f in failures] == ["objectId", "hostName"]


    def test_diff_matches_update_policy(self, reconciler: WebSignInReconciler) -> None:
        result = reconciler.diff(PROPS, {**PROPS, "hostName": "new.example.com"})

        assert result.diffs == ("hostName",)
        assert result.replaces == ()

    def test_read_unsupported(self, reconciler: WebSignInReconciler) -> None:
        with pytest.raises(UnsupportedOperationError):
            reconciler.read("abc-123", PROPS)
