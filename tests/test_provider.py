"""Tests for the provider verb surface and type dispatch."""

from __future__ import annotations

import pytest
from graph_mock import FakeGraphDirectory

from websignin.config import RESOURCE_TYPE_WEB_SIGN_IN
from websignin.diff import DiffChanges, PropertyDiffKind
from websignin.errors import ProviderError, UnknownResourceTypeError, UnsupportedOperationError
from websignin.poller import ExistencePoller
from websignin.provider import WebSignInProvider, parse_urn_type

URN = f"urn:pulumi:dev::site::{RESOURCE_TYPE_WEB_SIGN_IN}::signin"
UNKNOWN_URN = "urn:pulumi:dev::site::knapcode:index:Other::thing"
PROPS = {"objectId": "abc-123", "hostName": "app.example.com"}


@pytest.fixture
def provider(directory: FakeGraphDirectory, poller: ExistencePoller) -> WebSignInProvider:
    return WebSignInProvider(name="knapcode", version="1.4.0", api=directory, poller=poller)


class TestParseUrnType:
    """Tests for URN type extraction."""

    def test_simple_urn(self) -> None:
        assert parse_urn_type(URN) == RESOURCE_TYPE_WEB_SIGN_IN

    def test_parented_urn(self) -> None:
        urn = f"urn:pulumi:dev::site::my:component:Web${RESOURCE_TYPE_WEB_SIGN_IN}::signin"

        assert parse_urn_type(urn) == RESOURCE_TYPE_WEB_SIGN_IN

    def test_name_may_contain_delimiter(self) -> None:
        urn = f"urn:pulumi:dev::site::{RESOURCE_TYPE_WEB_SIGN_IN}::a::b"

        assert parse_urn_type(urn) == RESOURCE_TYPE_WEB_SIGN_IN

    @pytest.mark.parametrize("urn", ["", "not-a-urn", "urn:pulumi:dev::site"])
    def test_malformed(self, urn: str) -> None:
        with pytest.raises(ProviderError):
            parse_urn_type(urn)


class TestProviderVerbs:
    """Tests for lifecycle verbs."""

    def test_check_echoes_inputs(self, provider: WebSignInProvider) -> None:
        news = {**PROPS, "extra": True}

        response = provider.check(URN, news)

        assert response.inputs == news
        assert response.failures == ()

    def test_check_reports_failures(self, provider: WebSignInProvider) -> None:
        response = provider.check(URN, {"hostName": "app.example.com"})

        assert [f.property for f in response.failures] == ["objectId"]

    def test_diff(self, provider: WebSignInProvider) -> None:
        response = provider.diff(URN, PROPS, {**PROPS, "objectId": "def-456"})

        assert response.changes == DiffChanges.SOME
        assert response.diffs == ("objectId",)
        assert response.replaces == ("objectId",)
        assert response.detailed_diff == {"objectId": PropertyDiffKind.UPDATE_REPLACE}
        assert response.delete_before_replace is True

    def test_create_update_delete(
        self, directory: FakeGraphDirectory, provider: WebSignInProvider
    ) -> None:
        directory.register("abc-123")

        created = provider.create(URN, PROPS)
        updated = provider.update(URN, PROPS, {**PROPS, "hostName": "new.example.com"})
        provider.delete(URN, updated.properties)

        assert created.id == "abc-123"
        assert created.properties == PROPS
        assert updated.properties["hostName"] == "new.example.com"
        assert directory.application("abc-123").deleted

    @pytest.mark.parametrize("verb", ["Check", "Diff", "Create", "Update", "Delete", "Read"])
    def test_unknown_type_names_verb(self, provider: WebSignInProvider, verb: str) -> None:
        calls = {
            "Check": lambda: provider.check(UNKNOWN_URN, PROPS),
            "Diff": lambda: provider.diff(UNKNOWN_URN, PROPS, PROPS),
            "Create": lambda: provider.create(UNKNOWN_URN, PROPS),
            "Update": lambda: provider.update(UNKNOWN_URN, PROPS, PROPS),
            "Delete": lambda: provider.delete(UNKNOWN_URN, PROPS),
            "Read": lambda: provider.read(UNKNOWN_URN, "abc-123", PROPS),
        }

        with pytest.raises(UnknownResourceTypeError) as exc_info:
            calls[verb]()

        assert str(exc_info.value) == f"{verb}: unknown resource type 'knapcode:index:Other'"

    def test_read_unsupported(self, provider: WebSignInProvider) -> None:
        with pytest.raises(UnsupportedOperationError):
            provider.read(URN, "abc-123", PROPS)

    def test_construct_unsupported(self, provider: WebSignInProvider) -> None:
        with pytest.raises(UnsupportedOperationError):
            provider.construct()


class TestProviderMetadata:
    """Tests for provider-level verbs."""

    def test_config_verbs_are_trivial(self, provider: WebSignInProvider) -> None:
        provider_urn = "urn:pulumi:dev::site::pulumi:providers:knapcode::default"

        assert provider.check_config(provider_urn, {"a": 1}).inputs == {"a": 1}
        assert provider.diff_config("", {}, {"a": 1}).changes == DiffChanges.NONE
        assert provider.configure({"anything": "ignored"}) is None

    def test_plugin_info(self, provider: WebSignInProvider) -> None:
        assert provider.get_plugin_info().version == "1.4.0"

    def test_schema_is_empty(self, provider: WebSignInProvider) -> None:
        assert provider.get_schema().schema == ""

    def test_invoke_unknown_token(self, provider: WebSignInProvider) -> None:
        with pytest.raises(ProviderError) as exc_info:
            provider.invoke("knapcode:index:getThing")

        assert "unknown Invoke token 'knapcode:index:getThing'" in str(exc_info.value)

    def test_stream_invoke_unknown_token(self, provider: WebSignInProvider) -> None:
        with pytest.raises(ProviderError, match="unknown StreamInvoke token"):
            provider.stream_invoke("knapcode:index:watchThing")

    def test_cancel_is_noop(
        self, directory: FakeGraphDirectory, provider: WebSignInProvider
    ) -> None:
        provider.cancel()

        assert directory.calls == []
