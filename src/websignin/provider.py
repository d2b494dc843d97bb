"""Resource provider surface consumed by the orchestration engine.

Each lifecycle verb extracts the resource type from the URN and dispatches
to the handler registered for that type token. The provider has no
provider-level configuration, so CheckConfig, DiffConfig and Configure
always succeed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .config import RESOURCE_TYPE_WEB_SIGN_IN, ProviderConfig
from .diff import DiffChanges, DiffResult, PropertyDiffKind
from .errors import ProviderError, UnknownResourceTypeError, UnsupportedOperationError
from .graph_client import ApplicationApi, GraphCliClient
from .poller import ExistencePoller
from .reconciler import CheckFailure, CreateResult, WebSignInReconciler

logger = logging.getLogger(__name__)

URN_PREFIX = "urn:pulumi:"
URN_NAME_DELIMITER = "::"
URN_TYPE_DELIMITER = "$"


class ResourceHandler(Protocol):
    """Capabilities every resource kind implements."""

    def check(self, news: Mapping[str, Any]) -> list[CheckFailure]: ...

    def diff(self, olds: Mapping[str, Any], news: Mapping[str, Any]) -> DiffResult: ...

    def create(self, news: Mapping[str, Any]) -> CreateResult: ...

    def update(self, olds: Mapping[str, Any], news: Mapping[str, Any]) -> dict[str, Any]: ...

    def delete(self, properties: Mapping[str, Any]) -> None: ...

    def read(self, resource_id: str, properties: Mapping[str, Any] | None = None) -> None: ...


HandlerFactory = Callable[[ApplicationApi, ExistencePoller], ResourceHandler]

# Type token -> handler factory
RESOURCE_HANDLERS: dict[str, HandlerFactory] = {
    RESOURCE_TYPE_WEB_SIGN_IN: WebSignInReconciler,
}


def parse_urn_type(urn: str) -> str:
    """Extract the resource type token from a URN.

    URNs look like urn:pulumi:<stack>::<project>::<qualified type>::<name>,
    where the qualified type is a $-separated chain of parent types ending
    in the resource's own type.

    Raises:
        ProviderError: If the URN is malformed.
    """
    if not urn.startswith(URN_PREFIX):
        raise ProviderError(f"invalid URN '{urn}'")

    parts = urn[len(URN_PREFIX):].split(URN_NAME_DELIMITER, 3)
    if len(parts) != 4 or not parts[2]:
        raise ProviderError(f"invalid URN '{urn}'")

    return parts[2].split(URN_TYPE_DELIMITER)[-1]


# =============================================================================
# Responses
# =============================================================================


@dataclass(frozen=True)
class CheckResponse:
    inputs: dict[str, Any]
    failures: tuple[CheckFailure, ...] = ()


@dataclass(frozen=True)
class DiffResponse:
    changes: DiffChanges = DiffChanges.NONE
    diffs: tuple[str, ...] = ()
    replaces: tuple[str, ...] = ()
    detailed_diff: dict[str, PropertyDiffKind] = field(default_factory=dict)
    delete_before_replace: bool = False

    @classmethod
    def from_result(cls, result: DiffResult) -> DiffResponse:
        return cls(
            changes=result.changes,
            diffs=result.diffs,
            replaces=result.replaces,
            detailed_diff=dict(result.detailed_diff),
            delete_before_replace=result.delete_before_replace,
        )


@dataclass(frozen=True)
class CreateResponse:
    id: str
    properties: dict[str, Any]


@dataclass(frozen=True)
class UpdateResponse:
    properties: dict[str, Any]


@dataclass(frozen=True)
class PluginInfo:
    version: str


@dataclass(frozen=True)
class SchemaResponse:
    schema: str = ""


# =============================================================================
# Provider
# =============================================================================


class WebSignInProvider:
    """Implements the engine's resource provider verbs."""

    def __init__(
        self,
        name: str,
        version: str,
        api: ApplicationApi,
        poller: ExistencePoller,
        handlers: Mapping[str, HandlerFactory] | None = None,
    ) -> None:
        self._name = name
        self._version = version
        self._handlers = {
            token: factory(api, poller)
            for token, factory in (handlers or RESOURCE_HANDLERS).items()
        }

    @classmethod
    def from_config(cls, config: ProviderConfig, name: str = "knapcode") -> WebSignInProvider:
        """Wire the provider to the Azure CLI backed Graph client."""
        api = GraphCliClient(config)
        poller = ExistencePoller.from_config(api, config)
        return cls(name=name, version=config.provider_version, api=api, poller=poller)

    @property
    def name(self) -> str:
        return self._name

    def _handler(self, verb: str, urn: str) -> ResourceHandler:
        type_token = parse_urn_type(urn)
        handler = self._handlers.get(type_token)
        if handler is None:
            raise UnknownResourceTypeError(verb, type_token)
        return handler

    # Provider-level configuration

    def check_config(self, urn: str, news: Mapping[str, Any]) -> CheckResponse:
        return CheckResponse(inputs=dict(news))

    def diff_config(
        self, urn: str, olds: Mapping[str, Any], news: Mapping[str, Any]
    ) -> DiffResponse:
        return DiffResponse()

    def configure(self, variables: Mapping[str, Any] | None = None) -> None:
        return None

    # Functions

    def invoke(self, token: str, args: Mapping[str, Any] | None = None) -> dict[str, Any]:
        raise ProviderError(f"unknown Invoke token '{token}'")

    def stream_invoke(self, token: str, args: Mapping[str, Any] | None = None) -> None:
        raise ProviderError(f"unknown StreamInvoke token '{token}'")

    # Resource lifecycle

    def check(self, urn: str, news: Mapping[str, Any]) -> CheckResponse:
        """Validate inputs for a resource and echo them back unchanged."""
        failures = self._handler("Check", urn).check(news)
        return CheckResponse(inputs=dict(news), failures=tuple(failures))

    def diff(self, urn: str, olds: Mapping[str, Any], news: Mapping[str, Any]) -> DiffResponse:
        """Report which tracked fields would change, and which force a replace."""
        result = self._handler("Diff", urn).diff(olds, news)
        logger.debug(
            "Computed diff",
            extra={"urn": urn, "diffs": list(result.diffs), "replaces": list(result.replaces)},
        )
        return DiffResponse.from_result(result)

    def create(self, urn: str, properties: Mapping[str, Any]) -> CreateResponse:
        result = self._handler("Create", urn).create(properties)
        return CreateResponse(id=result.id, properties=result.outputs)

    def update(
        self, urn: str, olds: Mapping[str, Any], news: Mapping[str, Any]
    ) -> UpdateResponse:
        outputs = self._handler("Update", urn).update(olds, news)
        return UpdateResponse(properties=outputs)

    def delete(self, urn: str, properties: Mapping[str, Any]) -> None:
        """Tear down a resource. If this raises, the resource is assumed to still exist."""
        self._handler("Delete", urn).delete(properties)

    def read(
        self, urn: str, resource_id: str, properties: Mapping[str, Any] | None = None
    ) -> None:
        self._handler("Read", urn).read(resource_id, properties)

    def construct(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("Construct")

    # Plugin metadata

    def get_plugin_info(self) -> PluginInfo:
        return PluginInfo(version=self._version)

    def get_schema(self, version: int = 0) -> SchemaResponse:
        return SchemaResponse()

    def cancel(self) -> None:
        """Advisory only: in-flight polls and subprocesses are not interrupted."""
        logger.info("Cancel requested; in-flight operations will run to completion")
