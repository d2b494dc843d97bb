"""Lifecycle reconciliation for applications prepared for web sign-in.

There is no persisted state machine. A resource instance moves through

    absent -> creating -> present -> (updating -> present | deleting -> absent)

and its state is entirely "does the directory object exist, and with what
web configuration". Each verb is strictly sequential:
validate -> (poll) -> mutate -> (poll).

Create does not register a new application. The application object must
already exist (registered elsewhere); Create waits for it to become visible
and then claims it by patching its sign-in configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .diff import DiffResult, diff_properties
from .errors import (
    ExternalToolError,
    PropertyValidationError,
    UnsupportedOperationError,
)
from .graph_client import ApplicationApi, Outcome
from .models import (
    HOST_NAME,
    OBJECT_ID,
    ApplicationWebSignInPatch,
    WebSignInArgs,
    parse_application_ref,
    parse_web_sign_in_args,
)
from .poller import ExistencePoller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckFailure:
    """A property that failed input validation."""

    property: str
    reason: str


@dataclass(frozen=True)
class CreateResult:
    """ID and recorded outputs of a created resource."""

    id: str
    outputs: dict[str, Any]


class WebSignInReconciler:
    """CRUD handler for the PrepareAppForWebSignIn resource kind.

    Composes the existence poller, the diff classifier and the Graph client.
    Validation errors, tool errors and poll timeouts all propagate to the
    caller unchanged.
    """

    def __init__(self, api: ApplicationApi, poller: ExistencePoller) -> None:
        self._api = api
        self._poller = poller

    def check(self, news: Mapping[str, Any]) -> list[CheckFailure]:
        """Validate inputs without touching the directory.

        Inputs are not defaulted or rewritten; the caller echoes them back.
        """
        try:
            parse_web_sign_in_args(news)
        except PropertyValidationError as e:
            return [CheckFailure(property=name, reason=str(e)) for name in e.fields]
        return []

    def diff(self, olds: Mapping[str, Any], news: Mapping[str, Any]) -> DiffResult:
        """Preview what an update from olds to news would do."""
        parse_web_sign_in_args(news)
        return diff_properties(olds, news)

    def create(self, news: Mapping[str, Any]) -> CreateResult:
        """Wait for the application to exist, then configure it for web sign-in."""
        args = parse_web_sign_in_args(news)

        logger.info(
            "Waiting for application to become visible",
            extra={"object_id": args.object_id},
        )
        self._poller.wait_for_existence(args.object_id, True)

        self._configure(args)
        return CreateResult(id=args.object_id, outputs=args.to_outputs())

    def update(self, olds: Mapping[str, Any], news: Mapping[str, Any]) -> dict[str, Any]:
        """Converge an existing resource from olds to news.

        objectId changed: release the old application, then run Create for news.
        Only hostName changed: patch the sign-in configuration in place.
        Nothing changed: no external calls.
        """
        args = parse_web_sign_in_args(news)
        result = diff_properties(olds, news)

        if result.changed(OBJECT_ID):
            old_ref = parse_application_ref(olds)
            logger.info(
                "Application object ID changed, replacing",
                extra={"old_object_id": old_ref.object_id, "new_object_id": args.object_id},
            )
            self._release(old_ref.object_id)
            return self.create(news).outputs

        if result.changed(HOST_NAME):
            logger.info(
                "Host name changed, patching sign-in configuration",
                extra={"object_id": args.object_id, "host_name": args.host_name},
            )
            self._configure(args)
            return args.to_outputs()

        logger.debug("No tracked property changed", extra={"object_id": args.object_id})
        return args.to_outputs()

    def delete(self, properties: Mapping[str, Any]) -> None:
        """Release the application and wait until the directory stops returning it.

        Idempotent: an application that is already gone is not an error.
        """
        ref = parse_application_ref(properties)
        self._release(ref.object_id)

    def read(self, resource_id: str, properties: Mapping[str, Any] | None = None) -> None:
        """Importing unmanaged applications is not supported."""
        raise UnsupportedOperationError("Read")

    def _configure(self, args: WebSignInArgs) -> None:
        body = ApplicationWebSignInPatch.for_args(args).to_graph_body()
        result = self._api.patch_application(args.object_id, body)
        if not result.ok:
            raise ExternalToolError(result.diagnostic)

        logger.info(
            "Configured application for web sign-in",
            extra={
                "object_id": args.object_id,
                "home_page_url": args.home_page_url,
            },
        )

    def _release(self, object_id: str) -> None:
        if not self._poller.is_present(object_id):
            logger.info("Application already absent", extra={"object_id": object_id})
            return

        result = self._api.delete_application(object_id)
        if result.outcome == Outcome.ERROR:
            raise ExternalToolError(result.diagnostic)
        if result.outcome == Outcome.NOT_FOUND:
            # Deleted externally between the probe and the DELETE
            logger.info("Application was deleted concurrently", extra={"object_id": object_id})

        self._poller.wait_for_existence(object_id, False)
        logger.info("Application deleted", extra={"object_id": object_id})
