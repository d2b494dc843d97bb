"""Error taxonomy for the web sign-in provider.

Every verb either succeeds or raises one of these. Nothing is retried
outside the existence poller; the orchestration engine decides how errors
are presented to the user.
"""

from __future__ import annotations

from collections.abc import Sequence


class ProviderError(Exception):
    """Base class for all provider errors."""

    pass


class PropertyValidationError(ProviderError):
    """A required property is missing or has the wrong type.

    Fatal for the current verb and never retried.
    """

    def __init__(self, fields: Sequence[str], message: str) -> None:
        self.fields = tuple(fields)
        super().__init__(message)


class ExistenceTimeoutError(ProviderError):
    """The expected existence state was not observed within the attempt ceiling."""

    def __init__(self, object_id: str, expected_present: bool, attempts: int) -> None:
        self.object_id = object_id
        self.expected_present = expected_present
        self.attempts = attempts
        if expected_present:
            message = f"application with object ID {object_id} could not be found"
        else:
            message = f"application with object ID {object_id} still exists"
        super().__init__(f"{message} after {attempts} attempts")


class ExternalToolError(ProviderError):
    """The Azure CLI failed for a reason other than not-found.

    The raw diagnostic output is appended to the message for operators.
    """

    def __init__(self, diagnostic: str, command: Sequence[str] | None = None) -> None:
        self.diagnostic = diagnostic
        self.command = tuple(command) if command else ()
        super().__init__(diagnostic)


class UnsupportedOperationError(ProviderError):
    """A protocol operation this provider does not implement was invoked."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not supported by this provider")


class UnknownResourceTypeError(ProviderError):
    """A verb was invoked for a resource type token this provider does not know."""

    def __init__(self, verb: str, type_token: str) -> None:
        self.verb = verb
        self.type_token = type_token
        super().__init__(f"{verb}: unknown resource type '{type_token}'")
