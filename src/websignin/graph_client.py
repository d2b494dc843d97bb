"""Microsoft Graph access through the authenticated Azure CLI.

Every request is an `az rest` invocation, so authentication is whatever the
CLI session holds (az login, managed identity, workload identity). The
subprocess exit status and its stderr text are the only failure signal the
CLI gives us, so outcomes are classified by matching the diagnostic text.

Classification lives entirely in this module. The reconciler only sees
InvokeResult outcomes, which keeps the text matching swappable for a
structured Graph client with typed error codes.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .config import ProviderConfig

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "Content-Type=application/json"

# Graph not-found signatures only; az tracebacks mention ModuleNotFoundError
NOT_FOUND_PATTERN = re.compile(
    r"Request_ResourceNotFound|\bNot Found\(|Response status: 404", re.IGNORECASE
)


class HttpMethod(str, Enum):
    """HTTP verbs issued against the applications endpoint."""

    GET = "GET"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Outcome(str, Enum):
    """Classified outcome of one external call."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class InvokeResult:
    """Result of a single `az rest` invocation.

    Attributes:
        outcome: Classified outcome.
        stdout: Standard output of the tool (the response body on success).
        diagnostic: Tool name, exit status and stderr when the call failed.
    """

    outcome: Outcome
    stdout: str = ""
    diagnostic: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @property
    def not_found(self) -> bool:
        return self.outcome == Outcome.NOT_FOUND


def classify_failure(diagnostic: str) -> Outcome:
    """Classify a failed invocation from its diagnostic text."""
    if NOT_FOUND_PATTERN.search(diagnostic):
        return Outcome.NOT_FOUND
    return Outcome.ERROR


class ApplicationApi(Protocol):
    """What the poller and reconciler need from the directory."""

    def get_application_id(self, object_id: str) -> InvokeResult: ...

    def patch_application(self, object_id: str, body: Mapping[str, Any]) -> InvokeResult: ...

    def delete_application(self, object_id: str) -> InvokeResult: ...


class GraphCliClient:
    """Issues Graph requests for application objects via `az rest`."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def build_command(
        self,
        method: HttpMethod,
        uri: str,
        headers: Sequence[str] | None = None,
        body: Mapping[str, Any] | None = None,
        query: str | None = None,
        verbose: bool = True,
    ) -> list[str]:
        """Build the `az rest` argument vector for one request."""
        cmd = [self._config.az_cli_path, "rest", "--method", method.value]

        header_values = list(headers or [])
        if body is not None and JSON_CONTENT_TYPE not in header_values:
            header_values.append(JSON_CONTENT_TYPE)
        if header_values:
            cmd.extend(["--headers", *header_values])

        cmd.extend(["--uri", uri])

        if body is not None:
            cmd.extend(["--body", json.dumps(body, separators=(",", ":"))])
        if query:
            cmd.extend(["--query", query])
        if verbose:
            cmd.append("--verbose")
        return cmd

    def invoke(
        self,
        method: HttpMethod,
        uri: str,
        headers: Sequence[str] | None = None,
        body: Mapping[str, Any] | None = None,
        query: str | None = None,
        verbose: bool = True,
    ) -> InvokeResult:
        """Run one request and classify its outcome.

        Never raises for a failed request: missing executables and timeouts
        are reported as Outcome.ERROR with a diagnostic.
        """
        cmd = self.build_command(
            method, uri, headers=headers, body=body, query=query, verbose=verbose
        )
        tool = cmd[0]

        logger.debug("Executing command: %s", cmd)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._config.command_timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            diagnostic = f"{tool} timed out after {self._config.command_timeout_seconds}s"
            logger.debug("err: %s", diagnostic)
            return InvokeResult(outcome=Outcome.ERROR, diagnostic=diagnostic)
        except FileNotFoundError:
            diagnostic = f"{tool} failed: command not found"
            logger.debug("err: %s", diagnostic)
            return InvokeResult(outcome=Outcome.ERROR, diagnostic=diagnostic)

        logger.debug("stdout: %s", result.stdout)
        logger.debug("stderr: %s", result.stderr)

        if result.returncode == 0:
            return InvokeResult(outcome=Outcome.SUCCESS, stdout=result.stdout)

        diagnostic = f"{tool} failed with exit status {result.returncode}\n{result.stderr}"
        logger.debug("err: %s", diagnostic)
        return InvokeResult(
            outcome=classify_failure(diagnostic),
            stdout=result.stdout,
            diagnostic=diagnostic,
        )

    def get_application_id(self, object_id: str) -> InvokeResult:
        """GET the application, projecting only its id to keep the payload small."""
        return self.invoke(
            HttpMethod.GET,
            self._config.application_uri(object_id),
            query="id",
            verbose=False,
        )

    def patch_application(self, object_id: str, body: Mapping[str, Any]) -> InvokeResult:
        return self.invoke(
            HttpMethod.PATCH,
            self._config.application_uri(object_id),
            body=body,
        )

    def delete_application(self, object_id: str) -> InvokeResult:
        return self.invoke(
            HttpMethod.DELETE,
            self._config.application_uri(object_id),
            headers=[JSON_CONTENT_TYPE],
        )
