"""Existence polling for eventually consistent directory objects.

Entra ID replicates writes asynchronously: an application that was just
registered may 404 for a while, and one that was just deleted may still be
returned. Callers wait here until the observed state matches what they need.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .config import DEFAULT_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL_SECONDS, ProviderConfig
from .errors import ExistenceTimeoutError, ExternalToolError
from .graph_client import ApplicationApi, Outcome

logger = logging.getLogger(__name__)


class ExistencePoller:
    """Blocks until an application's existence matches an expectation.

    Only not-found is waited through. Any other failure of the probe is
    raised immediately without retrying.
    """

    def __init__(
        self,
        api: ApplicationApi,
        max_attempts: int = DEFAULT_POLL_ATTEMPTS,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api = api
        self._max_attempts = max_attempts
        self._interval_seconds = interval_seconds
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        api: ApplicationApi,
        config: ProviderConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ExistencePoller:
        return cls(
            api,
            max_attempts=config.poll_attempts,
            interval_seconds=config.poll_interval_seconds,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def is_present(self, object_id: str) -> bool:
        """Probe the directory once.

        Raises:
            ExternalToolError: If the probe failed for a reason other than not-found.
        """
        result = self._api.get_application_id(object_id)
        if result.outcome == Outcome.ERROR:
            raise ExternalToolError(result.diagnostic)
        return result.outcome != Outcome.NOT_FOUND

    def wait_for_existence(self, object_id: str, expected_present: bool) -> None:
        """Poll until the application is present (or absent) as expected.

        Args:
            object_id: Application object ID.
            expected_present: True to wait for the object to appear, False to
                wait for it to disappear.

        Raises:
            ExternalToolError: If a probe fails for a reason other than not-found.
            ExistenceTimeoutError: If the state was not reached within max_attempts.
        """
        for attempt in range(1, self._max_attempts + 1):
            present = self.is_present(object_id)
            if present == expected_present:
                logger.debug(
                    "Application existence confirmed",
                    extra={
                        "object_id": object_id,
                        "expected_present": expected_present,
                        "attempt": attempt,
                    },
                )
                return

            if attempt < self._max_attempts:
                self._sleep(self._interval_seconds)

        logger.warning(
            "Timed out waiting for application existence",
            extra={
                "object_id": object_id,
                "expected_present": expected_present,
                "attempts": self._max_attempts,
            },
        )
        raise ExistenceTimeoutError(object_id, expected_present, self._max_attempts)
