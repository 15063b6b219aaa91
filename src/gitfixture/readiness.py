"""Polling helpers for observing fixture effects.

Fixture outputs (a commit landed, a tag pushed) are observed indirectly: a
pipeline picks them up and reports a status object with conditions. The
helpers here poll read-only checks at a fixed interval until they pass or a
deadline expires. They must never wrap mutating git operations.
"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from gitfixture.git.errors import GitFixtureError

logger = logging.getLogger("gitfixture.readiness")

READY = "Ready"
DEFAULT_TIMEOUT = 120.0
DEFAULT_INTERVAL = 5.0


class ReadinessTimeoutError(GitFixtureError, TimeoutError):
    """Raised when a polled check does not pass before its deadline.

    Attributes:
        last_error (Exception | None): The exception from the final attempt, if any.
    """

    def __init__(self, message: str, last_error: Exception | None = None) -> None:
        self.last_error = last_error
        if last_error is not None:
            message = f"{message} (last error: {last_error})"
        super().__init__(message, step="wait for readiness")


class Condition(BaseModel):
    """One status condition, keyed by type."""

    type: str
    status: Literal["True", "False", "Unknown"] = "Unknown"
    reason: str = ""
    message: str = ""


def is_condition_true(conditions: Iterable[Condition], condition_type: str = READY) -> bool:
    """Return True if a condition of condition_type is present with status True."""
    return any(c.type == condition_type and c.status == "True" for c in conditions)


def wait_until(
    check: Callable[[], Any],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    *,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """Call check() until it returns a truthy value.

    Exceptions raised by check() count as "not yet" and are logged.

    Args:
        check: Read-only probe to poll.
        timeout: Seconds before giving up. Defaults to 120.
        interval: Seconds between attempts. Defaults to 5.
        description: Name used in log lines and the timeout message.
        sleep: Sleep function, replaceable in tests.
        clock: Monotonic clock, replaceable in tests.

    Returns:
        The first truthy value returned by check().

    Raises:
        ReadinessTimeoutError: If the deadline passes without a truthy result.
    """
    deadline = clock() + timeout
    attempts = 0
    last_error = None
    while True:
        attempts += 1
        try:
            value = check()
        except Exception as e:
            last_error = e
            logger.debug(f"{description} not ready (attempt {attempts}): {type(e).__name__}: {e}")
        else:
            if value:
                logger.info(f"{description} ready after {attempts} attempt(s)")
                return value
            last_error = None
            logger.debug(f"{description} not ready (attempt {attempts})")
        if clock() + interval > deadline:
            break
        sleep(interval)
    logger.warning(f"{description} not ready after {timeout}s")
    raise ReadinessTimeoutError(f"{description} not ready after {timeout}s", last_error)


class HttpStatusSource:
    """Reads status conditions from a JSON endpoint.

    The endpoint returns an object with ``status.conditions``, the shape
    Kubernetes-style resources use.

    Attributes:
        url (str): Endpoint to GET.
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, *, client: httpx.Client | None = None) -> None:
        self.url = url
        self._headers = headers or {}
        self._client = client

    def conditions(self) -> list[Condition]:
        """Fetch the status object and return its conditions.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status.
        """
        if self._client is not None:
            response = self._client.get(self.url, headers=self._headers)
        else:
            with httpx.Client() as client:
                response = client.get(self.url, headers=self._headers)
        response.raise_for_status()
        status = response.json().get("status") or {}
        return [Condition(**c) for c in status.get("conditions") or []]

    def ready(self, condition_type: str = READY) -> bool:
        """Return True if the resource reports condition_type as True."""
        return is_condition_true(self.conditions(), condition_type)
