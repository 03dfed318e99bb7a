"""Bounded polling for asynchronous pipeline stages.

Transcript readiness and note readiness share one loop shape:

  not found / no id yet  -> sleep, retry
  status == "failed"     -> RemoteProcessingError, stop immediately
  status == "completed"  -> return (resource, elapsed_ms)
  anything else          -> sleep, retry

The loop gives up with FlowTimeoutError once the wall-clock budget is spent.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from ..exceptions import ApiError, FlowTimeoutError, RemoteProcessingError

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

T = TypeVar("T")


class PollResult(Generic[T]):
    __slots__ = ("resource", "elapsed_ms", "attempts")

    def __init__(self, resource: T, elapsed_ms: int, attempts: int) -> None:
        self.resource = resource
        self.elapsed_ms = elapsed_ms
        self.attempts = attempts


def poll_until_ready(
    fetch: Callable[[], T | None],
    status_of: Callable[[T], str],
    resource_name: str,
    timeout_ms: int,
    poll_interval_ms: int,
    failure_message: str | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult[T]:
    """Poll ``fetch`` until the resource reaches a terminal status.

    Args:
        fetch: Returns the parsed resource, or None when it has no id yet.
               May raise ApiError; a 404 counts as "not yet created".
        status_of: Extracts the status string from a resource.
        resource_name: Used in log and error messages ("transcript", "note generation").
        timeout_ms: Total budget measured from the first attempt.
        poll_interval_ms: Sleep between attempts.
        failure_message: Error text when the service reports ``failed``.
        clock: Monotonic clock in seconds.
        sleep: Sleep function taking seconds.

    Raises:
        RemoteProcessingError: the service reported ``failed``.
        FlowTimeoutError: no terminal status within ``timeout_ms``.
        ApiError: any error other than 404.
    """
    started = clock()
    attempts = 0

    def elapsed_ms() -> int:
        return int(round((clock() - started) * 1000))

    while elapsed_ms() <= timeout_ms:
        attempts += 1
        try:
            resource = fetch()
        except ApiError as exc:
            if not exc.is_not_found:
                raise
            resource = None

        if resource is not None:
            status = status_of(resource)
            if status == STATUS_FAILED:
                raise RemoteProcessingError(failure_message or f"{resource_name.capitalize()} failed")
            if status == STATUS_COMPLETED:
                waited = elapsed_ms()
                logger.info("%s ready after %dms (%d polls)", resource_name.capitalize(), waited, attempts)
                return PollResult(resource, waited, attempts)
            logger.debug("%s status=%s, waiting", resource_name, status or "unknown")
        else:
            logger.debug("%s not available yet, waiting", resource_name)

        sleep(poll_interval_ms / 1000)

    raise FlowTimeoutError(f"Timed out waiting for {resource_name} after {timeout_ms}ms")
