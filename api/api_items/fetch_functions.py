import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 1
DEFAULT_TIMEOUT_MS = 8000
BACKOFF_STEP_SECONDS = 0.4


class UpstreamError(Exception):
    """Raised when a third-party catalog call fails after every attempt."""

    def __init__(self, message: str, source: str = "", status: int | str | None = None):
        super().__init__(message)
        self.source = source
        self.status = status


class UpstreamTimeout(UpstreamError):
    """An attempt exceeded its deadline."""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message, source=source, status="timeout")


class UpstreamHttpError(UpstreamError):
    """The upstream answered with a non-2xx status."""


class InvalidRequestParameter(ValueError):
    """A query parameter cannot be served, e.g. an unsupported item type."""


def _attempt(session, method: str, url: str, timeout_seconds: float, source: str, request_kwargs: dict):
    """
    Run one HTTP exchange and decode its JSON body.

    Args:
        session: ``requests.Session`` compatible object.
        method (str): HTTP verb.
        url (str): Absolute URL.
        timeout_seconds (float): Deadline for the attempt.
        source (str): Source name used in error messages.
        request_kwargs (dict): Extra keyword arguments for ``session.request``.

    Returns:
        Any: Parsed JSON payload.
    """
    try:
        response = session.request(method, url, timeout=timeout_seconds, **request_kwargs)
    except requests.Timeout as exc:
        raise UpstreamTimeout(f"{source or url} timed out after {timeout_seconds:.1f}s", source=source) from exc
    except requests.RequestException as exc:
        raise UpstreamError(f"{source or url} request failed: {exc}", source=source, status="network") from exc

    if not response.ok:
        raise UpstreamHttpError(
            f"{source or url} responded with HTTP {response.status_code}",
            source=source,
            status=response.status_code,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(f"{source or url} returned a non-JSON body", source=source, status=response.status_code) from exc


def fetch_json(
    url: str,
    *,
    method: str = "GET",
    retries: int = DEFAULT_RETRIES,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    session=None,
    source: str = "",
    sleep: Callable[[float], None] = time.sleep,
    **request_kwargs,
):
    """
    Call a JSON endpoint with a per-attempt deadline and linear backoff retries.

    Args:
        url (str): Absolute URL.
        method (str): HTTP verb, ``GET`` unless stated otherwise.
        retries (int): Retries after the first attempt (``retries + 1`` attempts total).
        timeout_ms (int): Deadline for each attempt in milliseconds.
        session: ``requests.Session`` compatible object, a new session when omitted.
        source (str): Source name attached to raised errors and log lines.
        sleep (Callable): Sleep function used between attempts.
        **request_kwargs: Forwarded to ``session.request`` (params, headers, data, auth...).

    Returns:
        Any: Parsed JSON payload of the first successful attempt.

    Raises:
        UpstreamError: When every attempt failed; the last failure is raised.
    """
    http = session or requests.Session()
    attempts = max(int(retries), 0) + 1
    timeout_seconds = max(timeout_ms, 1) / 1000

    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return _attempt(http, method, url, timeout_seconds, source, request_kwargs)
        except UpstreamError as exc:
            last_error = exc
            if attempt >= attempts:
                break
            delay = BACKOFF_STEP_SECONDS * attempt
            logger.warning("%s attempt %d/%d failed (%s), retrying in %.1fs", source or url, attempt, attempts, exc, delay)
            sleep(delay)

    raise last_error


class SettledResults:
    """Outcome of a fan-out: successful values and failure reasons by task name."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        self.values = {}
        self.failures = {}

    def successes(self):
        """
        List the successful results in task order.

        Returns:
            list[tuple[str, Any]]: ``(name, value)`` pairs.
        """
        return [(name, self.values[name]) for name in self.names if name in self.values]

    def failure_reasons(self):
        """
        Describe each failed task.

        Returns:
            dict[str, str]: Failure message per task name.
        """
        return {name: str(error) or error.__class__.__name__ for name, error in self.failures.items()}


def settle_all(tasks: dict[str, Callable[[], Any]], max_workers: int = 5):
    """
    Run callables concurrently and wait for all of them, collecting failures instead of raising.

    Args:
        tasks (dict[str, Callable]): Zero-argument callables keyed by name; order is kept.
        max_workers (int): Thread pool size.

    Returns:
        SettledResults: Values and exceptions by name.
    """
    results = SettledResults(list(tasks))
    if not tasks:
        return results

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(tasks)))) as executor:
        futures = {name: executor.submit(task) for name, task in tasks.items()}
        wait(list(futures.values()))

    for name, future in futures.items():
        error = future.exception()
        if error is not None:
            logger.warning("%s failed during fan-out: %s", name, error)
            results.failures[name] = error
        else:
            results.values[name] = future.result()
    return results
