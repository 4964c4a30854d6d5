"""Bounded retry around a single physical HTTP exchange.

:class:`RetryExecutor` sends a request up to ``retries + 1`` times:

- A response with a retryable status (408, 425, 429, 500, 502, 503, 504)
  is retried after a delay taken from ``X-Retry-In`` (a duration such as
  ``1m30s``), then ``Retry-After`` (seconds or an HTTP date), else the
  default backoff. The last attempt's response is returned either way.
- Any other status is returned at once.
- A timeout on a non-final attempt logs a warning and retries
  immediately; on the final attempt it raises
  :class:`~resli.exceptions.RequestTimeoutError`.
- Other transport failures are retried with the default backoff and raise
  :class:`~resli.exceptions.ConnectionError_` on the final attempt.

Attempts are driven by :class:`tenacity.Retrying`. The sleep function is
injectable so tests never wait on real timers.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from resli.exceptions import ConnectionError_, RequestTimeoutError
from resli.output import debug, warning

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

REDACTED_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> Optional[float]:
    """Parse a duration such as ``"1h2m3.5s"`` or ``"250ms"`` into seconds.

    Returns ``None`` for anything that is not a well-formed duration.
    """
    value = value.strip()
    sign = 1.0
    if value[:1] in ("+", "-"):
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]
    if value == "0":
        return 0.0
    if not value:
        return None

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            return None
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        return None
    return sign * total


def format_duration(seconds: float) -> str:
    """Short human form, truncated to milliseconds: ``1.5s``, ``250ms``."""
    millis = int(seconds * 1000)
    if millis < 1000:
        return f"{millis}ms"
    return f"{millis / 1000:g}s"


def retry_delay(headers: httpx.Headers, now: float, default: float) -> float:
    """Seconds to wait before retrying, from response hints or *default*."""
    delay = default

    retry_after = headers.get("retry-after")
    if retry_after:
        retry_after = retry_after.strip()
        if retry_after.isdigit():
            delay = float(retry_after)
        else:
            try:
                delay = max(parsedate_to_datetime(retry_after).timestamp() - now, 0.0)
            except (TypeError, ValueError):
                pass

    retry_in = headers.get("x-retry-in")
    if retry_in:
        parsed = parse_duration(retry_in)
        if parsed is not None:
            delay = max(parsed, 0.0)

    return delay


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to try.

    Attributes:
        retries: Extra attempts after the first; attempts = ``retries + 1``.
        timeout: Per-attempt timeout in seconds, ``None`` for no limit.
        default_backoff: Delay when the server gives no hint.
    """

    retries: int = 2
    timeout: Optional[float] = None
    default_backoff: float = 1.0

    @property
    def attempts(self) -> int:
        return self.retries + 1


def _redact(name: str, value: str) -> str:
    return "<redacted>" if name.lower() in REDACTED_HEADERS else value


def log_request(request: httpx.Request) -> None:
    lines = [f"{request.method} {request.url}"]
    lines.extend(f"{k}: {_redact(k, v)}" for k, v in request.headers.multi_items())
    debug("Request:\n" + "\n".join(lines))


def log_response(response: httpx.Response, elapsed: float) -> None:
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
    lines.extend(f"{k}: {_redact(k, v)}" for k, v in response.headers.multi_items())
    debug(f"Response after {format_duration(elapsed)}:\n" + "\n".join(lines))


class ServerHintWait(wait_base):
    """Tenacity wait strategy that honours ``X-Retry-In`` and ``Retry-After``.

    Timeouts are retried at once; other transport failures wait the
    default backoff.
    """

    def __init__(self, default_backoff: float, clock: Callable[[], float]) -> None:
        self._default = default_backoff
        self._clock = clock

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is None:
            return self._default
        if outcome.failed:
            if isinstance(outcome.exception(), httpx.TimeoutException):
                return 0.0
            return self._default
        return retry_delay(outcome.result().headers, self._clock(), self._default)


def _is_retryable(response: httpx.Response) -> bool:
    return response.status_code in RETRYABLE_STATUS_CODES


def _final_outcome(retry_state: RetryCallState) -> httpx.Response:
    """Out of attempts: return the last response or raise the last error."""
    outcome = retry_state.outcome
    assert outcome is not None
    if outcome.failed:
        raise outcome.exception()
    return outcome.result()


class RetryExecutor:
    """Send requests through *client* according to *policy*.

    Args:
        client: The client whose transport stack performs the exchange.
        policy: Attempt count, timeout and default backoff.
        sleep: Called with the delay in seconds between attempts.
        clock: POSIX time source used to interpret ``Retry-After`` dates.
    """

    def __init__(
        self,
        client: httpx.Client,
        policy: RetryPolicy,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep
        self._clock = clock

    def execute(self, request: httpx.Request, log: bool = True) -> httpx.Response:
        """Send *request*, retrying transient failures.

        Raises:
            RequestTimeoutError: If the final attempt timed out.
            ConnectionError_: If the final attempt failed at transport level.
        """
        policy = self._policy
        if policy.timeout:
            request.extensions["timeout"] = httpx.Timeout(policy.timeout).as_dict()
        # The body is read once so every attempt replays identical bytes.
        request.read()

        retrying = Retrying(
            stop=stop_after_attempt(policy.attempts),
            retry=retry_if_result(_is_retryable) | retry_if_exception_type(httpx.TransportError),
            wait=ServerHintWait(policy.default_backoff, self._clock),
            sleep=self._pause,
            before_sleep=self._before_sleep,
            retry_error_callback=_final_outcome,
        )
        try:
            return retrying(self._attempt, request, log)
        except httpx.TimeoutException as exc:
            shown = format_duration(policy.timeout or 0)
            raise RequestTimeoutError(f"Request timed out after {shown}") from exc
        except httpx.RequestError as exc:
            raise ConnectionError_(f"Request to {request.url} failed: {exc}") from exc

    def _attempt(self, request: httpx.Request, log: bool) -> httpx.Response:
        if log:
            log_request(request)
        start = time.monotonic()
        response = self._client.send(request)
        if log:
            log_response(response, time.monotonic() - start)
        return response

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        delay = 0.0
        if retry_state.next_action is not None:
            delay = float(retry_state.next_action.sleep)

        outcome = retry_state.outcome
        assert outcome is not None
        if outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, httpx.TimeoutException):
                shown = format_duration(self._policy.timeout or 0)
                warning(f"Got request timeout after {shown}, retrying")
            else:
                warning(f"Request failed: {exc}, retrying in {format_duration(delay)}")
            return

        response = outcome.result()
        warning(
            f"Got {response.status_code} {response.reason_phrase}, "
            f"retrying in {format_duration(delay)}"
        )
        response.close()
