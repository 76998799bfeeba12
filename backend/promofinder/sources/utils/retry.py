"""Retry utilities with exponential backoff for outbound HTTP calls.

Source queries are deliberately not retried: every outbound attempt
consumes daily budget, so the aggregator issues exactly one attempt per
source per call. These decorators are for calls that are cheap to repeat.
"""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx
import structlog


logger = structlog.get_logger(__name__)


# Retry on connection-level failures only; timeouts and HTTP errors
# fall straight through so a translation provider fails fast.
connect_retry = retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    retry=retry_if_exception_type(
        (
            httpx.ConnectError,
            httpx.RemoteProtocolError,
        )
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


# Retry for idempotent read-only status calls (usage endpoints, health)
http_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(
        (
            httpx.HTTPStatusError,
            httpx.ConnectError,
            httpx.TimeoutException,
        )
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
