"""
PlaceMarker Core: Retry Policy for Remote Calls
===============================================

What:  Tenacity configuration shared by the remote note store and the
       anonymous-identity client.
How:   Only httpx transport errors (connection refused, reset, timeout) are
       retried, with exponential backoff plus jitter. HTTP status errors are
       answers from the server and are never retried here.
       Place discovery and device fixes do not use this policy.
"""

import logging
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from placemarker.config import settings


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    min_wait: float = 0.5
    max_wait: float = 5.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            min_wait=settings.retry_min_wait,
            max_wait=settings.retry_max_wait,
        )

    def retrying(self, logger: logging.Logger) -> AsyncRetrying:
        """
        A fresh AsyncRetrying for one call site.

        Usage:
            async for attempt in policy.retrying(logger):
                with attempt:
                    response = await client.get(url)
        """
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait,
                max=self.max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


NO_RETRY = RetryPolicy(max_attempts=1, min_wait=0, max_wait=0)
