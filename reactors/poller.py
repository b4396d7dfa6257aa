# poller.py
"""
Polls a launched container until it reports output, an error, or the
attempt budget runs out.

Defaults: every 5 seconds, at most 60 attempts (a 5 minute ceiling). The
agent exports ~900 likers per 25 seconds and LinkedIn caps a post at
3,000 likers, so a healthy run finishes in well under two minutes.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from .activity_log import OperationLog
from .classifier import error_from_message
from .errors import PollTimeoutError
from .models import Completed, Job, Pending, PollOutcome, ProfileRecord, ProviderFailed
from .normalizer import normalize, summarize_shape
from .provider import PhantomBusterClient

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_ATTEMPTS = 60

# Failures the agent sometimes writes into a nominally successful output field
OUTPUT_ERROR_MARKERS = ("Error:", "error:", "❌", "Execution failed", "Agent failed")


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def classify_response(payload: Any) -> PollOutcome:
    """Turn one fetch-output body into Pending / ProviderFailed / Completed."""
    if not isinstance(payload, dict):
        return Pending()

    error = payload.get("error")
    if error:
        return ProviderFailed(message=str(error))

    output = payload.get("output")
    if output is None:
        return Pending()
    if isinstance(output, str):
        if not output.strip():
            return Pending()
        if not _is_json(output) and any(m in output for m in OUTPUT_ERROR_MARKERS):
            return ProviderFailed(message=output.strip())
    return Completed(raw_output=output)


class Poller:
    def __init__(
        self,
        client: PhantomBusterClient,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def _attempt(self, job: Job, log: Optional[OperationLog]) -> PollOutcome:
        payload = await asyncio.to_thread(self.client.fetch_output, job.container_id)
        outcome = classify_response(payload)
        if isinstance(outcome, ProviderFailed):
            if log:
                log.error("Agent reported an error", {"message": outcome.message})
            raise error_from_message(outcome.message)
        return outcome

    def _log_wait(self, job: Job, log: Optional[OperationLog]):
        def before_sleep(retry_state) -> None:
            n = retry_state.attempt_number
            logger.debug("Container %s still running (attempt %d/%d)", job.container_id, n, self.max_attempts)
            if log:
                log.info(f"Waiting for results... (attempt {n}/{self.max_attempts})")

        return before_sleep

    async def wait_for_output(self, job: Job, log: Optional[OperationLog] = None) -> Any:
        """Raw container output once the agent is done."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda outcome: isinstance(outcome, Pending)),
            before_sleep=self._log_wait(job, log),
            sleep=self._sleep,
        )
        try:
            outcome = await retrying(self._attempt, job, log)
        except RetryError as e:
            if log:
                log.error(f"Timed out after {self.max_attempts} attempts")
            raise PollTimeoutError(
                "Timeout waiting for PhantomBuster results",
                detail={
                    "containerId": job.container_id,
                    "attempts": self.max_attempts,
                    "intervalSeconds": self.interval,
                },
            ) from e

        if log:
            log.success("Agent output received", summarize_shape(outcome.raw_output))
        return outcome.raw_output

    async def poll(self, job: Job, log: Optional[OperationLog] = None) -> List[ProfileRecord]:
        raw_output = await self.wait_for_output(job, log)
        profiles = normalize(raw_output)
        if log:
            log.operation(f"Normalized {len(profiles)} profile(s)")
        return profiles
