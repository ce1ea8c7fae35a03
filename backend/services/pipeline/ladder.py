"""LLM call ladder for the final evaluation.

States:
    FULL_ATTEMPT -> RETRY -> FALLBACK

The first attempt uses the primary timeout. Any provider failure moves to
RETRY, which waits a fixed backoff and sends the SAME prompt with a longer
timeout (the failure being handled is latency, not payload size). When the
schedule is exhausted the ladder ends in FALLBACK with no response.
"""

import asyncio
import logging
from enum import Enum

from pydantic import BaseModel

from config import settings
from services import llm_provider

logger = logging.getLogger(__name__)


class LadderState(str, Enum):
    FULL_ATTEMPT = "full_attempt"
    RETRY = "retry"
    FALLBACK = "fallback"


class AttemptSpec(BaseModel):
    state: LadderState
    timeout_s: float
    backoff_s: float = 0.0


class LadderSchedule(BaseModel):
    attempts: list[AttemptSpec]

    @classmethod
    def from_settings(cls) -> "LadderSchedule":
        return cls(attempts=[
            AttemptSpec(state=LadderState.FULL_ATTEMPT, timeout_s=settings.llm_primary_timeout_s),
            AttemptSpec(
                state=LadderState.RETRY,
                timeout_s=settings.llm_retry_timeout_s,
                backoff_s=settings.llm_retry_backoff_s,
            ),
        ])


class LadderResult(BaseModel):
    response: llm_provider.LLMResponse | None = None
    final_state: LadderState = LadderState.FALLBACK
    attempts: int = 0
    errors: list[str] = []

    @property
    def succeeded(self) -> bool:
        return self.response is not None


def next_state(attempts_made: int, schedule: LadderSchedule) -> LadderState:
    """State after `attempts_made` failed attempts."""
    if attempts_made >= len(schedule.attempts):
        return LadderState.FALLBACK
    return schedule.attempts[attempts_made].state


async def run_ladder(
    config: llm_provider.ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    schedule: LadderSchedule | None = None,
    temperature: float = 0.3,
    max_tokens: int = 4000,
) -> LadderResult:
    """Walk the schedule until one attempt succeeds or FALLBACK is reached."""
    plan = schedule or LadderSchedule.from_settings()
    errors: list[str] = []
    attempts_made = 0
    state = next_state(0, plan)

    while state is not LadderState.FALLBACK:
        spec = plan.attempts[attempts_made]
        if spec.backoff_s > 0:
            await asyncio.sleep(spec.backoff_s)

        logger.info("LLM ladder %s (attempt %d, timeout %.0fs)", state.value, attempts_made + 1, spec.timeout_s)
        try:
            response = await llm_provider.call_provider(
                config, system_prompt, user_prompt, temperature, max_tokens, spec.timeout_s
            )
            return LadderResult(
                response=response, final_state=state, attempts=attempts_made + 1, errors=errors
            )
        except llm_provider.LLMProviderError as e:
            logger.warning("LLM ladder %s failed: %s", state.value, e)
            errors.append(f"{state.value}: {e}")

        attempts_made += 1
        state = next_state(attempts_made, plan)

    logger.warning("LLM ladder exhausted after %d attempts", attempts_made)
    return LadderResult(final_state=LadderState.FALLBACK, attempts=attempts_made, errors=errors)
