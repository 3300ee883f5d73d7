import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class LLMCallError(RuntimeError):
    """A single provider call failed (transport error, bad status, timeout)."""


class LLMUnavailableError(RuntimeError):
    """The provider could not be reached after every retry; surfaced to the caller."""


def exponential_backoff(base: float = 1.0, factor: float = 2.0, max_delay: float = 30.0) -> Callable[[int], float]:
    """Delay before retry number `attempt` (0-based): base, base*factor, ..."""
    def delay(attempt: int) -> float:
        return min(max_delay, base * (factor ** attempt))
    return delay


def with_retries(
    fn: Callable[[], str],
    attempts: int = 3,
    backoff: Optional[Callable[[int], float]] = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "llm",
) -> str:
    """
    Call `fn` until it returns a non-empty string.

    Both an LLMCallError and an empty/whitespace-only response count as a failed
    attempt. After `attempts` failures an LLMUnavailableError is raised, which
    the API reports differently from a response that arrived but did not parse.
    """
    attempts = max(1, int(attempts))
    backoff = backoff or exponential_backoff()
    last_err: Optional[Exception] = None

    for attempt in range(attempts):
        try:
            out = fn()
            if out and out.strip():
                return out
            last_err = LLMCallError("empty response")
        except LLMCallError as e:
            last_err = e

        if attempt < attempts - 1:
            delay = backoff(attempt)
            logger.warning("%s attempt %d/%d failed (%s); retrying in %.1fs", label, attempt + 1, attempts, last_err, delay)
            sleep(delay)

    logger.error("%s failed after %d attempts: %s", label, attempts, last_err)
    raise LLMUnavailableError(f"{label} request failed after {attempts} attempts: {last_err}")
