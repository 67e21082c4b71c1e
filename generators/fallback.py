"""Ordered model-candidate loop.

Each attempt ends in one of four outcomes:

  SUCCESS    the call worked and the response parsed; stop and return it
  DEGRADED   the call worked but only a fallback value could be built;
             either return it at once or remember it and try the next
             candidate, depending on stop_on_degraded
  RETRYABLE  the call failed (quota, timeout, API error); try the next candidate
  FATAL      credentials were rejected; stop, nothing else can succeed

Candidates are tried strictly one at a time so a FATAL outcome always
short-circuits the rest.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from errors import CandidatesExhaustedError, ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class CandidateAttempt:
    model: str
    outcome: AttemptOutcome
    error: Optional[str] = None


@dataclass
class FallbackRun(Generic[T]):
    """The value a run settled on, plus every attempt made to get it."""

    value: T
    model: str
    outcome: AttemptOutcome
    attempts: list[CandidateAttempt] = field(default_factory=list)

    @property
    def errors(self) -> list[CandidateAttempt]:
        return [a for a in self.attempts if a.outcome == AttemptOutcome.RETRYABLE]


def classify_error(exc: Exception) -> AttemptOutcome:
    if isinstance(exc, ConfigurationError):
        return AttemptOutcome.FATAL
    if "api key" in str(exc).lower():
        return AttemptOutcome.FATAL
    return AttemptOutcome.RETRYABLE


def run_candidates(
    candidates: list[str],
    attempt: Callable[[str], tuple[T, bool]],
    label: str = "LLM",
    stop_on_degraded: bool = False,
) -> FallbackRun[T]:
    """Try ``attempt(model)`` for each candidate in order.

    ``attempt`` returns ``(value, parsed_ok)``. A falsy ``parsed_ok`` marks the
    value as a degraded fallback. With ``stop_on_degraded`` the first degraded
    value ends the run; otherwise it is kept and returned only if no later
    candidate succeeds.

    Raises:
        ConfigurationError: A candidate failed on credentials.
        CandidatesExhaustedError: Every candidate failed and none produced
            even a degraded value.
    """
    attempts: list[CandidateAttempt] = []
    failures: list[str] = []
    degraded: Optional[FallbackRun[T]] = None

    for model in candidates:
        logger.info("[%s] Trying model %s", label, model)
        try:
            value, parsed_ok = attempt(model)
        except Exception as e:
            outcome = classify_error(e)
            attempts.append(CandidateAttempt(model=model, outcome=outcome, error=str(e)))
            if outcome == AttemptOutcome.FATAL:
                logger.error("[%s] %s rejected credentials, aborting: %s", label, model, e)
                if isinstance(e, ConfigurationError):
                    raise
                raise ConfigurationError(f"Invalid API key: {e}") from e
            logger.warning("[%s] %s failed: %s", label, model, e)
            failures.append(f"{model}: {e}")
            continue

        if parsed_ok:
            attempts.append(CandidateAttempt(model=model, outcome=AttemptOutcome.SUCCESS))
            logger.info("[%s] %s succeeded", label, model)
            return FallbackRun(value=value, model=model, outcome=AttemptOutcome.SUCCESS, attempts=attempts)

        attempts.append(CandidateAttempt(model=model, outcome=AttemptOutcome.DEGRADED))
        logger.warning("[%s] %s responded but the response could not be parsed", label, model)
        if stop_on_degraded:
            return FallbackRun(value=value, model=model, outcome=AttemptOutcome.DEGRADED, attempts=attempts)
        if degraded is None:
            degraded = FallbackRun(value=value, model=model, outcome=AttemptOutcome.DEGRADED)

    if degraded is not None:
        degraded.attempts = attempts
        return degraded

    raise CandidatesExhaustedError(failures)
