"""Error taxonomy for the retrieval and generation core.

Only a few of these ever reach a caller: configuration problems, total
ingestion failure, an unready retriever, and total candidate exhaustion.
Connectivity and parse errors are recovered internally.
"""

from typing import Optional


class ContentPlannerError(Exception):
    """Base exception for the content planner."""

    error_code: str = "CONTENT_PLANNER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(ContentPlannerError):
    """Missing or rejected credentials for an external capability. Never retried."""

    error_code = "CONFIGURATION_ERROR"


class ConnectivityError(ContentPlannerError):
    """The remote vector index could not be reached or initialized."""

    error_code = "CONNECTIVITY_ERROR"


class IngestionError(ContentPlannerError):
    """Corpus ingestion stored no chunks at all."""

    error_code = "INGESTION_ERROR"


class RetrieverNotReadyError(ContentPlannerError):
    """retrieve() was called before a successful initialize()."""

    error_code = "RETRIEVER_NOT_READY"


class GenerationError(ContentPlannerError):
    """A text-generation call failed."""

    error_code = "GENERATION_ERROR"


class QuotaExceededError(GenerationError):
    """The text-generation provider rejected the call for rate or quota reasons."""

    error_code = "QUOTA_EXCEEDED"


class CandidatesExhaustedError(GenerationError):
    """Every model candidate failed."""

    error_code = "CANDIDATES_EXHAUSTED"

    def __init__(self, failures: list[str], message: Optional[str] = None):
        self.failures = list(failures)
        if message is None:
            message = "All model candidates failed:\n" + "\n".join(self.failures)
        super().__init__(message)


class ParseError(ContentPlannerError):
    """Raw model output could not be parsed. Internal to the repair chain."""

    error_code = "PARSE_ERROR"
