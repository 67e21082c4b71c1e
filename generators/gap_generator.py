"""Content-gap generator.

Asks a model which topics the ranking competitors fail to cover. Uses the
same candidate loop as report generation, but total failure is not an
error here: the caller gets an empty gap list and carries on.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from errors import CandidatesExhaustedError
from generators.fallback import run_candidates
from generators.json_repair import ItemRecovery, repair_json
from generators.llm_client import MODEL_CANDIDATES, GenerationOptions
from generators.prompts import GAP_PROMPT
from schemas.report import ContentGap, ContentGapResult, Priority
from schemas.serp import SerpEntry

logger = logging.getLogger(__name__)

GAP_OPTIONS = GenerationOptions(temperature=0.8, max_tokens=4096, json_output=True)

MAX_TOPIC_CHARS = 50
MAX_REASONING_CHARS = 150

GAP_ITEM = re.compile(
    r'\{\s*"topic"\s*:\s*"(?P<topic>[^"]+)"\s*,'
    r'\s*"reasoning"\s*:\s*"(?P<reasoning>[^"]+)"\s*,'
    r'\s*"priority"\s*:\s*"(?P<priority>high|medium|low)"\s*\}'
)
GAP_RECOVERY = ItemRecovery(list_key="gaps", pattern=GAP_ITEM)


def _gap_items(parsed: Any) -> list:
    """Accept either {"gaps": [...]} or a bare list."""
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("gaps"), list):
        return parsed["gaps"]
    return []


def extract_gaps(parsed: Any) -> list[ContentGap]:
    gaps = []
    for item in _gap_items(parsed):
        if not isinstance(item, dict):
            continue
        if not (item.get("topic") and item.get("reasoning") and item.get("priority")):
            continue
        try:
            priority = Priority(str(item["priority"]).lower())
        except ValueError:
            priority = Priority.MEDIUM
        gaps.append(
            ContentGap(
                topic=str(item["topic"])[:MAX_TOPIC_CHARS],
                reasoning=str(item["reasoning"])[:MAX_REASONING_CHARS],
                priority=priority,
            )
        )
    return gaps


def parse_gap_response(raw_text: str) -> list[ContentGap]:
    """Parse gaps out of raw model output. Returns [] when nothing is recoverable."""
    outcome = repair_json(raw_text, accept=lambda data: bool(extract_gaps(data)), items=GAP_RECOVERY)
    if not outcome.ok:
        logger.error("Content-gap JSON could not be recovered; first 200 chars: %.200s", raw_text)
        return []
    return extract_gaps(outcome.data)


def format_serp_entries(entries: list[SerpEntry]) -> str:
    blocks = []
    for entry in entries:
        h2s = ", ".join(entry.h2)
        blocks.append(
            f"Rank #{entry.rank} ({entry.source_authority})\n"
            f"Title: {entry.title}\n"
            f"H2: {h2s}\n"
            f"Snippet: {entry.snippet}"
        )
    return "\n\n".join(blocks)


def format_gaps(result: ContentGapResult) -> str:
    """Render gaps as competitive-analysis text for the report prompt."""
    if not result.gaps:
        return "Content gaps: none identified."
    lines = [f"Content gaps ({result.analysis_method}):"]
    for gap in result.gaps:
        lines.append(f"- [{gap.priority.value}] {gap.topic}: {gap.reasoning}")
    return "\n".join(lines)


class ContentGapGenerator:
    """Identifies content gaps in SERP competitor data using an LLM."""

    def __init__(
        self,
        llm,
        candidates: Optional[list[str]] = None,
        today: Optional[date] = None,
    ):
        self.llm = llm
        self.candidates = candidates if candidates is not None else list(MODEL_CANDIDATES[llm.provider])
        self.today = today

    def build_prompt(self, entries: list[SerpEntry]) -> str:
        today = self.today or date.today()
        return GAP_PROMPT.format(
            current_date=today.strftime("%B %Y"),
            competitor_count=len(entries),
            serp_summary=format_serp_entries(entries),
        )

    def generate(self, entries: list[SerpEntry]) -> ContentGapResult:
        """Identify content gaps.

        Raises:
            ConfigurationError: The provider rejected the credentials.
        """
        prompt = self.build_prompt(entries)
        timestamp = datetime.now(timezone.utc).isoformat()

        def attempt(model: str) -> tuple[list[ContentGap], bool]:
            text = self.llm.complete(model, prompt, GAP_OPTIONS)
            gaps = parse_gap_response(text)
            return gaps, bool(gaps)

        try:
            run = run_candidates(self.candidates, attempt, label="ContentGap")
        except CandidatesExhaustedError as e:
            logger.warning("All models failed for content-gap analysis: %s", e.failures)
            return ContentGapResult(gaps=[], analysis_method="analysis failed", timestamp=timestamp)

        if not run.value:
            logger.warning("No model produced any content gaps")
            return ContentGapResult(gaps=[], analysis_method="analysis failed", timestamp=timestamp)

        logger.info("Identified %d content gaps with %s", len(run.value), run.model)
        return ContentGapResult(
            gaps=run.value,
            analysis_method=f"LLM analysis ({run.model})",
            timestamp=timestamp,
        )
