"""Grounded planning-report generator.

Builds one prompt from the competitive analysis and the retrieved compliance
passages and walks the model candidates in priority order until one answers.
An answer that cannot be parsed is wrapped in a fallback report and returned
as is; only failed calls move on to the next candidate.
"""

import logging
import re
from datetime import date
from typing import Any, Optional

from generators.fallback import FallbackRun, run_candidates
from generators.json_repair import ItemRecovery, repair_json
from generators.llm_client import MODEL_CANDIDATES, GenerationOptions
from generators.prompts import REPORT_PROMPT, compliance_constraints
from schemas.report import DEFAULT_DISCLAIMER, OutlineSection, PlanningReport, SourceTag

logger = logging.getLogger(__name__)

REPORT_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=8192, json_output=True)

REPORT_KEYS = {"title", "outline", "contentStrategy", "complianceNotes", "riskWarnings", "disclaimer"}

OUTLINE_ITEM = re.compile(
    r'\{\s*"heading"\s*:\s*"(?P<heading>[^"]*)"\s*,'
    r'\s*"description"\s*:\s*"(?P<description>[^"]*)"\s*,'
    r'\s*"source"\s*:\s*"(?P<source>[^"]*)"\s*\}'
)
OUTLINE_RECOVERY = ItemRecovery(list_key="outline", pattern=OUTLINE_ITEM)

FALLBACK_PREVIEW_CHARS = 500
FALLBACK_STRATEGY_CHARS = 1000


def default_title(keyword: str) -> str:
    return f"{keyword}: SEO article plan"


def _looks_like_report(data: Any) -> bool:
    return isinstance(data, dict) and any(key in data for key in REPORT_KEYS)


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _as_outline(value: Any) -> list[OutlineSection]:
    if not isinstance(value, list):
        return []
    sections = []
    for item in value:
        if not isinstance(item, dict):
            continue
        raw_tag = item.get("source", item.get("source_tag"))
        try:
            tag = SourceTag(raw_tag)
        except ValueError:
            tag = SourceTag.SEO_STRATEGY
        sections.append(
            OutlineSection(
                heading=_as_text(item.get("heading")),
                description=_as_text(item.get("description")),
                source_tag=tag,
            )
        )
    return sections


def build_fallback_report(keyword: str, raw_text: str) -> PlanningReport:
    """Wrap unparseable output so callers still get a usable report."""
    return PlanningReport(
        title=default_title(keyword),
        outline=[
            OutlineSection(
                heading="Plan content (raw model output)",
                description=raw_text[:FALLBACK_PREVIEW_CHARS],
                source_tag=SourceTag.SEO_STRATEGY,
            )
        ],
        content_strategy=raw_text[:FALLBACK_STRATEGY_CHARS],
        compliance_notes=["Refer to the internal compliance manual."],
        risk_warnings=["This article is for reference only."],
        disclaimer=DEFAULT_DISCLAIMER,
        is_fallback=True,
    )


def parse_report_response(raw_text: str, keyword: str) -> PlanningReport:
    """Turn raw model output into a PlanningReport. Never raises."""
    outcome = repair_json(raw_text, accept=_looks_like_report, items=OUTLINE_RECOVERY)
    if not outcome.ok:
        logger.error("Report JSON could not be recovered: %s", "; ".join(outcome.errors))
        return build_fallback_report(keyword, raw_text or "")

    if outcome.strategy not in ("whole", "braces"):
        logger.info("Report parsed via '%s' strategy", outcome.strategy)

    data = outcome.data
    return PlanningReport(
        title=_as_text(data.get("title")) or default_title(keyword),
        outline=_as_outline(data.get("outline")),
        content_strategy=_as_text(data.get("contentStrategy")),
        compliance_notes=_as_text_list(data.get("complianceNotes")),
        risk_warnings=_as_text_list(data.get("riskWarnings")),
        disclaimer=_as_text(data.get("disclaimer")) or DEFAULT_DISCLAIMER,
    )


class ReportGenerator:
    """Generates SEO planning reports, falling back across model candidates."""

    def __init__(
        self,
        llm,
        candidates: Optional[list[str]] = None,
        today: Optional[date] = None,
    ):
        self.llm = llm
        self.candidates = candidates if candidates is not None else list(MODEL_CANDIDATES[llm.provider])
        self.today = today

    def build_prompt(self, keyword: str, analysis_text: str, grounding_text: str) -> str:
        today = self.today or date.today()
        return REPORT_PROMPT.format(
            current_date=today.strftime("%B %Y"),
            current_year=today.year,
            keyword=keyword,
            analysis_text=analysis_text.strip() or "[No competitive analysis supplied]",
            grounding_text=grounding_text.strip() or "[No grounding passages supplied]",
            constraints=compliance_constraints(),
        )

    def generate_run(self, keyword: str, analysis_text: str, grounding_text: str) -> FallbackRun[PlanningReport]:
        """Like generate(), but also returns which candidate answered and every attempt."""
        prompt = self.build_prompt(keyword, analysis_text, grounding_text)

        def attempt(model: str) -> tuple[PlanningReport, bool]:
            text = self.llm.complete(model, prompt, REPORT_OPTIONS)
            report = parse_report_response(text, keyword)
            return report, not report.is_fallback

        return run_candidates(self.candidates, attempt, label="Report", stop_on_degraded=True)

    def generate(self, keyword: str, analysis_text: str, grounding_text: str) -> PlanningReport:
        """Generate a planning report.

        Raises:
            ConfigurationError: The provider rejected the credentials.
            CandidatesExhaustedError: Every candidate call failed.
        """
        return self.generate_run(keyword, analysis_text, grounding_text).value
