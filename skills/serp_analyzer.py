"""Rule-based analysis of a search results page.

Extracts the heading structure of each ranking page, counts how often the
tracked domain terms appear, and flags candidate topics that no competitor
mentions. No model calls; the output is deterministic for a given input.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from schemas.report import ContentGap, Priority
from schemas.serp import HeadingAnalysis, KeywordFrequency, SerpAnalysisResult, SerpEntry

logger = logging.getLogger(__name__)

UNTITLED = "(untitled)"
MAX_KEYWORDS_SHOWN = 15

TRACKED_KEYWORDS = [
    "second mortgage", "home equity", "interest rate", "bank", "private lender",
    "application", "risk", "loan amount", "disbursement", "process",
    "credit", "legal", "calculator", "comparison", "approval",
    "scrivener", "trap", "case study", "fees", "contract",
    "foreclosure", "appraisal", "refinance", "handling fee", "broker",
]


@dataclass
class GapCandidate:
    """A topic searchers care about, considered covered if any keyword appears."""

    topic: str
    keywords: list[str]
    reasoning: str
    priority: Priority


GAP_CANDIDATES = [
    GapCandidate(
        topic="Long-term impact of a second mortgage on credit scores",
        keywords=["credit score", "credit report", "credit bureau"],
        reasoning="Borrowers worry about their long-term credit standing, but the results page barely covers it",
        priority=Priority.HIGH,
    ),
    GapCandidate(
        topic="Repayment pressure and household budgeting",
        keywords=["repayment plan", "budget", "household"],
        reasoning="Most pages cover the application process and ignore what repayment does to family finances",
        priority=Priority.HIGH,
    ),
    GapCandidate(
        topic="Second mortgage vs personal loans and policy loans",
        keywords=["personal loan", "policy loan", "financing options"],
        reasoning="Borrowers usually have several financing options and need a side-by-side comparison",
        priority=Priority.MEDIUM,
    ),
    GapCandidate(
        topic="Tax consequences of a second mortgage",
        keywords=["tax", "deduction"],
        reasoning="Tax is a major part of any property transaction, yet the results page hardly mentions it",
        priority=Priority.MEDIUM,
    ),
    GapCandidate(
        topic="Rejected applications and how to improve them",
        keywords=["rejected", "declined", "denied"],
        reasoning="Only success stories are shared; nobody analyses why applications fail",
        priority=Priority.HIGH,
    ),
    GapCandidate(
        topic="Regional differences in loan-to-value and rates",
        keywords=["region", "urban", "rural", "loan-to-value"],
        reasoning="Property location strongly affects approval terms but no page analyses it by region",
        priority=Priority.MEDIUM,
    ),
    GapCandidate(
        topic="What to do after paying off a second mortgage",
        keywords=["lien release", "payoff", "paid off"],
        reasoning="Releasing the lien after payoff is an easily overlooked step",
        priority=Priority.LOW,
    ),
]


def _entry_text(entry: SerpEntry) -> str:
    return " ".join([entry.title, *entry.h2, entry.snippet])


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword) + r"\b", re.IGNORECASE)


class SerpAnalyzer:
    """Summarizes competitor headings, keyword usage and uncovered topics."""

    def __init__(
        self,
        keywords: Optional[list[str]] = None,
        gap_candidates: Optional[list[GapCandidate]] = None,
    ):
        self.keywords = keywords if keywords is not None else list(TRACKED_KEYWORDS)
        self.gap_candidates = gap_candidates if gap_candidates is not None else list(GAP_CANDIDATES)
        self._patterns = [(kw, _keyword_pattern(kw)) for kw in self.keywords]

    def analyze(self, entries: list[SerpEntry]) -> SerpAnalysisResult:
        """Analyze a non-empty list of SERP entries.

        Raises:
            ValueError: No entries were supplied.
        """
        if not entries:
            raise ValueError("SERP data must be a non-empty list")

        result = SerpAnalysisResult(
            heading_structure=self.heading_structure(entries),
            keyword_distribution=self.keyword_distribution(entries),
            content_gaps=self.uncovered_topics(entries),
            competitor_count=len(entries),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(
            "Analyzed %d SERP entries: %d tracked keywords found, %d uncovered topics",
            result.competitor_count, len(result.keyword_distribution), len(result.content_gaps),
        )
        return result

    def heading_structure(self, entries: list[SerpEntry]) -> list[HeadingAnalysis]:
        return [
            HeadingAnalysis(
                rank=entry.rank,
                title=entry.title or UNTITLED,
                h2_list=[h for h in entry.h2 if h],
                source_authority=entry.source_authority or "Unknown",
            )
            for entry in entries
        ]

    def keyword_distribution(self, entries: list[SerpEntry]) -> list[KeywordFrequency]:
        """Count tracked keywords across entries, most frequent first."""
        counts: dict[str, int] = {}
        ranks: dict[str, set[int]] = {}
        for entry in entries:
            text = _entry_text(entry)
            for keyword, pattern in self._patterns:
                matches = len(pattern.findall(text))
                if matches:
                    counts[keyword] = counts.get(keyword, 0) + matches
                    ranks.setdefault(keyword, set()).add(entry.rank)

        frequencies = [
            KeywordFrequency(keyword=kw, count=count, appears_in=sorted(ranks[kw]))
            for kw, count in counts.items()
        ]
        frequencies.sort(key=lambda f: f.count, reverse=True)
        return frequencies

    def uncovered_topics(self, entries: list[SerpEntry]) -> list[ContentGap]:
        """Gap candidates none of whose keywords appear anywhere on the page."""
        all_text = " ".join(_entry_text(e) for e in entries).lower()
        return [
            ContentGap(topic=c.topic, reasoning=c.reasoning, priority=c.priority)
            for c in self.gap_candidates
            if not any(kw.lower() in all_text for kw in c.keywords)
        ]


def format_serp_analysis(result: SerpAnalysisResult) -> str:
    """Render an analysis as competitive-analysis text for the report prompt."""
    lines = ["=== SERP competitive analysis ===", "", "[Competitor heading structure]"]
    for heading in result.heading_structure:
        lines.append(f"\nRank #{heading.rank} (authority: {heading.source_authority})")
        lines.append(f"  H1: {heading.title}")
        for i, h2 in enumerate(heading.h2_list, 1):
            lines.append(f"  H2-{i}: {h2}")

    lines.append("\n[Keyword distribution]")
    for kw in result.keyword_distribution[:MAX_KEYWORDS_SHOWN]:
        seen_in = ", #".join(str(r) for r in kw.appears_in)
        lines.append(f'  "{kw.keyword}" appears {kw.count} times (ranks #{seen_in})')

    lines.append("\n[Content gaps]")
    for i, gap in enumerate(result.content_gaps, 1):
        lines.append(f"\n{i}. [{gap.priority.value.upper()}] {gap.topic}")
        lines.append(f"   Reason: {gap.reasoning}")

    return "\n".join(lines)
