"""Tests for SERP content-gap analysis."""

from datetime import date

import pytest

from errors import ConfigurationError, GenerationError
from generators.gap_generator import GAP_OPTIONS, ContentGapGenerator, format_gaps, format_serp_entries
from schemas.report import ContentGap, ContentGapResult, Priority
from schemas.serp import SerpEntry
from tests.conftest import ScriptedLLM

CANDIDATES = ["model-a", "model-b"]

ENTRIES = [
    SerpEntry(
        rank=1,
        title="Second mortgage rates explained",
        h2=["Current rates", "How to apply"],
        snippet="Compare rates from major banks.",
        source_authority="bank",
    ),
    SerpEntry(rank=2, title="Forum: is a second mortgage worth it?", snippet="Users share stories."),
]

VALID_GAPS = (
    '{"gaps": ['
    '{"topic": "Early repayment fees", "reasoning": "No competitor lists them.", "priority": "high"}, '
    '{"topic": "Impact on credit score", "reasoning": "Only forums mention it.", "priority": "medium"}'
    "]}"
)


def _generator(script: dict) -> tuple[ContentGapGenerator, ScriptedLLM]:
    llm = ScriptedLLM(script)
    return ContentGapGenerator(llm, candidates=CANDIDATES, today=date(2026, 10, 1)), llm


def test_gaps_from_first_model():
    generator, llm = _generator({"model-a": VALID_GAPS, "model-b": VALID_GAPS})

    result = generator.generate(ENTRIES)

    assert [g.topic for g in result.gaps] == ["Early repayment fees", "Impact on credit score"]
    assert result.analysis_method == "LLM analysis (model-a)"
    assert result.timestamp
    assert llm.calls == ["model-a"]
    assert llm.options == [GAP_OPTIONS]


def test_empty_gap_list_tries_next_model():
    generator, llm = _generator({"model-a": '{"gaps": []}', "model-b": VALID_GAPS})

    result = generator.generate(ENTRIES)

    assert len(result.gaps) == 2
    assert llm.calls == CANDIDATES


def test_total_failure_returns_empty_result():
    generator, _ = _generator({
        "model-a": GenerationError("server error"),
        "model-b": GenerationError("server error"),
    })

    result = generator.generate(ENTRIES)

    assert result.gaps == []
    assert result.analysis_method == "analysis failed"


def test_no_parseable_gaps_returns_empty_result():
    generator, _ = _generator({"model-a": "No gaps.", "model-b": "Still none."})

    result = generator.generate(ENTRIES)

    assert result.gaps == []
    assert result.analysis_method == "analysis failed"


def test_rejected_credentials_propagate():
    generator, llm = _generator({"model-a": ConfigurationError("bad key"), "model-b": VALID_GAPS})

    with pytest.raises(ConfigurationError):
        generator.generate(ENTRIES)
    assert llm.calls == ["model-a"]


def test_prompt_lists_competitors():
    generator, _ = _generator({})

    prompt = generator.build_prompt(ENTRIES)

    assert "top 2 competitors" in prompt
    assert "October 2026" in prompt
    assert "Rank #1 (bank)" in prompt
    assert "H2: Current rates, How to apply" in prompt
    assert "Rank #2 (Unknown)" in prompt


def test_format_serp_entries_separates_blocks():
    text = format_serp_entries(ENTRIES)
    assert text.count("Rank #") == 2
    assert "\n\n" in text


def test_format_gaps():
    result = ContentGapResult(
        gaps=[ContentGap(topic="Fees", reasoning="Missing everywhere.", priority=Priority.HIGH)],
        analysis_method="LLM analysis (model-a)",
    )

    assert format_gaps(result) == "Content gaps (LLM analysis (model-a)):\n- [high] Fees: Missing everywhere."
    assert format_gaps(ContentGapResult()) == "Content gaps: none identified."
