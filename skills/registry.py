"""Skill registry: named analysis capabilities behind one interface.

Skills are registered at startup by build_default_registry(); there is no
dynamic discovery.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from generators.gap_generator import ContentGapGenerator, format_gaps
from schemas.serp import SerpEntry
from skills.serp_analyzer import SerpAnalyzer, format_serp_analysis

logger = logging.getLogger(__name__)


@dataclass
class SkillResult:
    skill_name: str
    raw_data: Any
    formatted_output: str
    timestamp: str


class Skill(ABC):
    name: str
    description: str

    @abstractmethod
    def execute(self, input: Optional[Any] = None) -> SkillResult:
        ...


def _as_entries(input: Optional[Any]) -> list[SerpEntry]:
    return [e if isinstance(e, SerpEntry) else SerpEntry(**e) for e in (input or [])]


class SerpAnalyzerSkill(Skill):
    """Summarizes competitor headings and keyword usage without a model call."""

    name = "serp-analyzer"
    description = "Extract heading structure, keyword distribution and uncovered topics from SERP data"

    def __init__(self, analyzer: Optional[SerpAnalyzer] = None):
        self.analyzer = analyzer or SerpAnalyzer()

    def execute(self, input: Optional[Any] = None) -> SkillResult:
        result = self.analyzer.analyze(_as_entries(input))
        return SkillResult(
            skill_name=self.name,
            raw_data=result,
            formatted_output=format_serp_analysis(result),
            timestamp=result.timestamp,
        )


class ContentGapSkill(Skill):
    """Finds topics the ranking competitors leave uncovered."""

    name = "content-gap"
    description = "Analyze SERP competitors with an LLM and list uncovered content gaps"

    def __init__(self, generator: ContentGapGenerator):
        self.generator = generator

    def execute(self, input: Optional[Any] = None) -> SkillResult:
        result = self.generator.generate(_as_entries(input))
        return SkillResult(
            skill_name=self.name,
            raw_data=result,
            formatted_output=format_gaps(result),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


class SkillRegistry:
    def __init__(self):
        self._skills: dict[str, Skill] = {}

    def register(self, skill: Skill) -> None:
        if skill.name in self._skills:
            logger.warning('Skill "%s" is already registered. Overwriting.', skill.name)
        self._skills[skill.name] = skill

    def get(self, name: str) -> Optional[Skill]:
        return self._skills.get(name)

    def list(self) -> list[dict]:
        return [{"name": s.name, "description": s.description} for s in self._skills.values()]

    def execute(self, name: str, input: Optional[Any] = None) -> SkillResult:
        skill = self._skills.get(name)
        if skill is None:
            available = ", ".join(self._skills) or "none"
            raise KeyError(f'Skill "{name}" not found. Available skills: {available}')
        return skill.execute(input)


def build_default_registry(llm) -> SkillRegistry:
    registry = SkillRegistry()
    registry.register(SerpAnalyzerSkill())
    registry.register(ContentGapSkill(ContentGapGenerator(llm)))
    return registry
