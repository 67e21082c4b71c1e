"""Pydantic models for search-results-page entries and their rule-based analysis."""

from typing import List

from pydantic import BaseModel, Field

from schemas.report import ContentGap


class SerpEntry(BaseModel):
    rank: int
    title: str = ""
    h2: List[str] = Field(default_factory=list, description="H2 headings of the ranking page")
    snippet: str = ""
    source_authority: str = Field(default="Unknown", description="Kind of site, e.g. bank, broker, forum")


class HeadingAnalysis(BaseModel):
    rank: int
    title: str
    h2_list: List[str] = Field(default_factory=list)
    source_authority: str = "Unknown"


class KeywordFrequency(BaseModel):
    keyword: str
    count: int
    appears_in: List[int] = Field(default_factory=list, description="Ranks of the entries mentioning the keyword")


class SerpAnalysisResult(BaseModel):
    """Rule-based summary of a results page, used as competitive-analysis input."""

    heading_structure: List[HeadingAnalysis] = Field(default_factory=list)
    keyword_distribution: List[KeywordFrequency] = Field(default_factory=list)
    content_gaps: List[ContentGap] = Field(default_factory=list)
    competitor_count: int = 0
    timestamp: str = ""
