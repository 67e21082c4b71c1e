"""Pydantic models for generated content-planning reports and content gaps."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field

DEFAULT_DISCLAIMER = (
    "This article is for reference only and does not constitute financial or investment advice."
)


class SourceTag(str, Enum):
    SERP_GAP = "serp_gap"
    COMPLIANCE = "compliance"
    SEO_STRATEGY = "seo_strategy"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OutlineSection(BaseModel):
    heading: str = ""
    description: str = ""
    source_tag: SourceTag = Field(
        default=SourceTag.SEO_STRATEGY,
        description="Where the section comes from: a SERP content gap, the compliance manual, or SEO strategy",
    )


class PlanningReport(BaseModel):
    """Structured article plan extracted from model output."""

    title: str
    outline: List[OutlineSection] = Field(default_factory=list)
    content_strategy: str = ""
    compliance_notes: List[str] = Field(default_factory=list)
    risk_warnings: List[str] = Field(default_factory=list)
    disclaimer: str = DEFAULT_DISCLAIMER
    is_fallback: bool = Field(
        default=False,
        description="True when no parse strategy succeeded and raw text was wrapped instead",
    )


class ContentGap(BaseModel):
    topic: str
    reasoning: str
    priority: Priority = Priority.MEDIUM


class ContentGapResult(BaseModel):
    gaps: List[ContentGap] = Field(default_factory=list)
    analysis_method: str = ""
    timestamp: str = ""
