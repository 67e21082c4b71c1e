from schemas.chunk import TextChunk, RetrievedDocument, RetrieveResult
from schemas.report import (
    SourceTag,
    Priority,
    OutlineSection,
    PlanningReport,
    ContentGap,
    ContentGapResult,
)
from schemas.serp import SerpEntry, HeadingAnalysis, KeywordFrequency, SerpAnalysisResult
