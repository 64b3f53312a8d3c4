from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Verdict(str, Enum):
    TRUE = "TRUE"
    FALSE = "FALSE"
    MISLEADING = "MISLEADING"
    NUANCED = "NUANCED"
    AI_GENERATED = "AI_GENERATED"
    MANIPULATED = "MANIPULATED"
    UNVERIFIED = "UNVERIFIED"

    @property
    def is_synthetic_media(self) -> bool:
        return self in (Verdict.AI_GENERATED, Verdict.MANIPULATED)


class Source(CamelModel):
    title: str
    url: str
    domain: str
    snippet: str
    published_date: Optional[str] = None
    trust_score: Optional[int] = Field(default=None, ge=0, le=100)


class VisualAnalysis(CamelModel):
    is_ai_generated: bool = Field(alias="isAIGenerated")
    is_manipulated: bool
    artifacts: List[str] = Field(default_factory=list)
    confidence: int = Field(ge=0, le=100)
    details: str


class VerdictRecord(CamelModel):
    """One completed verification."""
    claim: str = Field(..., min_length=1)
    verdict: Verdict = Verdict.UNVERIFIED
    confidence_score: int = Field(..., ge=0, le=100)
    summary: str = Field(..., min_length=1)
    analysis_body: str = Field(..., min_length=1)
    sources: List[Source] = Field(default_factory=list, max_length=10)
    visual_analysis: Optional[VisualAnalysis] = None
    image_url: Optional[str] = None
    processing_time_ms: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class StoredFactCheck(VerdictRecord):
    """A VerdictRecord as persisted for a user."""
    id: str
    user_id: str
    saved_at: datetime = Field(default_factory=datetime.utcnow)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class FactCheckPage(CamelModel):
    fact_checks: List[StoredFactCheck]
    pagination: Pagination


class VerdictStats(CamelModel):
    total: int
    verdicts: dict
