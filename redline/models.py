from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

LEGAL_SEVERITIES = ("Must Change", "Recommend to Change", "Negotiable")
BOT_CARD_COMMENT_TYPES = ("Content Strength", "Content Issue", "LLM Issue")

# UI highlight level per category; unknown categories render as "medium"
DISPLAY_SEVERITY = {
    "Must Change": "high",
    "Recommend to Change": "medium",
    "Negotiable": "low",
    "LLM Issue": "high",
    "Content Issue": "medium",
    "Content Strength": "low",
}

BOT_CARD_SUMMARY_FIELDS = (
    "overall_assessment",
    "target_audience_fit",
    "discoverability_and_packaging",
    "narrative_potential_and_originality",
    "key_strengths_summary",
    "key_weaknesses_summary",
)


class MatchTier(str, Enum):
    """Which locator strategy placed a comment, most precise first."""
    EXACT_CONTEXT = "exact_context"
    NORMALIZED_CONTEXT = "normalized_context"
    BEFORE_CONTEXT = "before_context"
    AFTER_CONTEXT = "after_context"
    TARGET_ONLY = "target_only"
    FUZZY_HALF = "fuzzy_half"
    FIRST_WORD = "first_word"
    FALLBACK = "fallback"


class Standardness(BaseModel):
    is_standard: str = ""
    reasoning: str = ""


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    context_before: str = ""
    target_text: str = ""
    context_after: str = ""
    category: str = ""
    title: str = ""
    details: str = ""
    recommendation: str = ""
    source_section: Optional[str] = None
    standardness: Optional[Standardness] = None

    @classmethod
    def from_llm(cls, raw: Mapping[str, Any]) -> "Comment":
        """Build from either LLM comment shape (legal/PRD or bot card)."""
        def text(*keys: str) -> str:
            for k in keys:
                v = raw.get(k)
                if v is not None:
                    return v if isinstance(v, str) else str(v)
            return ""

        market = raw.get("market_standard")
        standardness = None
        if isinstance(market, Mapping):
            standardness = Standardness(
                is_standard=str(market.get("is_standard", "")),
                reasoning=str(market.get("reasoning", "")),
            )
        return cls(
            id=text("comment_id", "id"),
            context_before=text("context_before"),
            target_text=text("original_text", "target_text"),
            context_after=text("context_after"),
            category=text("severity", "comment_type", "category"),
            title=text("comment_title", "title"),
            details=text("comment_details", "details"),
            recommendation=text("recommendation"),
            source_section=text("source_section") or None,
            standardness=standardness,
        )

    @property
    def display_severity(self) -> str:
        return DISPLAY_SEVERITY.get(self.category, "medium")


class Span(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    tier: MatchTier


class LocatedComment(Comment):
    start: int
    end: int
    tier: MatchTier


class StructuredResult(BaseModel):
    id: str
    summary: str = ""
    summary_details: Dict[str, str] = Field(default_factory=dict)
    comments: List[Comment] = Field(default_factory=list)
    is_fallback: bool = False


class ScoreItem(BaseModel):
    score: float = 0.0
    comment: str = ""


class QuantitativeScores(BaseModel):
    sections: Dict[str, Dict[str, ScoreItem]] = Field(default_factory=dict)
    adjustments: Dict[str, ScoreItem] = Field(default_factory=dict)
    final_score: float = 0.0


class QuantitativeResult(BaseModel):
    card_id: str
    quantitative_scores: QuantitativeScores
    is_fallback: bool = False


class AnalysisResponse(BaseModel):
    result: StructuredResult
    located: List[LocatedComment] = Field(default_factory=list)
    cached: bool = False
