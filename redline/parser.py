"""
Turns raw model output into a StructuredResult without ever raising.

The model is asked for a single JSON object but regularly answers with
markdown fences, typographic quotes, trailing commas or a sentence of prose
around the object. Those are repaired; anything still unreadable becomes a
fixed fallback result that the UI can render like any other.
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

from .models import Comment, QuantitativeResult, StructuredResult
from .scoring import recompute_scores, zero_scores
from .text_utils import (
    extract_json_block,
    remove_trailing_commas,
    replace_smart_quotes,
    strip_code_fence,
)

logger = logging.getLogger(__name__)

ID_KEYS = ("document_id", "card_id", "id")
COMMENT_LIST_KEYS = ("comments", "locatable_comments")
REQUIRED_COMMENT_FIELDS = ("comment_id", "original_text", "comment_title", "comment_details", "recommendation")
CATEGORY_KEYS = ("severity", "comment_type")
OPTIONAL_TEXT_FIELDS = ("context_before", "context_after", "source_section")
OFFSET_FIELDS = ("start_char_index", "end_char_index")

FALLBACK_SUMMARY = "The analysis could not be completed because the model response was not readable."
FALLBACK_CATEGORY = {"legal": "Must Change", "bot_card": "LLM Issue"}


def _kind_family(kind: str) -> str:
    return "bot_card" if kind.startswith("bot_card") else "legal"


def _first_key(obj: Dict[str, Any], keys) -> Optional[str]:
    for k in keys:
        if k in obj:
            return k
    return None


# -----------------------------
# Repair + decode
# -----------------------------

def repair_json_text(raw: str) -> str:
    s = (raw or "").strip()
    s = strip_code_fence(s).strip()
    s = replace_smart_quotes(s)
    return remove_trailing_commas(s)


def _decode(raw: Any) -> Optional[Any]:
    if not isinstance(raw, str):
        return None
    cleaned = repair_json_text(raw)
    try:
        return json.loads(cleaned)
    except (ValueError, RecursionError):
        # prose before/after the object
        block = extract_json_block(cleaned)
        if block is None or block == cleaned:
            return None
        try:
            return json.loads(block)
        except (ValueError, RecursionError):
            return None


# -----------------------------
# Validation
# -----------------------------

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _valid_comment(c: Any) -> bool:
    if not isinstance(c, dict):
        return False
    if not all(isinstance(c.get(f), str) for f in REQUIRED_COMMENT_FIELDS):
        return False
    cat_key = _first_key(c, CATEGORY_KEYS)
    if cat_key is None or not isinstance(c[cat_key], str):
        return False
    if any(f in c and not isinstance(c[f], str) for f in OPTIONAL_TEXT_FIELDS):
        return False
    if any(f in c and not _is_number(c[f]) for f in OFFSET_FIELDS):
        return False
    market = c.get("market_standard")
    if market is not None:
        if not isinstance(market, dict):
            return False
        if not all(isinstance(v, str) for v in market.values()):
            return False
    return True


def _valid_summary(summary: Any, kind: str) -> bool:
    if summary is None or isinstance(summary, str):
        return True
    if _kind_family(kind) == "bot_card" and isinstance(summary, dict):
        return all(isinstance(v, str) for v in summary.values())
    return False


def is_valid(candidate: Any, kind: str = "legal") -> bool:
    """True when `candidate` (already-decoded JSON) has the analysis result shape."""
    if not isinstance(candidate, dict):
        return False
    id_key = _first_key(candidate, ID_KEYS)
    if id_key is None or not isinstance(candidate[id_key], str):
        return False
    if not _valid_summary(candidate.get("analysis_summary", candidate.get("summary")), kind):
        return False
    list_key = _first_key(candidate, COMMENT_LIST_KEYS)
    if list_key is None or not isinstance(candidate[list_key], list):
        return False
    return all(_valid_comment(c) for c in candidate[list_key])


# -----------------------------
# Results
# -----------------------------

def _fallback_id() -> str:
    return f"fallback_{int(time.time() * 1000)}"


def fallback_result(kind: str = "legal") -> StructuredResult:
    comment = Comment(
        id="fallback_comment",
        target_text="",
        category=FALLBACK_CATEGORY[_kind_family(kind)],
        title="Analysis failed: manual review required",
        details="The AI response could not be parsed into a structured review, so no clause-level comments are available.",
        recommendation="Review this content manually or run the analysis again.",
    )
    return StructuredResult(id=_fallback_id(), summary=FALLBACK_SUMMARY, comments=[comment], is_fallback=True)


def _to_result(obj: Dict[str, Any]) -> StructuredResult:
    summary = obj.get("analysis_summary", obj.get("summary"))
    details: Dict[str, str] = {}
    if isinstance(summary, dict):
        details = dict(summary)
        summary = summary.get("overall_assessment", "")
    list_key = _first_key(obj, COMMENT_LIST_KEYS)
    comments: List[Comment] = [Comment.from_llm(c) for c in obj[list_key]]
    return StructuredResult(
        id=obj[_first_key(obj, ID_KEYS)],
        summary=summary or "",
        summary_details=details,
        comments=comments,
    )


def parse(raw: str, kind: str = "legal") -> StructuredResult:
    obj = _decode(raw)
    if not is_valid(obj, kind):
        logger.warning("Unparseable %s analysis response (%d chars); returning fallback", kind, len(raw) if isinstance(raw, str) else 0)
        return fallback_result(kind)
    return _to_result(obj)


def parse_quantitative(raw: str, rubric: Dict[str, Any]) -> QuantitativeResult:
    """Decode a scoring response and rebuild its numbers from the rubric."""
    obj = _decode(raw)
    if is_valid_quantitative(obj):
        return QuantitativeResult(card_id=obj["card_id"], quantitative_scores=recompute_scores(obj["quantitative_scores"], rubric))

    logger.warning("Unparseable quantitative response (%d chars); returning zero scores", len(raw or "") if isinstance(raw, str) else 0)
    return QuantitativeResult(
        card_id=_fallback_id(),
        quantitative_scores=zero_scores(rubric, comment="Scoring failed; manual review required."),
        is_fallback=True,
    )


def is_valid_quantitative(candidate: Any) -> bool:
    if not isinstance(candidate, dict) or not isinstance(candidate.get("card_id"), str):
        return False
    scores = candidate.get("quantitative_scores")
    return isinstance(scores, dict) and isinstance(scores.get("sections"), dict)
