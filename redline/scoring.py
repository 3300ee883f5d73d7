import math
from typing import Any, Dict

from .models import QuantitativeScores, ScoreItem


def _as_number(value: Any) -> float:
    """Model scores arrive as ints, floats, numeric strings or junk; junk counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def clamp(value: Any, lo: float, hi: float) -> float:
    return min(max(_as_number(value), lo), hi)


def _item(raw: Any, hi: float) -> ScoreItem:
    if isinstance(raw, ScoreItem):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        # bare number instead of {"score": n, "comment": ...}
        raw = {"score": raw}
    comment = raw.get("comment")
    return ScoreItem(score=clamp(raw.get("score"), 0.0, hi), comment=comment if isinstance(comment, str) else "")


def recompute_scores(scores: Dict[str, Any], rubric: Dict[str, Any]) -> QuantitativeScores:
    """
    Clamp every itemized score into its declared bound and rebuild final_score.

    final = sum(score) + sum(sign * adjustment), clamped to the rubric range.
    Whatever total the model reported is discarded.
    """
    scores = scores if isinstance(scores, dict) else {}
    raw_sections = scores.get("sections") if isinstance(scores.get("sections"), dict) else {}
    raw_adjust = scores.get("adjustments") if isinstance(scores.get("adjustments"), dict) else {}

    sections: Dict[str, Dict[str, ScoreItem]] = {}
    total = 0.0
    for section, items in rubric["sections"].items():
        given = raw_sections.get(section) if isinstance(raw_sections.get(section), dict) else {}
        sections[section] = {}
        for name, cfg in items.items():
            item = _item(given.get(name, {}), float(cfg["max"]))
            sections[section][name] = item
            total += item.score

    adjustments: Dict[str, ScoreItem] = {}
    for name, cfg in rubric.get("adjustments", {}).items():
        item = _item(raw_adjust.get(name, {}), float(cfg.get("max", 0)))
        adjustments[name] = item
        total += int(cfg.get("sign", 1)) * item.score

    rng = rubric.get("range") or {}
    final = clamp(total, float(rng.get("min", 0)), float(rng.get("max", 100)))
    return QuantitativeScores(sections=sections, adjustments=adjustments, final_score=round(final, 2))


def zero_scores(rubric: Dict[str, Any], comment: str = "") -> QuantitativeScores:
    """Every rubric item at 0; used when the model output cannot be read at all."""
    empty = {
        "sections": {
            section: {name: {"score": 0, "comment": comment} for name in items}
            for section, items in rubric["sections"].items()
        },
        "adjustments": {name: {"score": 0, "comment": comment} for name in rubric.get("adjustments", {})},
    }
    return recompute_scores(empty, rubric)
