import os
from typing import Any, Dict

import yaml

RUBRIC_PATH = os.environ.get("RUBRIC_PATH", "rubric/bot_card_rubric.yml")


def _validate_rubric(rubric: Dict[str, Any]) -> None:
    """Raise ValueError unless every item has max > 0 and the item maxima fill the range."""
    rng = rubric.get("range") or {}
    lo, hi = float(rng.get("min", 0)), float(rng.get("max", 100))
    if hi <= lo:
        raise ValueError(f"rubric range is empty: [{lo}, {hi}]")

    sections = rubric.get("sections")
    if not isinstance(sections, dict) or not sections:
        raise ValueError("rubric has no sections")

    total_max = 0.0
    for section, items in sections.items():
        if not isinstance(items, dict) or not items:
            raise ValueError(f"rubric section {section!r} has no items")
        for name, cfg in items.items():
            if float(cfg.get("max", 0)) <= 0:
                raise ValueError(f"rubric item {section}.{name} needs max > 0")
            total_max += float(cfg["max"])

    if abs(total_max - (hi - lo)) > 1e-6:
        raise ValueError(f"rubric item maxima sum to {total_max}, expected {hi - lo}")

    for name, cfg in (rubric.get("adjustments") or {}).items():
        if float(cfg.get("max", 0)) < 0 or int(cfg.get("sign", 1)) not in (1, -1):
            raise ValueError(f"rubric adjustment {name!r} needs max >= 0 and sign +/-1")


def load_rubric(path: str = RUBRIC_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        rubric: Dict[str, Any] = yaml.safe_load(f)

    _validate_rubric(rubric)
    rubric.setdefault("adjustments", {})
    return rubric
