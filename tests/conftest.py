import json
import os

import pytest

from redline.analyzer import Analyzer
from redline.cache import LRUCache
from redline.retry import LLMCallError
from redline.rubric_loader import load_rubric

RUBRIC_FILE = os.path.join(os.path.dirname(__file__), "..", "rubric", "bot_card_rubric.yml")

DOCUMENT = "The quick brown fox jumps."

GOOD_RESPONSE = json.dumps({
    "document_id": "doc_1",
    "analysis_summary": "A fox story.",
    "comments": [{
        "comment_id": "c1",
        "context_before": "The quick ",
        "original_text": "brown fox",
        "context_after": " jumps.",
        "severity": "Recommend to Change",
        "comment_title": "Colour choice",
        "comment_details": "Brown is dull.",
        "recommendation": "Try red.",
        "market_standard": {"is_standard": "Yes", "reasoning": "Foxes are often brown."},
    }],
})


class FakeLLM:
    """Returns queued responses in order; an Exception entry is raised instead."""

    name = "fake"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def complete(self, prompt, temperature=0.1, top_p=0.8):
        self.prompts.append(prompt)
        out = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(out, Exception):
            raise out
        return out

    @property
    def calls(self):
        return len(self.prompts)


@pytest.fixture
def rubric():
    return load_rubric(RUBRIC_FILE)


@pytest.fixture
def make_analyzer(rubric):
    def _make(*responses):
        llm = FakeLLM(*responses)
        return Analyzer(llm=llm, cache=LRUCache(8), rubric=rubric, sleep=lambda s: None), llm
    return _make


@pytest.fixture
def down_error():
    return LLMCallError("connection refused")
