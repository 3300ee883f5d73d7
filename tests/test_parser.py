import json
import re

from redline.models import Comment
from redline.parser import fallback_result, is_valid, parse, repair_json_text


def _legal_comment(**overrides):
    c = {
        "comment_id": "c1",
        "context_before": "The Company shall ",
        "original_text": "indemnify the Investor",
        "context_after": " for all losses",
        "severity": "Must Change",
        "comment_title": "Uncapped indemnity",
        "comment_details": "There is no cap on the indemnity.",
        "recommendation": "Ask for a cap equal to the investment amount.",
        "market_standard": {"is_standard": "No", "reasoning": "Caps are common."},
    }
    c.update(overrides)
    return c


def _legal_result(comments=None):
    return {
        "document_id": "doc_1",
        "analysis_summary": "One risky indemnity clause.",
        "comments": [_legal_comment()] if comments is None else comments,
    }


def _assert_fallback(result):
    assert result.is_fallback
    assert re.fullmatch(r"fallback_\d+", result.id)
    assert len(result.comments) == 1
    assert result.comments[0].title


def test_fenced_json_with_trailing_comma():
    result = parse('```json\n{"id": "x", "comments": [],}\n```')
    assert not result.is_fallback
    assert result.id == "x"
    assert result.comments == []


def test_prose_returns_fallback():
    _assert_fallback(parse("I cannot process this request."))


def test_parse_never_raises_on_junk():
    junk = [
        "",
        "   ",
        "{",
        "[]",
        "null",
        "42",
        '{"document_id": "d", "comments": [{"comment_id": "c1", "original',
        "```json\n```",
        "{}{}",
        "[" * 5000 + "]" * 5000,
        '{"document_id": 5, "comments": []}',
        '{"document_id": "d", "comments": "none"}',
    ]
    for raw in junk:
        _assert_fallback(parse(raw))
    _assert_fallback(parse(None))


def test_smart_quotes_are_repaired():
    raw = "{“document_id”: “d1”, “analysis_summary”: “ok”, “comments”: []}"
    result = parse(raw)
    assert not result.is_fallback
    assert result.id == "d1"
    assert result.summary == "ok"


def test_json_inside_prose():
    raw = 'Here is the review:\n{"document_id": "d", "analysis_summary": "s", "comments": []}\nThanks!'
    result = parse(raw)
    assert not result.is_fallback
    assert result.id == "d"


def test_nested_trailing_commas():
    obj = _legal_result()
    raw = json.dumps(obj, indent=2).replace('"Caps are common."', '"Caps are common.",').replace("]\n}", "],\n}")
    assert not parse(raw).is_fallback


def test_repair_is_noop_on_clean_json():
    clean = json.dumps(_legal_result())
    assert json.loads(repair_json_text(clean)) == _legal_result()


def test_round_trip_of_well_formed_result():
    obj = _legal_result()
    result = parse(json.dumps(obj))
    assert not result.is_fallback
    assert result.id == obj["document_id"]
    assert result.summary == obj["analysis_summary"]
    assert result.comments == [Comment.from_llm(obj["comments"][0])]
    c = result.comments[0]
    assert c.target_text == "indemnify the Investor"
    assert c.context_before == "The Company shall "
    assert c.category == "Must Change"
    assert c.standardness.is_standard == "No"


def test_bot_card_shape():
    raw = json.dumps({
        "card_id": "card_7",
        "analysis_summary": {
            "overall_assessment": "Strong hook, weak prompt.",
            "key_strengths_summary": "Hook",
        },
        "locatable_comments": [{
            "comment_id": "b1",
            "source_section": "Welcome Message",
            "context_before": "",
            "original_text": "You wake up in a cell.",
            "context_after": "",
            "comment_type": "Content Strength",
            "comment_title": "Great opener",
            "comment_details": "Immediate stakes.",
            "recommendation": "Keep it.",
        }],
    })
    result = parse(raw, kind="bot_card")
    assert result.id == "card_7"
    assert result.summary == "Strong hook, weak prompt."
    assert result.summary_details["key_strengths_summary"] == "Hook"
    assert result.comments[0].source_section == "Welcome Message"
    assert result.comments[0].display_severity == "low"


def test_legal_result_rejects_object_summary():
    obj = _legal_result()
    obj["analysis_summary"] = {"overall_assessment": "x"}
    assert not is_valid(obj)
    assert parse(json.dumps(obj)).is_fallback


def test_is_valid_field_types():
    assert is_valid(_legal_result())
    assert is_valid({"id": "x", "comments": []})
    assert not is_valid("not a dict")
    assert not is_valid({"comments": []})
    assert not is_valid({"document_id": "d"})
    assert not is_valid(_legal_result([_legal_comment(comment_id=3)]))
    assert not is_valid(_legal_result([_legal_comment(original_text=None)]))
    assert not is_valid(_legal_result([{k: v for k, v in _legal_comment().items() if k != "severity"}]))
    assert not is_valid(_legal_result([_legal_comment(context_before=["a"])]))
    assert not is_valid(_legal_result([_legal_comment(market_standard="Yes")]))
    assert not is_valid(_legal_result(["just a string"]))


def test_is_valid_numeric_offsets():
    assert is_valid(_legal_result([_legal_comment(start_char_index=10, end_char_index=32.0)]))
    assert not is_valid(_legal_result([_legal_comment(start_char_index="10")]))
    assert not is_valid(_legal_result([_legal_comment(end_char_index=True)]))


def test_fallback_result_per_kind():
    assert fallback_result("legal").comments[0].category == "Must Change"
    assert fallback_result("bot_card").comments[0].category == "LLM Issue"
    assert parse("nope", kind="bot_card").comments[0].category == "LLM Issue"
