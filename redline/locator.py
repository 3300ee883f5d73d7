"""
Comment re-anchoring.

Maps the (context_before, target_text, context_after) triple an LLM claims to
have copied from a document onto a concrete character range of that document.
The model is not a reliable indexer, so the search walks a ladder of
strategies from most to least precise and always ends with a deterministic
placement. Every strategy reports `end = start + len(target_text)` using the
raw target length; for the whitespace-tolerant tiers `end` can be off by the
number of whitespace characters that differ inside the target.
"""
import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .models import Comment, LocatedComment, MatchTier, Span
from .text_utils import stable_hash

logger = logging.getLogger(__name__)

MIN_FIRST_WORD_LEN = 4

_WS_RE = re.compile(r"\s+")


def _field(comment: Any, *names: str) -> str:
    for name in names:
        if isinstance(comment, Mapping):
            value = comment.get(name)
        else:
            value = getattr(comment, name, None)
        if value is not None:
            return value if isinstance(value, str) else str(value)
    return ""


def _triple(comment: Any) -> Tuple[str, str, str, str]:
    """(id, before, target, after) from a Comment or a raw LLM comment dict."""
    return (
        _field(comment, "id", "comment_id"),
        _field(comment, "context_before"),
        _field(comment, "target_text", "original_text"),
        _field(comment, "context_after"),
    )


class _Document:
    """Raw document text with exact and whitespace-tolerant search."""

    def __init__(self, text: str):
        self.raw = text

    def find_exact(self, pattern: str) -> int:
        if not pattern:
            return -1
        return self.raw.find(pattern)

    def find_loose(self, pattern: str, pos: int = 0) -> Optional[Tuple[int, int]]:
        """
        Raw (start, end) of `pattern` where any whitespace run in either text
        matches any other whitespace run. Same hits as searching the collapsed
        document for the collapsed pattern, but in raw offsets.
        """
        words = _WS_RE.split(pattern.strip())
        if not words or not words[0]:
            return None
        m = re.search(r"\s+".join(map(re.escape, words)), self.raw[pos:])
        if m is None:
            return None
        return pos + m.start(), pos + m.end()

    def skip_space(self, pos: int) -> int:
        while pos < len(self.raw) and self.raw[pos].isspace():
            pos += 1
        return pos


def _anchor_after(doc: _Document, before: str, match_start: int) -> int:
    """Raw offset just past `before` at `match_start`, then past any whitespace."""
    found = doc.find_loose(before, match_start)
    pos = found[1] if found is not None and found[0] == match_start else match_start
    return doc.skip_space(pos)


# -----------------------------
# Strategy ladder
# -----------------------------

def _full_context(doc: _Document, before: str, target: str, after: str) -> Optional[Span]:
    if not before and not after:
        return None
    pattern = before + target + after
    idx = doc.find_exact(pattern)
    if idx != -1:
        start = idx + len(before)
        return Span(start=start, end=start + len(target), tier=MatchTier.EXACT_CONTEXT)

    found = doc.find_loose(pattern)
    if found is None:
        return None
    start = _anchor_after(doc, before, found[0])
    return Span(start=start, end=start + len(target), tier=MatchTier.NORMALIZED_CONTEXT)


def _before_context(doc: _Document, before: str, target: str) -> Optional[Span]:
    if not before:
        return None
    idx = doc.find_exact(before + target)
    if idx != -1:
        start = idx + len(before)
        return Span(start=start, end=start + len(target), tier=MatchTier.BEFORE_CONTEXT)
    found = doc.find_loose(before + target)
    if found is None:
        return None
    start = _anchor_after(doc, before, found[0])
    return Span(start=start, end=start + len(target), tier=MatchTier.BEFORE_CONTEXT)


def _search(doc: _Document, pattern: str) -> int:
    idx = doc.find_exact(pattern)
    if idx != -1:
        return idx
    found = doc.find_loose(pattern)
    return -1 if found is None else found[0]


def _after_context(doc: _Document, target: str, after: str) -> Optional[Span]:
    if not after:
        return None
    idx = _search(doc, target + after)
    if idx == -1:
        return None
    return Span(start=idx, end=idx + len(target), tier=MatchTier.AFTER_CONTEXT)


def _target_only(doc: _Document, target: str) -> Optional[Span]:
    idx = _search(doc, target)
    if idx == -1:
        return None
    return Span(start=idx, end=idx + len(target), tier=MatchTier.TARGET_ONLY)


def _fuzzy_half(doc: _Document, target: str) -> Optional[Span]:
    words = target.split()
    if len(words) < 2:
        return None
    half = len(words) // 2
    first = " ".join(words[:half])
    second = " ".join(words[half:])

    for piece, offset in ((first, 0), (second, len(first) + 1)):
        idx = _search(doc, piece)
        if idx != -1:
            start = max(0, idx - offset)
            return Span(start=start, end=start + len(target), tier=MatchTier.FUZZY_HALF)
    return None


def _first_word(doc: _Document, target: str) -> Optional[Span]:
    words = target.split()
    if not words or len(words[0]) < MIN_FIRST_WORD_LEN:
        return None
    idx = doc.find_exact(words[0])
    if idx == -1:
        return None
    return Span(start=idx, end=idx + len(target), tier=MatchTier.FIRST_WORD)


def _fallback(comment_id: str, target: str, length: int) -> Span:
    # spread unmatched comments over the first quarter instead of stacking them at 0
    start = stable_hash(comment_id) % max(1, length // 4)
    return Span(start=start, end=start + len(target), tier=MatchTier.FALLBACK)


def _clamp(span: Span, length: int) -> Span:
    start = min(max(span.start, 0), length)
    end = min(max(span.end, start), length)
    return Span(start=start, end=end, tier=span.tier)


def find_span(comment: Any, document_text: str) -> Span:
    """
    Resolve a comment to an in-bounds Span of `document_text`.

    Never raises: any comment, even one whose text is absent from the document,
    gets a placement. The result depends only on the two inputs.
    """
    text = document_text if isinstance(document_text, str) else ""
    comment_id, before, target, after = _triple(comment)
    doc = _Document(text)

    span = (
        _full_context(doc, before, target, after)
        or _before_context(doc, before, target)
        or _after_context(doc, target, after)
        or _target_only(doc, target)
        or _fuzzy_half(doc, target)
        or _first_word(doc, target)
    )
    if span is None:
        logger.warning("Could not find text position for comment %s; using fallback offset", comment_id)
        span = _fallback(comment_id, target, len(text))
    else:
        logger.debug("Comment %s placed by %s at %d-%d", comment_id, span.tier.value, span.start, span.end)
    return _clamp(span, len(text))


def locate(comment: Any, document_text: str) -> Tuple[int, int]:
    span = find_span(comment, document_text)
    return span.start, span.end


def locate_comments(comments: Iterable[Comment], document_text: str) -> List[LocatedComment]:
    located: List[LocatedComment] = []
    for c in comments:
        span = find_span(c, document_text)
        located.append(LocatedComment(**c.model_dump(), start=span.start, end=span.end, tier=span.tier))
    return located
