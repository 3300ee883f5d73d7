import hashlib
import re
from typing import Optional

_WS_RE = re.compile(r"\s+")
_FENCE_OPEN_RE = re.compile(r"^```(?:json|JSON)?[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```$")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")

SMART_DOUBLE_QUOTES = "“”„‟″"
SMART_SINGLE_QUOTES = "‘’‚‛′"

_QUOTE_TABLE = str.maketrans(
    {**{c: '"' for c in SMART_DOUBLE_QUOTES}, **{c: "'" for c in SMART_SINGLE_QUOTES}}
)


# -----------------------------
# Whitespace
# -----------------------------

def collapse_whitespace(s: str) -> str:
    """Replace every run of whitespace (newlines included) with a single space."""
    return _WS_RE.sub(" ", s or "")


def normalize_for_key(s: str) -> str:
    return collapse_whitespace(s).strip()


def truncate_center(text: str, max_len: int) -> str:
    """Keep head+tail so the intro and the closing clauses both reach the model."""
    if not text or len(text) <= max_len:
        return text or ""
    head = max_len * 2 // 3
    tail = max_len - head
    return text[:head] + "\n...\n" + text[-tail:]


# -----------------------------
# JSON repair helpers
# -----------------------------

def strip_code_fence(s: str) -> str:
    s = _FENCE_OPEN_RE.sub("", s, count=1)
    return _FENCE_CLOSE_RE.sub("", s, count=1)


def replace_smart_quotes(s: str) -> str:
    return s.translate(_QUOTE_TABLE)


def remove_trailing_commas(s: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", s)


def extract_json_block(s: str) -> Optional[str]:
    """Outermost {...} span, or None when the text has no braces at all."""
    m = _JSON_BLOCK_RE.search(s or "")
    return m.group(0) if m else None


# -----------------------------
# Hashing
# -----------------------------

def stable_hash(s: str) -> int:
    # builtin hash() is salted per process; offsets must be reproducible
    digest = hashlib.sha256((s or "").encode("utf-8")).hexdigest()
    return int(digest[:12], 16)
