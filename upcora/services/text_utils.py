import re

# -------------------- WHITESPACE --------------------

WHITESPACE_RE = re.compile(r"\s+")
BLANK_LINES_RE = re.compile(r"\n\s*\n")

# -------------------- HTML --------------------

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
STYLE_BLOCK_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
NBSP_RE = re.compile(r"&nbsp;", re.IGNORECASE)
NAMED_ENTITY_RE = re.compile(r"&[a-z]+;", re.IGNORECASE)

CHARS_PER_TOKEN = 4
ELLIPSIS = "..."


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim.

    The whitespace pass already removes newlines, so the blank-line pass only
    matters for callers that skip the first step.
    """
    text = WHITESPACE_RE.sub(" ", text or "")
    text = BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def word_count(text: str) -> int:
    return len(text.split())


def strip_html(html: str) -> str:
    """Pattern-based tag stripping, not a parser.

    Named entities other than &nbsp; are dropped outright, so e.g. "&amp;"
    disappears instead of becoming "&".
    """
    text = SCRIPT_BLOCK_RE.sub("", html or "")
    text = STYLE_BLOCK_RE.sub("", text)
    text = TAG_RE.sub("", text)
    text = NBSP_RE.sub(" ", text)
    text = NAMED_ENTITY_RE.sub("", text)
    return collapse_whitespace(text)


def truncate_for_budget(text: str, max_tokens: int = 8000) -> str:
    """Trim text to roughly ``max_tokens`` tokens (1 token ~ 4 characters).

    Prefers to end on the last sentence boundary found past 80% of the budget,
    otherwise hard-cuts and appends an ellipsis. Approximate by nature.
    """
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_sentence = truncated.rfind(".")
    if last_sentence > max_chars * 0.8:
        return truncated[: last_sentence + 1]

    return truncated + ELLIPSIS
