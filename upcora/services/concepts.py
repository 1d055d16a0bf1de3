import re
from collections import Counter
from typing import List

NON_WORD_RE = re.compile(r"[^\w\s]")

MAX_CONCEPTS = 10
MIN_TOKEN_LENGTH = 4

STOPWORDS = frozenset("""
this that with have will from they been were their said each which more very what know just first also after back
other many than then them these some would make like into could there about where when while your such only over
those being because through should does here most even much well made part find long down come call water
""".split())


def tokenize(text: str) -> List[str]:
    return NON_WORD_RE.sub(" ", (text or "").lower()).split()


def extract_concepts(text: str, limit: int = MAX_CONCEPTS) -> List[str]:
    """Top keywords by frequency, ties kept in first-seen order."""
    counts = Counter(
        tok for tok in tokenize(text)
        if len(tok) >= MIN_TOKEN_LENGTH and tok not in STOPWORDS
    )
    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return [word for word, _ in ranked[:limit]]


def generate_media_search_queries(text: str, max_queries: int = 3) -> List[str]:
    keywords = extract_concepts(text)
    queries: List[str] = []
    if len(keywords) >= 2:
        queries.append(f"{keywords[0]} {keywords[1]}")
    if len(keywords) >= 1:
        queries.append(f"{keywords[0]} education learning")
    if len(keywords) >= 3:
        queries.append(f"{keywords[2]} diagram illustration")
    return queries[:max_queries]
