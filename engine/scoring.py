"""
Scriptura - Text scoring

Tokenization, stop words and the relevance formula shared by every verse
store, so in-memory and SQL search rank identically.

    score = sum of term frequencies
            + PHRASE_BONUS * len(terms)   when the whole phrase occurs
"""
import re
from collections import Counter
from typing import FrozenSet, List, Sequence, Tuple

PHRASE_BONUS = 2.0

_TOKEN = re.compile(r"[^\W_]+(?:'[^\W_]+)?")

STOP_WORDS: FrozenSet[str] = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from",
    "he", "her", "his", "i", "in", "is", "it", "me", "my", "not", "of",
    "on", "or", "shall", "she", "so", "that", "the", "thee", "their",
    "them", "they", "thou", "thy", "to", "unto", "upon", "was", "we",
    "were", "which", "with", "ye", "you",
})


def tokenize(text: str) -> List[str]:
    """Lower-cased word tokens; punctuation and digits-only splits dropped."""
    return _TOKEN.findall(text.lower())


def query_terms(query: str, drop_stop_words: bool = True) -> Tuple[List[str], str]:
    """
    Search terms and the normalized phrase for a query.

    Stop words are dropped unless every token is one. Terms keep query
    order without duplicates. The phrase always keeps every token.
    """
    tokens = tokenize(query)
    phrase = " ".join(tokens)
    terms = tokens
    if drop_stop_words:
        filtered = [t for t in tokens if t not in STOP_WORDS]
        terms = filtered or tokens
    return list(dict.fromkeys(terms)), phrase


def score_text(text: str, terms: Sequence[str], phrase: str) -> float:
    """Relevance of one verse text; 0.0 means no match."""
    if not terms:
        return 0.0
    tokens = tokenize(text)
    counts = Counter(tokens)
    score = float(sum(counts[term] for term in terms))
    if score and phrase and f" {phrase} " in f" {' '.join(tokens)} ":
        score += PHRASE_BONUS * len(terms)
    return score


def make_snippet(text: str, terms: Sequence[str], length: int = 160) -> str:
    """Excerpt of ``length`` characters around the first hit, with '...' where cut."""
    if len(text) <= length:
        return text

    lowered = text.lower()
    hits = [pos for pos in (lowered.find(term) for term in terms) if pos >= 0]
    first = min(hits) if hits else 0

    start = max(0, min(first - length // 4, len(text) - length))
    end = start + length
    snippet = text[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet
