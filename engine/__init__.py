"""
Scriptura - Reference Engine

raw text -> parse -> candidates -> resolve -> citation -> assemble -> view / JSON-LD

Parsing, resolving and ranking are pure and synchronous. Only the storage
calls made by search and assembly are awaited.

Usage:
    from engine import resolve, SearchEngine, Assembler

    citation = resolve("jn 3:16", canon).unwrap()
"""

from engine.types import (
    ParseCandidate,
    ReferenceMatch,
    TextMatch,
    SearchResult,
    ChapterView,
    PassageView,
)
from engine.parser import parse, normalize_input
from engine.resolver import (
    resolve,
    resolve_book,
    resolve_candidates,
    validate_reference,
    format_reference,
    format_citation,
)
from engine.scoring import PHRASE_BONUS, STOP_WORDS, tokenize, query_terms, score_text
from engine.search import SearchEngine
from engine.assembler import Assembler, JSON_LD_CONTEXT

__all__ = [
    "ParseCandidate",
    "ReferenceMatch",
    "TextMatch",
    "SearchResult",
    "ChapterView",
    "PassageView",
    "parse",
    "normalize_input",
    "resolve",
    "resolve_book",
    "resolve_candidates",
    "validate_reference",
    "format_reference",
    "format_citation",
    "PHRASE_BONUS",
    "STOP_WORDS",
    "tokenize",
    "query_terms",
    "score_text",
    "SearchEngine",
    "Assembler",
    "JSON_LD_CONTEXT",
]
