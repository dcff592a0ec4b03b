"""
Scriptura - Search Engine

A query that resolves as a reference returns only that reference. Anything
else goes to the storage text index. The two kinds of result are never
mixed.
"""
import logging
from typing import TYPE_CHECKING, Collection, List, Optional

from canon.model import Canon
from canon.reference import Citation
from config import DEFAULT_TRANSLATIONS, SearchConfig
from core.types import Result
from engine.resolver import resolve
from engine.scoring import make_snippet, query_terms
from engine.types import ReferenceMatch, SearchResult, TextMatch
from observability.tracing import create_span

if TYPE_CHECKING:
    from db.store import VerseStore

logger = logging.getLogger("scriptura.engine.search")


class SearchEngine:
    """
    Reference-first search over a verse store.

    ``translations`` are the tags a reference may end with; a query whose
    trailing word is not one of them is searched as text.

    Usage:
        engine = SearchEngine(canon, store)
        results = await engine.search("jn 3:16")
    """

    def __init__(
        self,
        canon: Canon,
        store: "VerseStore",
        config: Optional[SearchConfig] = None,
        translations: Optional[Collection[str]] = None,
    ):
        self.canon = canon
        self.store = store
        self.config = config or SearchConfig()
        self.translations = frozenset(
            tag.upper() for tag in (DEFAULT_TRANSLATIONS if translations is None else translations)
        )

    def lookup(self, text: str) -> Result[Citation]:
        """The reference path alone, for routes that want a citation."""
        return resolve(text, self.canon, translations=self.translations)

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        translation: Optional[str] = None,
    ) -> List[SearchResult]:
        """
        Search by reference or by text.

        Results are ordered by relevance, then canonical order, and capped
        at ``limit`` (or the configured default, never above the maximum).
        """
        if not query or not query.strip():
            return []

        cap = self.config.effective_limit(limit)

        with create_span("search.query", attributes={"search.query_length": len(query), "search.limit": cap}) as span:
            resolved = self.lookup(query)
            if resolved.is_success:
                citation = resolved.value
                span.set_attribute("search.kind", "reference")
                if translation:
                    citation = tuple(
                        ref if ref.translation else ref.with_translation(translation) for ref in citation
                    )
                ordered = sorted(dict.fromkeys(citation), key=self.canon.sort_key)
                return [ReferenceMatch(ref) for ref in ordered[:cap]]

            logger.debug(f"No reference in {query!r} ({resolved.error}); searching text")
            span.set_attribute("search.kind", "text")
            results = await self._search_text(query, cap, translation)
            span.set_attribute("search.results", len(results))
            return results

    async def _search_text(
        self,
        query: str,
        cap: int,
        translation: Optional[str],
    ) -> List[SearchResult]:
        terms, phrase = query_terms(query, self.config.drop_stop_words)
        if not terms:
            return []

        hits = await self.store.search_index(terms, phrase, translation, cap)
        matches = [
            TextMatch(
                reference=ref,
                snippet=make_snippet(text, terms, self.config.snippet_length),
                relevance=score,
            )
            for ref, text, score in hits
            if score > 0
        ]
        matches.sort(key=lambda m: (-m.relevance, self.canon.sort_key(m.reference)))
        return matches[:cap]
