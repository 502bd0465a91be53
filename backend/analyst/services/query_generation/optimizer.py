"""Query optimizer: rank, de-duplicate and truncate candidate queries."""

import re
from typing import Dict, List, Optional, Sequence

from analyst.schemas.query import GeneratedQuery, SourceType

_WHITESPACE = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """Case- and whitespace-insensitive form used for duplicate detection."""
    return _WHITESPACE.sub(" ", text).strip().lower()


def rank_key(query: GeneratedQuery):
    return (-query.priority, -query.expected_result_count)


class QueryOptimizer:
    """
    Orders candidates by (priority desc, expected_result_count desc).

    The sort is stable, so equally ranked candidates keep their generation
    order. Of several candidates with the same normalised text only the
    first, highest-ranked one survives.
    """

    def optimize(
        self,
        queries: List[GeneratedQuery],
        max_queries: Optional[int] = None,
    ) -> List[GeneratedQuery]:
        ranked = sorted(queries, key=rank_key)

        seen = set()
        unique: List[GeneratedQuery] = []
        for query in ranked:
            key = normalize_query(query.text)
            if not key or key in seen:
                continue
            seen.add(key)
            unique.append(query)

        if max_queries is not None:
            return unique[:max_queries]
        return unique

    def optimize_for_sources(
        self,
        queries: List[GeneratedQuery],
        sources: Sequence[SourceType],
        max_queries: Optional[int] = None,
    ) -> List[GeneratedQuery]:
        """
        Like optimize(), but every requested source keeps at least one query.

        Each source's best surviving query is reserved before truncation.
        A source whose candidates were all dropped as duplicates of another
        source's queries gets its best-ranked candidate back, so the same
        text can appear once per source. Reservations follow ``sources``
        order when max_queries is smaller than the number of sources.
        """
        ranked = sorted(queries, key=rank_key)
        position: Dict[int, int] = {id(q): i for i, q in enumerate(ranked)}
        unique = self.optimize(ranked)

        reserved: List[GeneratedQuery] = []
        for source in dict.fromkeys(sources):
            best = next((q for q in unique if q.source_tag == source), None)
            if best is None:
                best = next(
                    (q for q in ranked if q.source_tag == source and normalize_query(q.text)),
                    None,
                )
            if best is not None:
                reserved.append(best)

        limit = len(unique) + len(reserved) if max_queries is None else max_queries
        reserved = reserved[:limit]
        reserved_ids = {id(q) for q in reserved}
        rest = [q for q in unique if id(q) not in reserved_ids]

        selected = reserved + rest[:max(limit - len(reserved), 0)]
        return sorted(selected, key=lambda q: position[id(q)])
