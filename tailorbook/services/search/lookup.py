"""
In-memory fuzzy lookup over an order snapshot.

Everything here is a pure function of (orders, query): no storage access,
and each call filters the full list it is given.
"""
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from tailorbook.schemas.order import OrderRead

EXACT_ID_SCORE = 100
NAME_SUBSTRING_SCORE = 100
NAME_COMPACT_SUBSTRING_SCORE = 95
NAME_SIMILARITY_WEIGHT = 90
NAME_CHARACTER_OVERLAP_SCORE = 70
PHONE_SCORE = 90
ID_PARTIAL_SCORE = 85

SHORT_QUERY_LENGTH = 5
SHORT_QUERY_THRESHOLD = 0.80
LONG_QUERY_THRESHOLD = 0.75
CHARACTER_OVERLAP_THRESHOLD = 0.8
HIGHLIGHT_COVERAGE = 0.7

HIGHLIGHT_OPEN = '<span class="search-highlight">'
HIGHLIGHT_CLOSE = '</span>'

_WHITESPACE = re.compile(r"\s+")


@dataclass
class LookupMatch:
    order: OrderRead
    score: float
    exact_id: bool = False


def _compact(value: str) -> str:
    return _WHITESPACE.sub("", value)


def levenshtein_distance(first: str, second: str) -> int:
    """Single-character insert/delete/substitute edit distance."""
    previous = list(range(len(second) + 1))
    for i, a in enumerate(first, start=1):
        current = [i]
        for j, b in enumerate(second, start=1):
            cost = 0 if a == b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def fuzzy_match(text: str, query: str) -> Tuple[bool, float]:
    """
    Match a query against free text, strongest evidence first.

    Returns ``(matched, score)``:
      * literal substring: 100
      * substring once all whitespace is removed: 95
      * edit-distance similarity over the whitespace-free forms, at least
        0.80 for queries of up to 5 characters and 0.75 beyond: similarity * 90
      * at least 80% of the query characters occur somewhere in the text: 70
    """
    text = (text or "").lower()
    query = (query or "").lower()
    compact_text = _compact(text)
    compact_query = _compact(query)
    if not compact_query:
        return False, 0

    if query in text:
        return True, NAME_SUBSTRING_SCORE
    if compact_query in compact_text:
        return True, NAME_COMPACT_SUBSTRING_SCORE

    distance = levenshtein_distance(compact_query, compact_text)
    longest = max(len(compact_query), len(compact_text))
    similarity = 1 - distance / longest
    threshold = LONG_QUERY_THRESHOLD if len(query) > SHORT_QUERY_LENGTH else SHORT_QUERY_THRESHOLD
    if similarity >= threshold:
        return True, similarity * NAME_SIMILARITY_WEIGHT

    found = sum(1 for char in compact_query if char in compact_text)
    if found / len(compact_query) >= CHARACTER_OVERLAP_THRESHOLD:
        return True, NAME_CHARACTER_OVERLAP_SCORE

    return False, 0


def _as_number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def is_exact_id(order: OrderRead, query: str) -> bool:
    wanted = _as_number(query)
    return wanted is not None and wanted == _as_number(order.unique_id)


def score_order(order: OrderRead, query: str) -> Optional[float]:
    """Score of the first field that matches, or None when nothing does."""
    matched, score = fuzzy_match(order.name, query)
    if matched:
        return score
    if query in (order.phone or ""):
        return PHONE_SCORE
    if query in str(order.unique_id):
        return ID_PARTIAL_SCORE
    return None


def lookup(orders: Sequence[OrderRead], query: str) -> List[LookupMatch]:
    """
    Filter and rank a snapshot of orders for a search box query.

    Exact id matches come first in snapshot order, followed by the remaining
    matches by descending score; ties keep snapshot order. A blank query
    returns every order unscored.
    """
    query = (query or "").strip().lower()
    if not query:
        return [LookupMatch(order=order, score=0) for order in orders]

    exact: List[LookupMatch] = []
    scored: List[LookupMatch] = []
    for order in orders:
        if is_exact_id(order, query):
            exact.append(LookupMatch(order=order, score=EXACT_ID_SCORE, exact_id=True))
            continue
        score = score_order(order, query)
        if score is not None:
            scored.append(LookupMatch(order=order, score=score))

    scored.sort(key=lambda match: match.score, reverse=True)
    return exact + scored


def highlight_spans(text: str, query: str) -> List[Tuple[int, int]]:
    """
    Character ranges of ``text`` to highlight for ``query``.

    Tries a literal match, then a whitespace-insensitive match mapped back to
    the original positions, then an in-order per-character walk that only
    counts when it finds at least 70% of the query characters.
    """
    if not text or not query:
        return []
    lowered = text.lower()
    query = query.lower()

    start = lowered.find(query)
    if start != -1:
        return [(start, start + len(query))]

    compact_query = _compact(query)
    if not compact_query:
        return []

    positions = [i for i, char in enumerate(lowered) if not char.isspace()]
    compact_text = "".join(lowered[i] for i in positions)
    start = compact_text.find(compact_query)
    if start != -1:
        end = start + len(compact_query) - 1
        return [(positions[start], positions[end] + 1)]

    spans = []
    cursor = 0
    for i, char in enumerate(lowered):
        if cursor < len(compact_query) and char == compact_query[cursor]:
            spans.append((i, i + 1))
            cursor += 1
    if cursor >= len(compact_query) * HIGHLIGHT_COVERAGE:
        return spans
    return []


def highlight_text(
    text: str,
    query: str,
    before: str = HIGHLIGHT_OPEN,
    after: str = HIGHLIGHT_CLOSE,
) -> str:
    """Wrap the highlighted ranges of ``text`` in the given markers."""
    spans = highlight_spans(text, query)
    if not spans:
        return text or ""
    parts = []
    last = 0
    for start, end in spans:
        parts.append(text[last:start])
        parts.append(f"{before}{text[start:end]}{after}")
        last = end
    parts.append(text[last:])
    return "".join(parts)
