"""
Full-Text Search Primitives - PostgreSQL-compatible lexeme vectors and ranking

Reproduces the behaviour of PostgreSQL's english text search configuration
so the stored search vector and the relevance floor in the query engine
keep the same meaning on any datastore:

    to_tsvector('english', text)      → to_search_vector(text)
    plainto_tsquery('english', text)  → parse_plain_query(text)
    vector @@ query                   → matches(vector, query)
    ts_rank(vector, query)            → ts_rank(vector, query)

Search Vector Format:
    {"engin": [5], "softwar": [4], ...}
    Lexeme → sorted 1-based word positions. Every lexeme carries the
    default weight D (0.1) since the builder never calls setweight().

Stemming uses the Snowball english stemmer (the same algorithm as the
PostgreSQL english_stem dictionary); stop words follow english.stop.
"""

import math
import re
from typing import Dict, List

from nltk.stem.snowball import SnowballStemmer

SearchVector = Dict[str, List[int]]

# ts_rank default weights for {D, C, B, A}
DEFAULT_WEIGHT = 0.1

# PostgreSQL tsvector limits
MAX_ENTRY_POS = 16383
MAX_NUM_POS = 256

# Sum of 1/i^2 for i=1..inf (pi^2/6), used by calc_rank_or
_RANK_OR_LIMIT = 1.64493406685

# PostgreSQL's share/tsearch_data/english.stop
ENGLISH_STOP_WORDS = frozenset("""
i me my myself we our ours ourselves you your yours yourself yourselves
he him his himself she her hers herself it its itself they them their
theirs themselves what which who whom this that these those am is are
was were be been being have has had having do does did doing a an the
and but if or because as until while of at by for with about against
between into through during before after above below to from up down in
out on off over under again further then once here there when where why
how all any both each few more most other some such no nor not only own
same so than too very s t can will just don should now
""".split())

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)

_stemmer = SnowballStemmer("english")


def _tokenize(text: str) -> List[str]:
    """Split text into lowercase word tokens."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.lower())


def _lexeme(token: str) -> str:
    return _stemmer.stem(token)


def to_search_vector(text: str) -> SearchVector:
    """
    Build a lexeme vector from plain text.

    Stop words are dropped but still consume a position, so distances
    between the remaining lexemes match what PostgreSQL would store.

    Args:
        text: Plain text (typically User.searchable_text)

    Returns:
        Dict of lexeme → sorted positions (empty for empty text)
    """
    vector: SearchVector = {}

    for position, token in enumerate(_tokenize(text), start=1):
        if token in ENGLISH_STOP_WORDS:
            continue
        positions = vector.setdefault(_lexeme(token), [])
        if len(positions) < MAX_NUM_POS:
            positions.append(min(position, MAX_ENTRY_POS))

    return vector


def parse_plain_query(query: str) -> List[str]:
    """
    Parse a natural-language query the way plainto_tsquery does.

    Punctuation and operators carry no meaning; all remaining lexemes are
    ANDed together. A query made only of stop words yields an empty list,
    which matches nothing.

    Returns:
        Unique lexemes in first-seen order
    """
    lexemes: List[str] = []
    for token in _tokenize(query):
        if token in ENGLISH_STOP_WORDS:
            continue
        lexeme = _lexeme(token)
        if lexeme not in lexemes:
            lexemes.append(lexeme)
    return lexemes


def matches(vector: SearchVector, query: List[str]) -> bool:
    """True when every query lexeme occurs in the vector."""
    if not vector or not query:
        return False
    return all(lexeme in vector for lexeme in query)


def _word_distance(distance: int) -> float:
    if distance > 100:
        return 1e-30
    return 1.0 / (1.005 + 0.05 * math.exp(distance / 1.5 - 2))


def _rank_or(vector: SearchVector, query: List[str]) -> float:
    res = 0.0
    for lexeme in query:
        positions = vector.get(lexeme)
        if not positions:
            continue

        # All positions share one weight, so the max-weight correction term
        # of the PostgreSQL formula cancels out at j = 0.
        resj = sum(DEFAULT_WEIGHT / ((j + 1) * (j + 1)) for j in range(len(positions)))
        res += resj / _RANK_OR_LIMIT

    return res / len(query)


def _rank_and(vector: SearchVector, query: List[str]) -> float:
    if len(query) < 2:
        return _rank_or(vector, query)

    res = -1.0
    found: List[List[int]] = []
    for lexeme in query:
        current = vector.get(lexeme)
        if not current:
            continue
        for previous in found:
            for pos_a in current:
                for pos_b in previous:
                    distance = abs(pos_a - pos_b)
                    if not distance:
                        continue
                    weight = math.sqrt(
                        DEFAULT_WEIGHT * DEFAULT_WEIGHT * _word_distance(distance)
                    )
                    res = weight if res < 0 else 1.0 - (1.0 - res) * (1.0 - weight)
        found.append(current)

    return res


def ts_rank(vector: SearchVector, query: List[str]) -> float:
    """
    Relevance of a vector for a plain (AND) query.

    Port of PostgreSQL ts_rank with default weights and normalization 0:
    multi-lexeme queries are scored on pairwise proximity, single-lexeme
    queries on occurrence frequency.

    Returns:
        Rank score (0.0 when either side is empty)
    """
    if not vector or not query:
        return 0.0

    res = _rank_and(vector, query)
    if res < 0:
        res = 1e-20
    return res
