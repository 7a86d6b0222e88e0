"""
Student name search.

Build time: build_search_index() splits every student name into tokens and
groups them by first character:

    {"g": {"greg": [3], "gregory": [7]}, "m": {...}}

Query time: resolve() tokenizes the query the same way and picks the best
matching student. Both sides must use tokenize(), otherwise queries stop
matching the index.
"""

from __future__ import annotations

import re
import unicodedata
from collections import defaultdict
from typing import Iterable, Optional

from colles.model import Dataset, SearchIndex

# Browsers split on ASCII \W, keep the same token boundaries
_NON_WORD = re.compile(r"\W+", re.ASCII)
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")

MIN_TOKEN_LENGTH = 2


def strip_accents(text: str) -> str:
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text))


def tokenize(text: str) -> list[str]:
    """
    Lower-case, strip accents, split on non-word characters and drop
    fragments shorter than 2 characters (e.g. the "d" of "D'Artagnan").
    """
    words = _NON_WORD.split(strip_accents(text.lower()))
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH]


def build_search_index(names: Iterable[str]) -> SearchIndex:
    """
    Build the token index for a list of student names. Values are indices
    into `names`.

    Keys and index lists are sorted so that the serialized JSON compresses
    better; lookups never depend on that order.
    """
    index: dict[str, dict[str, list[int]]] = defaultdict(lambda: defaultdict(list))
    for i, name in enumerate(names):
        for word in tokenize(name):
            index[word[0]][word].append(i)

    return {
        c: {word: sorted(index[c][word]) for word in sorted(index[c])}
        for c in sorted(index)
    }


def _matches(needle: str, index: SearchIndex) -> list[int]:
    """
    Student indices of every index token starting with `needle`, shortest
    tokens first so that "greg" prefers "greg" over "gregory".
    """
    shard = index.get(needle[0], {})
    tokens = [t for t in shard if t.startswith(needle)]
    tokens.sort(key=len)

    # ordered union, first occurrence wins
    seen: dict[int, None] = {}
    for t in tokens:
        for i in shard[t]:
            seen.setdefault(i, None)
    return list(seen)


def resolve_in_index(query: str, index: SearchIndex) -> Optional[int]:
    tokens = tokenize(query)
    if not tokens:
        return None

    # longest token first, the others only narrow the candidates down
    tokens.sort(key=len, reverse=True)

    candidates = _matches(tokens[0], index)
    for token in tokens[1:]:
        if not candidates:
            break
        allowed = set(_matches(token, index))
        candidates = [i for i in candidates if i in allowed]

    return candidates[0] if candidates else None


def resolve(query: str, dataset: Dataset) -> Optional[int]:
    """
    Return the index of the student best matching `query`, or None.
    """
    return resolve_in_index(query, dataset.search_index)
