"""Resolve free-text artist guesses to graph nodes."""

import re
import unicodedata
from collections.abc import Sequence
from difflib import SequenceMatcher

from constellation.models import Node

_NON_ALPHANUMERIC = re.compile(r"[^0-9a-z]+")

# Match scores, best first
EXACT_SCORE = 1.0
PREFIX_SCORE = 0.9
WORD_PREFIX_SCORE = 0.8
SUBSTRING_SCORE = 0.7
FUZZY_WEIGHT = 0.6
MIN_FUZZY_RATIO = 0.5


def normalize_artist_name(text: str) -> str:
    """
    Fold an artist name for comparison.

    Strips diacritics, case-folds and drops every non-alphanumeric
    character, so "Beyoncé" and "beyonce!" compare equal.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALPHANUMERIC.sub("", without_marks.casefold())


def _word_keys(name: str) -> list[str]:
    decomposed = unicodedata.normalize("NFKD", name)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return [word for word in _NON_ALPHANUMERIC.split(without_marks.casefold()) if word]


def match_score(query_key: str, node: Node) -> float:
    """Score how well a normalized query matches a node name (0 = no match)."""
    name_key = normalize_artist_name(node.name)
    if not name_key:
        return 0.0
    if name_key == query_key:
        return EXACT_SCORE
    if name_key.startswith(query_key):
        return PREFIX_SCORE
    if any(word.startswith(query_key) for word in _word_keys(node.name)):
        return WORD_PREFIX_SCORE
    if query_key in name_key:
        return SUBSTRING_SCORE

    ratio = SequenceMatcher(None, query_key, name_key).ratio()
    if ratio >= MIN_FUZZY_RATIO:
        return ratio * FUZZY_WEIGHT
    return 0.0


def search_artists(
    query: str,
    nodes: Sequence[Node],
    limit: int = 8,
    min_query_length: int = 1,
) -> list[Node]:
    """
    Rank nodes against a partial name for autocomplete.

    Args:
        query: Raw user input
        nodes: Candidate nodes
        limit: Maximum number of results
        min_query_length: Queries shorter than this (after normalization)
                          return nothing

    Returns:
        At most `limit` nodes, best match first. Ties are broken by
        normalized name and then id, so results are deterministic.
    """
    query_key = normalize_artist_name(query or "")
    if len(query_key) < max(min_query_length, 1):
        return []

    scored = [
        (score, normalize_artist_name(node.name), node.id, node)
        for node in nodes
        if (score := match_score(query_key, node)) > 0
    ]
    scored.sort(key=lambda item: (-item[0], item[1], item[2]))
    return [node for _score, _key, _id, node in scored[: max(limit, 0)]]


def resolve_exact(name_or_id: str, nodes: Sequence[Node]) -> Node | None:
    """
    Resolve a guess by id, then by normalized name equality.

    Returns:
        The first matching node in node order, or None
    """
    if not name_or_id:
        return None

    for node in nodes:
        if node.id == name_or_id:
            return node

    guess_key = normalize_artist_name(name_or_id)
    if not guess_key:
        return None

    return next(
        (node for node in nodes if normalize_artist_name(node.name) == guess_key),
        None,
    )
