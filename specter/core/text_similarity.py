"""Bag-of-words cosine similarity for scoring search results against facts."""

import math
import re
from collections import Counter

# Frequent English words, down-weighted rather than dropped
COMMON_WORDS = frozenset(
    """
    the be to of and a in that have i it for not on with he as you do at this
    but his by from they we say her she or an will my one all would there their
    what so up out if about who get which go me when make can like time no just
    him know take people into year your good some could them see other than then
    now look only come its over think also back after use two how our work first
    well way even new want because any these give day most us
    """.split()
)

COMMON_WORD_WEIGHT = 0.3

_NON_WORD = re.compile(r"[^\w\s]")


def text_to_vector(text: str) -> dict[str, float]:
    """Length-normalised term frequencies with common words damped."""
    tokens = [t for t in _NON_WORD.sub("", text.lower()).split() if len(t) > 1]
    if not tokens:
        return {}

    total = len(tokens)
    vector: dict[str, float] = {}
    for token, count in Counter(tokens).items():
        weight = count / total
        if token in COMMON_WORDS:
            weight *= COMMON_WORD_WEIGHT
        vector[token] = weight
    return vector


def cosine_similarity(v1: dict[str, float], v2: dict[str, float]) -> float:
    if not v1 or not v2:
        return 0.0
    dot = sum(weight * v2[token] for token, weight in v1.items() if token in v2)
    mag1 = math.sqrt(sum(w * w for w in v1.values()))
    mag2 = math.sqrt(sum(w * w for w in v2.values()))
    if mag1 == 0 or mag2 == 0:
        return 0.0
    return dot / (mag1 * mag2)


def text_similarity(text1: str, text2: str) -> float:
    """Similarity of two strings in [0, 1]."""
    if not text1 or not text2:
        return 0.0
    return cosine_similarity(text_to_vector(text1), text_to_vector(text2))
