from __future__ import annotations

import re

_WORD_SPLIT = re.compile(r"[^\w]+")


def tokenize(text: str) -> list[str]:
    """Lowercase and split text into word tokens."""

    return [token for token in _WORD_SPLIT.split(text.lower()) if token]


def edit_distance(first: str, second: str) -> int:
    """Levenshtein distance between two strings."""

    if first == second:
        return 0
    if not first:
        return len(second)
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i]
        for j, right in enumerate(second, start=1):
            if left == right:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(first: str, second: str) -> float:
    """Edit-distance similarity in [0, 1], relative to the longer string."""

    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)
