from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer


class LexicalIndex:
    """TF-IDF index with one document per conversation unit.

    The relevance of a query to a document is the sum, over the query terms,
    of ``tf(term, document) * idf(term)`` with the smoothed
    ``idf = ln((1 + N) / (1 + df)) + 1``. English stopwords never contribute.
    """

    def __init__(self, documents: Sequence[str]) -> None:
        self._size = len(documents)
        self._vectorizer = TfidfVectorizer(
            stop_words="english",
            token_pattern=r"(?u)\b\w+\b",
            norm=None,
            smooth_idf=True,
            sublinear_tf=False,
        )
        self._analyze = self._vectorizer.build_analyzer()
        try:
            self._matrix = self._vectorizer.fit_transform(documents).tocsc()
        except ValueError:
            # Every document was empty or made only of stopwords.
            self._matrix = None

    def similarity(self, query: str) -> dict[int, float]:
        """Return the relevance of ``query`` for every document position."""

        if self._matrix is None:
            return {position: 0.0 for position in range(self._size)}
        vocabulary = self._vectorizer.vocabulary_
        counts = Counter(term for term in self._analyze(query) if term in vocabulary)
        if not counts:
            return {position: 0.0 for position in range(self._size)}
        columns = [vocabulary[term] for term in counts]
        weights = np.array([counts[term] for term in counts], dtype=float)
        measures = self._matrix[:, columns] @ weights
        return {position: float(value) for position, value in enumerate(measures)}
