from __future__ import annotations

import re

from afinn import Afinn

from persona_chat.content.types import Sentiment

POSITIVE_THRESHOLD = 0.2
NEGATIVE_THRESHOLD = -0.2

NEGATIONS = frozenset(
    {"not", "no", "never", "neither", "nor", "none", "nobody", "nothing", "nowhere", "cannot"}
)

_WORD_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")
_AFINN = Afinn(language="en")


def _is_negation(token: str) -> bool:
    return token in NEGATIONS or token.endswith("n't")


def sentiment_score(text: str) -> float:
    """Average AFINN polarity per word of ``text``.

    A negation word or an ``n't`` contraction flips the sign of the next
    scored word.
    """

    tokens = _WORD_RE.findall(text.lower().replace("’", "'"))
    if not tokens:
        return 0.0
    total = 0.0
    negate = False
    for token in tokens:
        if _is_negation(token):
            negate = True
            continue
        value = _AFINN.score(token)
        if value:
            total += -value if negate else value
            negate = False
    return total / len(tokens)


def classify_sentiment(text: str) -> Sentiment:
    score = sentiment_score(text)
    if score > POSITIVE_THRESHOLD:
        return "positive"
    if score < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"
