from __future__ import annotations

import pytest

from persona_chat.services.sentiment import classify_sentiment, sentiment_score


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("I love this", "positive"),
        ("This is wonderful", "positive"),
        ("I loved it", "positive"),
        ("I hate racism", "negative"),
        ("that was so disappointing", "negative"),
        ("I am furious", "negative"),
        ("not good", "negative"),
        ("I don't like it", "negative"),
        ("I don’t like it", "negative"),
        ("tell me about the table", "neutral"),
        ("", "neutral"),
    ],
)
def test_classify_sentiment(text, expected):
    assert classify_sentiment(text) == expected


def test_score_is_averaged_over_all_tokens():
    assert sentiment_score("good") == pytest.approx(3.0)
    assert sentiment_score("good day to you all") == pytest.approx(3 / 5)
    assert sentiment_score("that was so disappointing") == pytest.approx(-2 / 4)


def test_negation_only_flips_next_scored_word():
    assert sentiment_score("not really good") == pytest.approx(-3 / 3)
    assert sentiment_score("not good but happy") == pytest.approx((-3 + 3) / 4)


def test_contractions_count_as_one_word():
    assert sentiment_score("I don't like it") == pytest.approx(-2 / 4)
    assert sentiment_score("it's good") == pytest.approx(3 / 2)
