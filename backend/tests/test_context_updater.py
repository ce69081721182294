from __future__ import annotations

from persona_chat.content.types import SENTIMENT_FLAG
from persona_chat.services.context_updater import ContextUpdater


def test_local_turn_moves_through_unit_graph(content, make_session):
    session = make_session(current_unit="greeting")
    unit = content.get_unit("biography")

    ContextUpdater(content).apply(
        session, "Who are you? I love stories", "I was born long ago.", unit
    )

    assert session.current_unit == "biography"
    assert session.visited_units == ["biography"]
    assert session.context["personal"] is True
    assert session.context[SENTIMENT_FLAG] == "positive"
    assert session.topics_discussed == {"personal"}
    assert session.history[-1].unit_id == "biography"
    assert session.history[-1].used_remote is False


def test_repeated_unit_is_appended_again(content, make_session):
    session = make_session(visited=["prison"])
    updater = ContextUpdater(content)

    updater.apply(session, "jail", "Prison changed me.", content.get_unit("prison"))

    assert session.visited_units == ["prison", "prison"]


def test_remote_turn_only_records_history_and_sentiment(content, make_session):
    session = make_session(current_unit="greeting")

    ContextUpdater(content).apply(session, "I hate waiting", "Patience, brother.", None)

    assert session.current_unit == "greeting"
    assert session.visited_units == []
    assert session.topics_discussed == set()
    assert session.context[SENTIMENT_FLAG] == "negative"
    assert [entry.role for entry in session.history] == ["user", "assistant"]
    assert session.history[-1].used_remote is True
    assert session.history[-1].unit_id is None
