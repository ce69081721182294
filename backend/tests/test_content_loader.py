from __future__ import annotations

import json

import pytest

from persona_chat.content.loader import ContentError, load_content, parse_content
from persona_chat.core.config import DEFAULT_CONTENT_PATH


def test_parse_content_builds_units_and_topics(content):
    assert [unit.id for unit in content.units] == [
        "greeting",
        "biography",
        "prison",
        "mecca",
        "default",
    ]
    assert content.start_unit == "greeting"
    assert content.default_unit.responses == ("I do not follow.", "Say that another way.")
    assert content.get_unit("mecca").priority == 2.0
    assert [topic.id for topic in content.topics_for_unit("prison")] == ["personal"]
    assert content.context_keys == {"introduced", "personal", "last_sentiment"}


def test_default_unit_is_moved_last(content_data):
    content_data["units"].insert(0, {"id": "default", "responses": ["Pardon?"]})

    content = parse_content(content_data)

    assert content.units[-1].id == "default"
    assert content.units[0].id == "greeting"
    assert content.default_unit.responses == ("Pardon?",)


def test_default_unit_without_replies_uses_default_responses(content_data):
    content_data["units"].append({"id": "default", "keywords": ["huh"]})

    content = parse_content(content_data)

    assert content.default_unit.keywords == ("huh",)
    assert content.default_unit.responses == ("I do not follow.", "Say that another way.")


def test_missing_default_replies_rejected(content_data):
    content_data["default_responses"] = []

    with pytest.raises(ContentError):
        parse_content(content_data)


def test_unit_without_replies_rejected(content_data):
    content_data["units"][1]["responses"] = ["   "]

    with pytest.raises(ContentError, match="biography"):
        parse_content(content_data)


def test_duplicate_unit_id_rejected(content_data):
    content_data["units"].append({"id": "prison", "responses": ["Again."]})

    with pytest.raises(ContentError, match="Duplicate unit id"):
        parse_content(content_data)


def test_duplicate_topic_id_rejected(content_data):
    content_data["topics"].append(dict(content_data["topics"][0]))

    with pytest.raises(ContentError, match="Duplicate topic id"):
        parse_content(content_data)


def test_unknown_next_unit_rejected(content_data):
    content_data["units"][2]["next_units"] = ["nowhere"]

    with pytest.raises(ContentError, match="nowhere"):
        parse_content(content_data)


def test_topic_with_unknown_unit_rejected(content_data):
    content_data["topics"][1]["units"] = ["mecca", "medina"]

    with pytest.raises(ContentError, match="medina"):
        parse_content(content_data)


def test_unknown_start_unit_rejected(content_data):
    content_data["start_unit"] = "epilogue"

    with pytest.raises(ContentError, match="epilogue"):
        parse_content(content_data)


def test_negative_priority_rejected(content_data):
    content_data["units"][0]["priority"] = -1

    with pytest.raises(ContentError):
        parse_content(content_data)


def test_empty_unit_list_rejected(content_data):
    content_data["units"] = []

    with pytest.raises(ContentError):
        parse_content(content_data)


def test_load_content_reads_file(tmp_path, content_data):
    path = tmp_path / "content.json"
    path.write_text(json.dumps(content_data), encoding="utf-8")

    content = load_content(path)

    assert content.persona.name == "Test Persona"


def test_load_content_missing_file(tmp_path):
    with pytest.raises(ContentError, match="not found"):
        load_content(tmp_path / "absent.json")


def test_load_content_bad_json(tmp_path):
    path = tmp_path / "content.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ContentError, match="JSON"):
        load_content(path)


def test_bundled_content_is_valid():
    content = load_content(DEFAULT_CONTENT_PATH)

    assert content.start_unit == "greeting"
    assert content.default_unit.is_default
    assert len(content.default_unit.responses) == 3
    assert {topic.id for topic in content.topics} == {
        "personal_history",
        "faith",
        "struggle",
        "empowerment",
    }
