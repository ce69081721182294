from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from persona_chat.content.types import (
    DEFAULT_UNIT_ID,
    SENTIMENT_FLAG,
    ConversationContent,
    ConversationUnit,
    Persona,
    Sentiment,
    Topic,
)

logger = logging.getLogger(__name__)

DEFAULT_START_UNIT = "greeting"


class ContentError(RuntimeError):
    """Raised when conversation content is missing or malformed."""


class _ContentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class UnitDocument(_ContentModel):
    id: str = Field(min_length=1)
    responses: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    context: List[str] = Field(default_factory=list)
    next_units: List[str] = Field(default_factory=list)
    priority: float = Field(default=1.0, ge=0)
    sentiment: Optional[Sentiment] = None

    @field_validator("responses", "triggers", "keywords", "context", "next_units")
    @classmethod
    def _drop_blank(cls, values: List[str]) -> List[str]:
        return [value.strip() for value in values if value and value.strip()]


class TopicDocument(_ContentModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    units: List[str] = Field(default_factory=list)


class PersonaDocument(_ContentModel):
    name: str = Field(min_length=1)
    system_prompt: str = Field(min_length=1)
    anachronisms: List[str] = Field(default_factory=list)


class ContentDocument(_ContentModel):
    persona: PersonaDocument
    start_unit: Optional[str] = None
    units: List[UnitDocument] = Field(min_length=1)
    topics: List[TopicDocument] = Field(default_factory=list)
    default_responses: List[str] = Field(default_factory=list)


def load_content(path: str | Path) -> ConversationContent:
    """Read and validate a conversation content document from disk."""

    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ContentError(f"Conversation content not found: {source}") from exc
    except (OSError, ValueError) as exc:
        raise ContentError(f"Conversation content is not readable JSON: {source}") from exc
    content = parse_content(raw)
    logger.info(
        "Loaded conversation content from %s: %d units, %d topics",
        source,
        len(content.units),
        len(content.topics),
    )
    return content


def parse_content(raw: Any) -> ConversationContent:
    """Validate a decoded content document and build the immutable content."""

    try:
        document = ContentDocument.model_validate(raw)
    except ValidationError as exc:
        raise ContentError(f"Invalid conversation content: {exc}") from exc

    units = _build_units(document)
    unit_ids = {unit.id for unit in units}

    for unit in units:
        missing = [target for target in unit.next_units if target not in unit_ids]
        if missing:
            raise ContentError(
                f"Unit '{unit.id}' lists unknown next units: {', '.join(missing)}"
            )

    topics = []
    seen_topics: set[str] = set()
    for topic in document.topics:
        if topic.id in seen_topics:
            raise ContentError(f"Duplicate topic id: {topic.id}")
        seen_topics.add(topic.id)
        missing = [unit_id for unit_id in topic.units if unit_id not in unit_ids]
        if missing:
            raise ContentError(
                f"Topic '{topic.id}' covers unknown units: {', '.join(missing)}"
            )
        topics.append(
            Topic(
                id=topic.id,
                name=topic.name,
                description=topic.description,
                keywords=tuple(topic.keywords),
                units=frozenset(topic.units),
            )
        )

    start_unit = document.start_unit
    if start_unit is None and DEFAULT_START_UNIT in unit_ids:
        start_unit = DEFAULT_START_UNIT
    if start_unit is not None and start_unit not in unit_ids:
        raise ContentError(f"Start unit '{start_unit}' is not defined")

    context_keys = {name for unit in units for name in unit.context}
    context_keys.add(SENTIMENT_FLAG)

    return ConversationContent(
        units=tuple(units),
        topics=tuple(topics),
        persona=Persona(
            name=document.persona.name,
            system_prompt=document.persona.system_prompt,
            anachronisms=tuple(document.persona.anachronisms),
        ),
        start_unit=start_unit,
        context_keys=frozenset(context_keys),
    )


def _build_units(document: ContentDocument) -> list[ConversationUnit]:
    default_responses = [text.strip() for text in document.default_responses if text.strip()]
    units: list[ConversationUnit] = []
    default_unit: ConversationUnit | None = None
    seen: set[str] = set()

    for item in document.units:
        if item.id in seen:
            raise ContentError(f"Duplicate unit id: {item.id}")
        seen.add(item.id)
        responses = item.responses
        if not responses and item.id == DEFAULT_UNIT_ID:
            responses = default_responses
        if not responses:
            raise ContentError(f"Unit '{item.id}' has no responses")
        unit = ConversationUnit(
            id=item.id,
            responses=tuple(responses),
            triggers=tuple(item.triggers),
            keywords=tuple(item.keywords),
            context=tuple(item.context),
            next_units=tuple(item.next_units),
            priority=item.priority,
            sentiment=item.sentiment,
        )
        if unit.is_default:
            default_unit = unit
        else:
            units.append(unit)

    if default_unit is None:
        if not default_responses:
            raise ContentError(
                "Content needs a 'default' unit or a non-empty default_responses list"
            )
        default_unit = ConversationUnit(id=DEFAULT_UNIT_ID, responses=tuple(default_responses))

    # The scorer treats the last unit as the terminal default candidate.
    units.append(default_unit)
    return units
