"""Structured models for AnkiConnect payloads and tool responses."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _AnkiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FieldValue(_AnkiModel):
    value: str = ""
    order: int = 0


class NoteInfo(_AnkiModel):
    note_id: int = Field(alias="noteId")
    model_name: str = Field(default="", alias="modelName")
    tags: list[str] = Field(default_factory=list)
    fields: dict[str, FieldValue] = Field(default_factory=dict)
    mod: int = 0
    cards: list[int] = Field(default_factory=list)


class CardInfo(_AnkiModel):
    card_id: int = Field(alias="cardId")
    note: int
    deck_name: str = Field(default="", alias="deckName")
    model_name: str = Field(default="", alias="modelName")
    interval: int = 0
    # AnkiConnect reports the ease factor as "factor"; older payloads use "ease".
    ease: int = Field(default=0, validation_alias=AliasChoices("ease", "factor"))
    lapses: int = 0
    reps: int = 0
    due: int = 0
    fields: dict[str, FieldValue] = Field(default_factory=dict)


class PaginatedResult(BaseModel):
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    has_more: bool = Field(serialization_alias="hasMore")
    notes: list[dict[str, Any]]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
