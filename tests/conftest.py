from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from mcp_anki_presets.anki_client import AnkiClient
from mcp_anki_presets.config import AppConfig, parse_config
from mcp_anki_presets.tools import GeneratedTool, generate_all_tools

TEST_CONFIG: dict[str, Any] = {
    "transport": "stdio",
    "ankiConnect": {"url": "http://127.0.0.1:8765", "version": 6},
    "sync": {"syncIntervalSeconds": 600},
    "presets": [
        {
            "name": "search_notes",
            "description": "Search vocabulary notes.",
            "baseQuery": '"deck:TestDeck"',
            "noteType": "TestModel",
            "searchFields": ["Front", "Back"],
            "searchDescription": "Search front and back fields.",
            "tagFilters": ["verb", "noun"],
            "defaultReturnedFields": ["Front"],
            "optionalReturnedFields": ["Back", "Extra"],
            "optionalReturnedTags": True,
            "defaultLimit": 25,
            "defaultSort": "added_desc",
            "sortOptions": ["added_asc", "added_desc", "modified_asc", "modified_desc"],
        },
        {
            "name": "recent",
            "description": "Recently added notes.",
            "baseQuery": '"deck:TestDeck" introduced:${days}',
            "noteType": "TestModel",
            "parameters": {
                "days": {"type": "number", "description": "Days back", "default": 7},
            },
            "searchFields": [],
            "defaultReturnedFields": ["Front"],
            "optionalReturnedFields": ["Back"],
            "optionalReturnedTags": False,
            "defaultLimit": 10,
            "defaultSort": "added_desc",
            "sortOptions": ["added_asc", "added_desc"],
        },
        {
            "name": "struggling",
            "description": "Struggling notes with scheduling.",
            "baseQuery": '"deck:TestDeck" prop:lapses>3',
            "noteType": "TestModel",
            "searchFields": [],
            "defaultReturnedFields": ["Front"],
            "optionalReturnedFields": ["Back"],
            "optionalReturnedTags": False,
            "includeSchedulingData": True,
            "defaultLimit": 20,
            "defaultSort": "lapses_desc",
            "sortOptions": ["lapses_desc", "lapses_asc", "ease_asc", "ease_desc"],
        },
    ],
    "practiceNotes": [
        {
            "name": "practice",
            "deckName": "Practice",
            "noteType": "TestModel",
            "description": "Create a practice note.",
            "fields": [
                {"name": "Front", "description": "Front side", "required": True},
                {"name": "Back", "description": "Back side", "required": True},
                {"name": "Extra", "description": "Extra info", "required": False},
            ],
            "allowedTags": ["verb", "noun"],
            "defaultTag": "generated",
        },
        {
            "name": "vocab",
            "deckName": "Vocab",
            "noteType": "TestModel",
            "description": "Save a new word.",
            "fields": [
                {"name": "Front", "description": "Word", "required": True},
                {"name": "Back", "description": "Definition", "required": True},
            ],
            "allowedTags": ["verb", "noun"],
            "rejectDuplicates": "Front",
            "defaultTag": "new",
        },
    ],
}


def note(note_id: int, mod: int = 0, tags: list[str] | None = None, **fields: str) -> dict[str, Any]:
    return {
        "noteId": note_id,
        "modelName": "TestModel",
        "tags": tags or [],
        "fields": {name: {"value": value, "order": i} for i, (name, value) in enumerate(fields.items())},
        "mod": mod,
        "cards": [note_id],
    }


def card(card_id: int, note_id: int, *, lapses: int = 0, ease: int = 2500, **fields: str) -> dict[str, Any]:
    return {
        "cardId": card_id,
        "note": note_id,
        "deckName": "TestDeck",
        "modelName": "TestModel",
        "interval": 10,
        "ease": ease,
        "lapses": lapses,
        "reps": 12,
        "due": 100,
        "fields": {name: {"value": value, "order": i} for i, (name, value) in enumerate(fields.items())},
    }


class FakeAnki:
    """Records AnkiConnect requests and answers them from canned results."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.results: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.raw: dict[str, str] = {}

    def respond(self, action: str, result: Any) -> None:
        self.results[action] = result

    def fail(self, action: str, error: str) -> None:
        self.errors[action] = error

    def reply_text(self, action: str, text: str) -> None:
        self.raw[action] = text

    def calls_for(self, action: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["action"] == action]

    @property
    def actions(self) -> list[str]:
        return [c["action"] for c in self.calls]

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        action = body["action"]
        if action in self.raw:
            return httpx.Response(200, text=self.raw[action])
        if action in self.errors:
            return httpx.Response(200, json={"result": None, "error": self.errors[action]})
        return httpx.Response(200, json={"result": self.results.get(action), "error": None})


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def app_config() -> AppConfig:
    return parse_config(json.dumps(TEST_CONFIG))


@pytest.fixture
def fake_anki() -> FakeAnki:
    return FakeAnki()


@pytest.fixture
def anki_client(fake_anki: FakeAnki) -> AnkiClient:
    return AnkiClient(
        url="http://127.0.0.1:8765",
        version=6,
        transport=httpx.MockTransport(fake_anki.handle),
    )


@pytest.fixture
def tools(app_config: AppConfig, anki_client: AnkiClient) -> dict[str, GeneratedTool]:
    return {tool.name: tool for tool in generate_all_tools(app_config, anki_client)}


def parse_result(result: list[Any]) -> Any:
    assert len(result) == 1
    return json.loads(result[0].text)
