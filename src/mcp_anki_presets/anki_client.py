"""Async client for the AnkiConnect JSON-RPC endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import AnkiConnectError
from .models import CardInfo, NoteInfo

logger = logging.getLogger(__name__)


class AnkiClient:
    """Thin wrapper around AnkiConnect's single-endpoint action protocol."""

    def __init__(
        self,
        *,
        url: str,
        version: int = 6,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._version = version
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def invoke(self, action: str, params: dict[str, Any] | None = None) -> Any:
        body = {"action": action, "version": self._version, "params": dict(params or {})}
        logger.debug("AnkiConnect %s", action)

        resp = await self._client.post(self._url, json=body)
        if resp.status_code >= 400:
            raise AnkiConnectError(
                action=action,
                message=(resp.text or resp.reason_phrase or "").strip(),
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise AnkiConnectError(
                action=action,
                message=f"Invalid JSON response: {exc}",
                status_code=resp.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise AnkiConnectError(
                action=action,
                message=f"Unexpected JSON type: {type(data).__name__}",
                status_code=resp.status_code,
            )
        if data.get("error"):
            raise AnkiConnectError(action=action, message=str(data["error"]))
        return data.get("result")

    # Note-level queries

    async def find_notes(self, query: str) -> list[int]:
        return list(await self.invoke("findNotes", {"query": query}) or [])

    async def notes_info(self, note_ids: list[int]) -> list[NoteInfo]:
        raw = await self.invoke("notesInfo", {"notes": note_ids}) or []
        # AnkiConnect answers {} for ids that no longer exist.
        return [NoteInfo.model_validate(n) for n in raw if n]

    # Card-level queries

    async def find_cards(self, query: str) -> list[int]:
        return list(await self.invoke("findCards", {"query": query}) or [])

    async def cards_info(self, card_ids: list[int]) -> list[CardInfo]:
        raw = await self.invoke("cardsInfo", {"cards": card_ids}) or []
        return [CardInfo.model_validate(c) for c in raw if c]

    # Mutations

    async def add_note(
        self,
        *,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str],
    ) -> int:
        return await self.invoke(
            "addNote",
            {
                "note": {
                    "deckName": deck_name,
                    "modelName": model_name,
                    "fields": fields,
                    "tags": tags,
                    "options": {"allowDuplicate": False, "duplicateScope": "deck"},
                }
            },
        )

    async def add_tags(self, note_ids: list[int], tags: str) -> None:
        await self.invoke("addTags", {"notes": note_ids, "tags": tags})

    async def remove_tags(self, note_ids: list[int], tags: str) -> None:
        await self.invoke("removeTags", {"notes": note_ids, "tags": tags})

    async def create_deck(self, deck_name: str) -> int:
        """Create a deck; AnkiConnect returns the existing id when it already exists."""
        return await self.invoke("createDeck", {"deck": deck_name})

    async def sync(self) -> None:
        await self.invoke("sync")
