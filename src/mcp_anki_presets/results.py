"""Result shaping: field projection, sorting, pagination and card aggregation."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .anki_client import AnkiClient
from .models import FieldValue, NoteInfo, PaginatedResult

T = TypeVar("T")

NOTE_ID_KEY = "noteId"
TAGS_KEY = "tags"

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")


def clean_field_value(raw: str) -> str:
    """Strip HTML comments and tags, decode ``&nbsp;`` and trim."""
    text = _COMMENT_RE.sub("", raw)
    text = _TAG_RE.sub("", text)
    return text.replace("&nbsp;", " ").strip()


def _field_text(fields: Mapping[str, FieldValue], name: str) -> str:
    field = fields.get(name)
    return clean_field_value(field.value) if field is not None else ""


def project_fields(
    fields: Mapping[str, FieldValue],
    default_fields: Sequence[str],
    include: Mapping[str, bool | None] | None = None,
) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name in default_fields:
        result[name] = _field_text(fields, name)
    for key, on in (include or {}).items():
        if not on or key in (NOTE_ID_KEY, TAGS_KEY):
            continue
        if key in fields:
            result[key] = _field_text(fields, key)
    return result


def to_compact(
    note: NoteInfo,
    default_fields: Sequence[str],
    include: Mapping[str, bool | None] | None = None,
) -> dict[str, Any]:
    """Convert a note into a compact dict.

    Default fields are always present (empty string when the note lacks
    them); optional fields, the note id and tags appear only when the
    include selector asks for them.
    """
    result: dict[str, Any] = {}
    if include and include.get(NOTE_ID_KEY):
        result[NOTE_ID_KEY] = note.note_id
    result.update(project_fields(note.fields, default_fields, include))
    if include and include.get(TAGS_KEY):
        result[TAGS_KEY] = note.tags
    return result


# Sorting

ADDED_SORTS = ("added_asc", "added_desc")


def sort_ids(ids: Sequence[int], sort: str | None) -> list[int]:
    # Note ids are creation timestamps in milliseconds.
    if sort == "added_asc":
        return sorted(ids)
    if sort == "added_desc":
        return sorted(ids, reverse=True)
    return list(ids)


def sort_note_infos(
    infos: list[NoteInfo],
    sort: str | None,
    ordered_ids: Sequence[int] | None = None,
) -> None:
    """Sort fetched notes in place; notesInfo does not preserve request order."""
    if sort == "modified_asc":
        infos.sort(key=lambda n: n.mod)
    elif sort == "modified_desc":
        infos.sort(key=lambda n: n.mod, reverse=True)
    elif sort in ADDED_SORTS and ordered_ids is not None:
        order = {note_id: i for i, note_id in enumerate(ordered_ids)}
        infos.sort(key=lambda n: order.get(n.note_id, 0))


def sort_scheduled(results: list[dict[str, Any]], sort: str | None) -> None:
    if sort == "lapses_desc":
        results.sort(key=lambda r: r["lapses"], reverse=True)
    elif sort == "lapses_asc":
        results.sort(key=lambda r: r["lapses"])
    elif sort == "ease_asc":
        results.sort(key=lambda r: r["ease"])
    elif sort == "ease_desc":
        results.sort(key=lambda r: r["ease"], reverse=True)


# Pagination


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    has_more: bool


def paginate(items: Sequence[T], limit: int, page: int) -> Page[T]:
    effective_page = max(1, page)
    start = (effective_page - 1) * limit
    sliced = list(items[start : start + limit]) if limit > 0 else list(items)
    return Page(
        items=sliced,
        total=len(items),
        page=effective_page,
        has_more=start + len(sliced) < len(items),
    )


# Pipelines


async def search_notes(
    client: AnkiClient,
    query: str,
    default_fields: Sequence[str],
    limit: int,
    page: int,
    include: Mapping[str, bool | None] | None = None,
    sort: str | None = None,
) -> PaginatedResult:
    note_ids = await client.find_notes(query)

    # Paginate ids before fetching so only the requested page is loaded.
    paged = paginate(sort_ids(note_ids, sort), limit, page)
    if not paged.items:
        return PaginatedResult(
            total=paged.total, page=paged.page, has_more=paged.has_more, notes=[]
        )

    infos = await client.notes_info(paged.items)
    sort_note_infos(infos, sort, paged.items)

    return PaginatedResult(
        total=paged.total,
        page=paged.page,
        has_more=paged.has_more,
        notes=[to_compact(n, default_fields, include) for n in infos],
    )


async def search_cards_with_scheduling(
    client: AnkiClient,
    query: str,
    default_fields: Sequence[str],
    limit: int,
    page: int,
    include: Mapping[str, bool | None] | None = None,
    sort: str | None = None,
) -> PaginatedResult:
    """Card-level search returning one result per note with scheduling stats.

    All matching cards are fetched because deduplication by note can only
    happen afterwards. The first card seen for a note (in fetch order) wins.
    """
    card_ids = await client.find_cards(query)
    cards = await client.cards_info(card_ids) if card_ids else []

    seen: set[int] = set()
    results: list[dict[str, Any]] = []
    for card in cards:
        if card.note in seen:
            continue
        seen.add(card.note)

        result: dict[str, Any] = {
            "interval": card.interval,
            "ease": card.ease,
            "lapses": card.lapses,
            "reps": card.reps,
        }
        if include and include.get(NOTE_ID_KEY):
            result[NOTE_ID_KEY] = card.note
        result.update(project_fields(card.fields, default_fields, include))
        results.append(result)

    sort_scheduled(results, sort)

    paged = paginate(results, limit, page)
    return PaginatedResult(
        total=paged.total, page=paged.page, has_more=paged.has_more, notes=paged.items
    )
