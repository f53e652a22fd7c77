"""Anki search query construction for presets."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .config import Preset


def _render(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _any_of(clauses: list[str]) -> str:
    if len(clauses) == 1:
        return clauses[0]
    return "(" + " OR ".join(clauses) + ")"


def build_query(
    preset: Preset,
    custom_params: Mapping[str, Any],
    search_term: str | None = None,
    tags: Sequence[str] | None = None,
) -> str:
    """Build the search query for a preset.

    ``${name}`` placeholders in the base query are replaced (every occurrence)
    with the caller's value or the declared default. A search term expands to
    ``Field:*term*`` clauses over the preset's search fields, and tag filters
    to ``tag:x`` clauses; multiple clauses are OR-ed inside parentheses. Anki
    treats space-separated clauses as a conjunction.
    """
    query = preset.base_query

    for name, param in preset.parameters.items():
        value = custom_params.get(name)
        if value is None:
            value = param.default
        query = query.replace(f"${{{name}}}", _render(value))

    term = (search_term or "").strip()
    if term and preset.search_fields:
        query = f"{query} {_any_of([f'{field}:*{term}*' for field in preset.search_fields])}"

    if tags:
        query = f"{query} {_any_of([f'tag:{tag}' for tag in tags])}"

    return query.strip()
