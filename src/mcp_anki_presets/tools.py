"""Generate MCP tool definitions from the declarative configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp import types

from .anki_client import AnkiClient
from .config import SYNC_TOOL, UPDATE_TAGS_TOOL, AppConfig, CreationTemplate, Preset
from .query import build_query
from .results import (
    NOTE_ID_KEY,
    TAGS_KEY,
    clean_field_value,
    search_cards_with_scheduling,
    search_notes,
)
from .sync import SyncGate

logger = logging.getLogger(__name__)

ToolResult = list[types.TextContent]
ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


@dataclass(frozen=True, slots=True)
class GeneratedTool:
    name: str
    description: str
    params: dict[str, dict[str, Any]]
    handler: ToolHandler
    required: tuple[str, ...] = ()

    @property
    def input_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object", "properties": self.params}
        if self.required:
            schema["required"] = list(self.required)
        return schema

    def to_mcp(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


def text_result(data: Any) -> ToolResult:
    return [types.TextContent(type="text", text=json.dumps(data, indent=2, ensure_ascii=False))]


def _int_arg(args: dict[str, Any], key: str, default: int) -> int:
    value = args.get(key)
    return default if value is None else int(value)


def _string_enum(values: list[str]) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string"}
    if values:
        schema["enum"] = list(values)
    return schema


# Presets


def preset_params(preset: Preset) -> dict[str, dict[str, Any]]:
    """Build the JSON-Schema properties for a preset's search tool."""
    params: dict[str, dict[str, Any]] = {}

    for name, param in preset.parameters.items():
        params[name] = {
            "type": param.type,
            "description": f"{param.description} (default: {param.default})",
            "default": param.default,
        }

    if preset.search_fields:
        fields = ", ".join(preset.search_fields)
        params["search"] = {
            "type": "string",
            "description": preset.search_description
            or f"Text to look for; matches notes whose {fields} field contains it.",
        }

    if preset.optional_returned_fields or preset.optional_returned_tags:
        include_props: dict[str, dict[str, Any]] = {
            name: {"type": "boolean", "description": f"Include {name}"}
            for name in preset.optional_returned_fields
        }
        include_props[NOTE_ID_KEY] = {"type": "boolean", "description": "Include note IDs"}
        if preset.optional_returned_tags:
            include_props[TAGS_KEY] = {"type": "boolean", "description": "Include tags"}
        params["include"] = {
            "type": "object",
            "properties": include_props,
            "additionalProperties": False,
            "description": (
                f"Extra fields to include beyond {', '.join(preset.default_returned_fields)}. "
                "Only request fields you need to keep responses compact."
            ),
        }

    if preset.tag_filters:
        params["tags"] = {
            "type": "array",
            "items": _string_enum(preset.tag_filters),
            "description": "Only return notes having any of these tags",
        }

    if preset.sort_options:
        params["sort"] = {
            **_string_enum(preset.sort_options),
            "description": f"Sort order (default: {preset.default_sort})",
        }

    params["limit"] = {
        "type": "integer",
        "description": f"Results per page (default {preset.default_limit})",
        "default": preset.default_limit,
    }
    params["page"] = {
        "type": "integer",
        "description": "Page number (default 1). Use with limit for pagination.",
        "default": 1,
    }
    return params


def _preset_handler(preset: Preset, client: AnkiClient) -> ToolHandler:
    search = search_cards_with_scheduling if preset.include_scheduling_data else search_notes

    async def handler(args: dict[str, Any]) -> ToolResult:
        custom = {name: args.get(name) for name in preset.parameters}
        query = build_query(preset, custom, args.get("search"), args.get("tags"))
        result = await search(
            client,
            query,
            preset.default_returned_fields,
            _int_arg(args, "limit", preset.default_limit),
            _int_arg(args, "page", 1),
            args.get("include"),
            args.get("sort") or preset.default_sort,
        )
        return text_result(result.to_payload())

    return handler


def preset_tool(preset: Preset, client: AnkiClient) -> GeneratedTool:
    return GeneratedTool(
        name=preset.name,
        description=preset.description,
        params=preset_params(preset),
        handler=_preset_handler(preset, client),
    )


# Creation templates


def _duplicate_query(field: str, value: str) -> str:
    clause = f"{field}:{value}"
    if any(ch.isspace() for ch in value):
        return f'"{clause}"'
    return clause


def _create_handler(template: CreationTemplate, client: AnkiClient) -> ToolHandler:
    async def handler(args: dict[str, Any]) -> ToolResult:
        dup_field = template.reject_duplicates
        if dup_field and args.get(dup_field):
            value = str(args[dup_field])
            existing = await client.find_notes(_duplicate_query(dup_field, value))
            if existing:
                return text_result(
                    {
                        "success": False,
                        "reason": f'A note with {dup_field} "{value}" already exists',
                        "existingNoteIds": existing,
                    }
                )

        tags = [template.default_tag]
        fields = {f.name: str(args.get(f.name) or "") for f in template.fields}

        await client.create_deck(template.deck_name)
        note_id = await client.add_note(
            deck_name=template.deck_name,
            model_name=template.note_type,
            fields=fields,
            tags=tags,
        )
        logger.info("Created note %s in deck %s", note_id, template.deck_name)

        supplied = {f.name: args[f.name] for f in template.fields if args.get(f.name) is not None}
        return text_result({"success": True, "noteId": note_id, **supplied, "tags": tags})

    return handler


def _list_handler(template: CreationTemplate, client: AnkiClient) -> ToolHandler:
    primary = template.primary_field

    async def handler(args: dict[str, Any]) -> ToolResult:
        note_ids = await client.find_notes(f'"deck:{template.deck_name}"')
        if not note_ids:
            return text_result([])
        infos = await client.notes_info(note_ids)
        values = []
        for note in infos:
            field = note.fields.get(primary)
            values.append(clean_field_value(field.value) if field is not None else "")
        return text_result(values)

    return handler


def creation_tools(template: CreationTemplate, client: AnkiClient) -> list[GeneratedTool]:
    create_params = {
        f.name: {"type": "string", "description": f.description} for f in template.fields
    }
    return [
        GeneratedTool(
            name=template.create_tool_name,
            description=template.description,
            params=create_params,
            handler=_create_handler(template, client),
            required=tuple(f.name for f in template.fields if f.required),
        ),
        GeneratedTool(
            name=template.list_tool_name,
            description=(
                f"List every note in the {template.deck_name} deck. "
                f"Returns a flat list of {template.primary_field} values."
            ),
            params={},
            handler=_list_handler(template, client),
        ),
    ]


# Built-ins


def update_tags_tool(allowed_tags: list[str], client: AnkiClient) -> GeneratedTool:
    allowed = ", ".join(allowed_tags)

    async def handler(args: dict[str, Any]) -> ToolResult:
        note_ids = [int(n) for n in args.get("noteIds") or []]
        add = list(args.get("add") or [])
        remove = list(args.get("remove") or [])
        if add:
            await client.add_tags(note_ids, " ".join(add))
        if remove:
            await client.remove_tags(note_ids, " ".join(remove))
        if add or remove:
            logger.info("Updated tags on %d notes (+%s -%s)", len(note_ids), add, remove)
        return text_result({"success": True, "noteIds": note_ids, "added": add, "removed": remove})

    return GeneratedTool(
        name=UPDATE_TAGS_TOOL,
        description="Add or remove tags on notes.",
        params={
            "noteIds": {
                "type": "array",
                "items": {"type": "integer"},
                "description": "Note IDs to update",
            },
            "add": {
                "type": "array",
                "items": _string_enum(allowed_tags),
                "description": f"Tags to add (allowed: {allowed})",
            },
            "remove": {
                "type": "array",
                "items": _string_enum(allowed_tags),
                "description": f"Tags to remove (allowed: {allowed})",
            },
        },
        handler=handler,
        required=("noteIds",),
    )


def sync_tool(client: AnkiClient, sync_gate: SyncGate | None = None) -> GeneratedTool:
    async def handler(args: dict[str, Any]) -> ToolResult:
        if sync_gate is not None:
            await sync_gate.sync()
        else:
            await client.sync()
        return text_result({"success": True})

    return GeneratedTool(
        name=SYNC_TOOL,
        description="Trigger a sync between the local Anki collection and AnkiWeb.",
        params={},
        handler=handler,
    )


def generate_all_tools(
    config: AppConfig,
    client: AnkiClient,
    sync_gate: SyncGate | None = None,
) -> list[GeneratedTool]:
    """Materialize every tool: presets, then create/list pairs, then built-ins."""
    tools = [preset_tool(preset, client) for preset in config.presets]
    for template in config.practice_notes:
        tools.extend(creation_tools(template, client))
    tools.append(update_tags_tool(config.allowed_tags(), client))
    tools.append(sync_tool(client, sync_gate))
    return tools
