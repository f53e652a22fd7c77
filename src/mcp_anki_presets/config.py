"""Declarative tool configuration (presets and creation templates)."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError

UPDATE_TAGS_TOOL = "update_tags"
SYNC_TOOL = "sync"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class PresetParameter(_ConfigModel):
    type: Literal["number", "string"]
    description: str
    default: int | float | str


class Preset(_ConfigModel):
    """A named search tool: base query, returned fields and paging defaults."""

    name: str = Field(min_length=1)
    description: str
    base_query: str
    note_type: str
    parameters: dict[str, PresetParameter] = Field(default_factory=dict)
    search_fields: list[str] = Field(default_factory=list)
    search_description: str | None = None
    default_returned_fields: list[str]
    optional_returned_fields: list[str] = Field(default_factory=list)
    optional_returned_tags: bool = False
    tag_filters: list[str] | None = None
    include_scheduling_data: bool = False
    default_limit: int = Field(default=50, ge=0)
    default_sort: str | None = None
    sort_options: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_default_sort(self) -> Preset:
        if self.sort_options and self.default_sort not in self.sort_options:
            raise ValueError(
                f"Preset {self.name!r}: defaultSort {self.default_sort!r} "
                f"is not one of {self.sort_options}"
            )
        return self


class PracticeField(_ConfigModel):
    name: str = Field(min_length=1)
    description: str
    required: bool = False


class CreationTemplate(_ConfigModel):
    """A note-authoring capability that yields create_<name> and list_<name> tools."""

    name: str = Field(min_length=1)
    deck_name: str
    note_type: str
    description: str
    fields: list[PracticeField] = Field(min_length=1)
    allowed_tags: list[str] = Field(default_factory=list)
    reject_duplicates: str | None = None
    default_tag: str

    @property
    def create_tool_name(self) -> str:
        return f"create_{self.name}"

    @property
    def list_tool_name(self) -> str:
        return f"list_{self.name}"

    @property
    def primary_field(self) -> str:
        for field in self.fields:
            if field.required:
                return field.name
        return self.fields[0].name

    @model_validator(mode="after")
    def _check_reject_duplicates(self) -> CreationTemplate:
        names = [f.name for f in self.fields]
        if self.reject_duplicates is not None and self.reject_duplicates not in names:
            raise ValueError(
                f"Template {self.name!r}: rejectDuplicates field {self.reject_duplicates!r} "
                f"is not one of {names}"
            )
        return self


class AnkiConnectConfig(_ConfigModel):
    url: str = "http://127.0.0.1:8765"
    version: int = 6


class SyncConfig(_ConfigModel):
    sync_interval_seconds: float = Field(default=600, ge=0)


class AppConfig(_ConfigModel):
    transport: Literal["stdio", "http"] = "stdio"
    anki_connect: AnkiConnectConfig = Field(default_factory=AnkiConnectConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    presets: list[Preset] = Field(default_factory=list)
    practice_notes: list[CreationTemplate] = Field(default_factory=list)

    def tool_names(self) -> list[str]:
        names = [p.name for p in self.presets]
        for template in self.practice_notes:
            names.extend([template.create_tool_name, template.list_tool_name])
        names.extend([UPDATE_TAGS_TOOL, SYNC_TOOL])
        return names

    def allowed_tags(self) -> list[str]:
        """Union of every template's tag vocabulary, in declaration order."""
        tags: list[str] = []
        for template in self.practice_notes:
            for tag in template.allowed_tags:
                if tag not in tags:
                    tags.append(tag)
        return tags

    @model_validator(mode="after")
    def _check_unique_tool_names(self) -> AppConfig:
        seen: set[str] = set()
        duplicates: list[str] = []
        for name in self.tool_names():
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise ValueError(f"Duplicate tool names in configuration: {duplicates}")
        return self


def parse_config(raw: str | bytes) -> AppConfig:
    try:
        return AppConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid tool configuration: {exc}") from exc


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the JSON configuration file."""
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {config_path}: {exc}") from exc
    return parse_config(raw)
