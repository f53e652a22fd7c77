from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from mcp_anki_presets.config import load_config, parse_config
from mcp_anki_presets.errors import ConfigError

from conftest import TEST_CONFIG


def _config(**changes: Any) -> dict[str, Any]:
    data = copy.deepcopy(TEST_CONFIG)
    data.update(changes)
    return data


def test_parses_camel_case_configuration() -> None:
    config = parse_config(json.dumps(TEST_CONFIG))
    preset = config.presets[0]
    assert preset.base_query == '"deck:TestDeck"'
    assert preset.search_fields == ["Front", "Back"]
    assert config.presets[1].parameters["days"].default == 7
    assert config.presets[2].include_scheduling_data is True
    assert config.practice_notes[1].reject_duplicates == "Front"
    assert config.sync.sync_interval_seconds == 600


def test_tool_names_and_tag_vocabulary() -> None:
    config = parse_config(json.dumps(TEST_CONFIG))
    assert config.tool_names()[-2:] == ["update_tags", "sync"]
    assert config.allowed_tags() == ["verb", "noun"]


def test_primary_field_prefers_first_required() -> None:
    data = _config()
    data["practiceNotes"][0]["fields"][0]["required"] = False
    config = parse_config(json.dumps(data))
    assert config.practice_notes[0].primary_field == "Back"
    assert config.practice_notes[1].primary_field == "Front"


def test_duplicate_preset_name_is_rejected() -> None:
    data = _config()
    data["presets"][1]["name"] = "search_notes"
    with pytest.raises(ConfigError, match="Duplicate tool names"):
        parse_config(json.dumps(data))


def test_preset_colliding_with_generated_name_is_rejected() -> None:
    data = _config()
    data["presets"][0]["name"] = "create_vocab"
    with pytest.raises(ConfigError, match="create_vocab"):
        parse_config(json.dumps(data))


def test_preset_colliding_with_builtin_is_rejected() -> None:
    data = _config()
    data["presets"][0]["name"] = "sync"
    with pytest.raises(ConfigError):
        parse_config(json.dumps(data))


def test_default_sort_must_be_allowed() -> None:
    data = _config()
    data["presets"][0]["defaultSort"] = "lapses_desc"
    with pytest.raises(ConfigError, match="defaultSort"):
        parse_config(json.dumps(data))


def test_reject_duplicates_must_name_a_field() -> None:
    data = _config()
    data["practiceNotes"][1]["rejectDuplicates"] = "Extra"
    with pytest.raises(ConfigError, match="rejectDuplicates"):
        parse_config(json.dumps(data))


def test_load_config_reads_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(TEST_CONFIG), encoding="utf-8")
    assert [p.name for p in load_config(path).presets] == ["search_notes", "recent", "struggling"]


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Cannot read"):
        load_config(tmp_path / "missing.json")


def test_shipped_example_config_is_valid() -> None:
    config = load_config(Path(__file__).resolve().parent.parent / "config.json")
    assert config.presets
