"""Tests for configuration loading."""

from pathlib import Path

import pytest

from devjournal.config import (
    EngineConfig,
    dict_to_config,
    find_config_file,
    load_config,
    load_json_config,
    load_python_config,
)
from devjournal.engine import RetrievalEngine

from conftest import FakeStore, make_record


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_finds_python_config(self, temp_project):
        """Python config is found first."""
        (temp_project / "devjournal_config.py").write_text("CONFIG = {}")
        (temp_project / "devjournal_config.toml").write_text("")

        found = find_config_file(temp_project)
        assert found.name == "devjournal_config.py"

    def test_finds_toml_config(self, temp_project):
        """TOML config is found if no Python config."""
        (temp_project / "devjournal_config.toml").write_text("")

        found = find_config_file(temp_project)
        assert found.name == "devjournal_config.toml"

    def test_finds_json_config(self, temp_project):
        """JSON config is found if no Python/TOML."""
        (temp_project / "devjournal_config.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == "devjournal_config.json"

    def test_finds_dotfile_config(self, temp_project):
        """Dotfile configs are found."""
        (temp_project / ".devjournal.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == ".devjournal.json"

    def test_returns_none_if_no_config(self, temp_project):
        """Returns None if no config file found."""
        assert find_config_file(temp_project) is None


class TestDictToConfig:
    """Tests for dict_to_config."""

    def test_defaults(self, temp_project):
        config = dict_to_config({}, temp_project)
        assert config == EngineConfig(project_root=temp_project)
        assert config.cache_max_size == 2000
        assert config.cache_ttl_seconds == 600.0
        assert config.filter_false_positive_rate == 0.001
        assert config.get_entries_path() == temp_project / "data" / "entries"

    def test_all_sections(self, temp_project):
        data = {
            "project": {"name": "journal"},
            "directories": {"entries": "entries"},
            "cache": {"max_size": 50, "ttl_seconds": 30},
            "filter": {"expected_items": 200, "false_positive_rate": 0.05},
            "index": {"warmup_files": 7},
            "retrieval": {"batch_threshold_days": 3, "max_concurrent_reads": 2, "single_flight": False},
            "metrics": {"buffer_size": 10},
            "logging": {"level": "DEBUG"},
        }
        config = dict_to_config(data, temp_project)

        assert config.project_name == "journal"
        assert config.get_entries_path() == temp_project / "entries"
        assert config.cache_max_size == 50
        assert config.cache_ttl_seconds == 30.0
        assert isinstance(config.cache_ttl_seconds, float)
        assert config.filter_expected_items == 200
        assert config.filter_false_positive_rate == 0.05
        assert config.index_warmup_files == 7
        assert config.batch_threshold_days == 3
        assert config.max_concurrent_reads == 2
        assert config.single_flight is False
        assert config.metrics_buffer_size == 10
        assert config.log_level == "DEBUG"

    def test_unknown_keys_ignored(self, temp_project):
        config = dict_to_config({"cache": {"colour": "blue"}, "extra": 1}, temp_project)
        assert config.cache_max_size == 2000


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_config_uses_defaults(self, temp_project):
        config = load_config(temp_project)
        assert config.project_root == temp_project
        assert config.project_name == "unnamed"

    def test_loads_toml(self, temp_project):
        (temp_project / "devjournal_config.toml").write_text(
            '[project]\nname = "toml-journal"\n\n[cache]\nmax_size = 12\n'
        )
        config = load_config(temp_project)
        assert config.project_name == "toml-journal"
        assert config.cache_max_size == 12

    def test_loads_json(self, temp_project):
        config_file = temp_project / "custom.json"
        config_file.write_text('{"filter": {"expected_items": 99}}')

        assert load_json_config(config_file)["filter"]["expected_items"] == 99
        assert load_config(temp_project, config_file).filter_expected_items == 99

    def test_loads_python_with_hooks_and_tools(self, temp_project):
        (temp_project / "devjournal_config.py").write_text('''
CONFIG = {"index": {"warmup_files": 3}}

def hook_tokenize(record):
    return []

def custom_tool_ping(engine, params):
    return {"pong": True}
''')
        config = load_config(temp_project)

        assert config.index_warmup_files == 3
        assert config.get_tokenizer() is config.hooks["tokenize"]
        assert "ping" in config.custom_tools
        assert config.custom_tools["ping"](None, {}) == {"pong": True}

    def test_python_config_lowercase_dict(self, temp_project):
        config_file = temp_project / "devjournal_config.py"
        config_file.write_text('config = {"project": {"name": "lower"}}\n')
        data, hooks, tools = load_python_config(config_file)
        assert data["project"]["name"] == "lower"
        assert hooks == {}
        assert tools == {}

    def test_unsupported_suffix(self, temp_project):
        config_file = temp_project / "config.yaml"
        config_file.write_text("project: {}")
        with pytest.raises(ValueError, match="Unsupported config file type"):
            load_config(temp_project, config_file)

    def test_example_config_loads(self, temp_project):
        """The shipped example config parses and provides a tokenizer."""
        example = Path(__file__).parent.parent / "examples" / "devjournal_config.py"
        config = load_config(temp_project, example)

        assert config.project_name == "my-dev-journal"
        assert config.cache_max_size == 500
        assert set(config.custom_tools) == {"hours_logged", "top_technologies"}

        tokens = config.get_tokenizer()({
            "date": "2024-01-01",
            "entries": [{"message": "fixed #perf bug", "technologies": ["Go"]}],
        })
        assert [t.text for t in tokens] == ["Go", "perf"]

    @pytest.mark.asyncio
    async def test_example_top_technologies_on_cold_engine(self, temp_project):
        """The example tool warms the engine before reading the index."""
        example = Path(__file__).parent.parent / "examples" / "devjournal_config.py"
        config = load_config(temp_project, example)
        store = FakeStore({
            "2024-01-01": make_record("2024-01-01", technologies=["go"]),
            "2024-01-02": make_record("2024-01-02", technologies=["go", "sql"]),
        })
        engine = RetrievalEngine(config, store=store)

        result = await config.custom_tools["top_technologies"](engine, {})

        assert result["technologies"] == [
            {"name": "go", "count": 2},
            {"name": "sql", "count": 1},
        ]

    def test_no_tokenizer_without_hook(self, temp_project):
        assert EngineConfig(project_root=temp_project).get_tokenizer() is None
