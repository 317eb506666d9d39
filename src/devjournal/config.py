"""Configuration loading for the journal retrieval engine.

Supports three tiers:
1. Simple config via .toml or .json - most users
2. Python config via .py - power users with a custom tokenizer or tools
3. Full override by constructing EngineConfig directly - tests and embedding
"""

from __future__ import annotations

import importlib.util
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

# Python 3.11+ has tomllib in stdlib; fall back to tomli for older versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # Python <3.11
    except ImportError:  # pragma: no cover
        tomllib = None


@dataclass
class EngineConfig:
    """Configuration for a journal's retrieval engine."""

    # Project identification
    project_name: str = "unnamed"
    project_root: Path = field(default_factory=Path.cwd)

    # Day files live here (relative to project_root)
    entries_dir: str = "data/entries"

    # Hot-path cache
    cache_max_size: int = 2000
    cache_ttl_seconds: float = 600.0

    # Membership filter sizing
    filter_expected_items: int = 50000
    filter_false_positive_rate: float = 0.001

    # How many of the most recent day files seed the prefix index
    index_warmup_files: int = 100

    # Range queries longer than this many days are fetched concurrently
    batch_threshold_days: int = 30
    max_concurrent_reads: int = 10
    single_flight: bool = True

    metrics_buffer_size: int = 10000
    log_level: str = "INFO"

    # Hooks (populated from Python config)
    hooks: dict[str, Callable] = field(default_factory=dict)

    # Custom tools (populated from Python config)
    custom_tools: dict[str, Callable] = field(default_factory=dict)

    def get_entries_path(self) -> Path:
        return self.project_root / self.entries_dir

    def get_tokenizer(self) -> Optional[Callable]:
        """Tokenizer hook from a Python config, if one was supplied."""
        return self.hooks.get("tokenize")


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from TOML file."""
    if tomllib is None:
        raise ImportError("tomli required for TOML config: pip install tomli")
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_python_config(path: Path) -> tuple[dict[str, Any], dict[str, Callable], dict[str, Callable]]:
    """Load configuration from Python file.

    Returns:
        Tuple of (config_dict, hooks_dict, custom_tools_dict)

    Convention:
        - CONFIG dict or config dict for static configuration
        - Functions named hook_* become hooks (hook_tokenize replaces the tokenizer)
        - Functions named custom_tool_* become MCP tools
    """
    spec = importlib.util.spec_from_file_location("devjournal_config", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load Python config from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["devjournal_config"] = module
    spec.loader.exec_module(module)

    config_dict = {}
    if hasattr(module, "CONFIG"):
        config_dict = module.CONFIG
    elif hasattr(module, "config"):
        config_dict = module.config

    hooks = {}
    custom_tools = {}
    for name in dir(module):
        if name.startswith("hook_"):
            hooks[name[len("hook_"):]] = getattr(module, name)
        elif name.startswith("custom_tool_"):
            custom_tools[name[len("custom_tool_"):]] = getattr(module, name)

    return config_dict, hooks, custom_tools


# (section, key) -> (field name, type)
_FIELD_MAP: dict[tuple[str, str], tuple[str, type]] = {
    ("project", "name"): ("project_name", str),
    ("directories", "entries"): ("entries_dir", str),
    ("cache", "max_size"): ("cache_max_size", int),
    ("cache", "ttl_seconds"): ("cache_ttl_seconds", float),
    ("filter", "expected_items"): ("filter_expected_items", int),
    ("filter", "false_positive_rate"): ("filter_false_positive_rate", float),
    ("index", "warmup_files"): ("index_warmup_files", int),
    ("retrieval", "batch_threshold_days"): ("batch_threshold_days", int),
    ("retrieval", "max_concurrent_reads"): ("max_concurrent_reads", int),
    ("retrieval", "single_flight"): ("single_flight", bool),
    ("metrics", "buffer_size"): ("metrics_buffer_size", int),
    ("logging", "level"): ("log_level", str),
}


def dict_to_config(data: dict[str, Any], project_root: Path) -> EngineConfig:
    """Convert dictionary to EngineConfig.

    Unknown sections and keys are ignored.
    """
    config = EngineConfig(project_root=project_root)

    for (section, key), (attr, kind) in _FIELD_MAP.items():
        values = data.get(section)
        if isinstance(values, dict) and key in values:
            value = values[key]
            if kind is not bool:
                value = kind(value)
            setattr(config, attr, value)

    return config


def find_config_file(project_root: Path) -> Optional[Path]:
    """Find configuration file in project root.

    Search order:
    1. devjournal_config.py (most flexible)
    2. devjournal_config.toml
    3. devjournal_config.json
    4. .devjournal.toml
    5. .devjournal.json
    """
    candidates = [
        "devjournal_config.py",
        "devjournal_config.toml",
        "devjournal_config.json",
        ".devjournal.toml",
        ".devjournal.json",
    ]

    for name in candidates:
        path = project_root / name
        if path.exists():
            return path

    return None


def load_config(project_root: Path, config_path: Optional[Path] = None) -> EngineConfig:
    """Load engine configuration.

    Args:
        project_root: Root directory of the project
        config_path: Optional explicit path to config file

    Returns:
        EngineConfig instance
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None:
        return EngineConfig(project_root=project_root)

    suffix = config_path.suffix.lower()

    if suffix == ".py":
        config_dict, hooks, custom_tools = load_python_config(config_path)
        config = dict_to_config(config_dict, project_root)
        config.hooks = hooks
        config.custom_tools = custom_tools
        return config

    elif suffix == ".toml":
        config_dict = load_toml_config(config_path)
        return dict_to_config(config_dict, project_root)

    elif suffix == ".json":
        config_dict = load_json_config(config_path)
        return dict_to_config(config_dict, project_root)

    else:
        raise ValueError(f"Unsupported config file type: {suffix}")
