"""MCP tool definitions wrapping the retrieval engine."""

from __future__ import annotations

from typing import Any

from .engine import RetrievalEngine
from .errors import JournalError

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _date_property(description: str) -> dict[str, Any]:
    return {
        "type": "string",
        "pattern": DATE_PATTERN,
        "description": description,
    }


def _prefix_tool(name: str, description: str) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": {
                "prefix": {
                    "type": "string",
                    "description": "Case-insensitive prefix; empty string matches everything",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum results (default: 10)",
                },
            },
            "required": ["prefix"],
        },
    }


def make_tools(engine: RetrievalEngine) -> dict[str, dict]:
    """Create MCP tool definitions for the retrieval engine.

    Returns:
        Dict mapping tool names to their definitions.
    """

    tools = {}

    tools["journal_get_entry"] = {
        "name": "journal_get_entry",
        "description": "Read one day's journal record. Served from cache when possible.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "date": _date_property("Day to read (YYYY-MM-DD)"),
            },
            "required": ["date"],
        },
    }

    tools["journal_get_range"] = {
        "name": "journal_get_range",
        "description": "Read every day record between two dates (inclusive), oldest first. Days without entries are skipped.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "date_from": _date_property("First day (YYYY-MM-DD)"),
                "date_to": _date_property("Last day (YYYY-MM-DD)"),
                "limit": {
                    "type": "integer",
                    "description": "Maximum records to return (default: 100)",
                },
            },
            "required": ["date_from", "date_to"],
        },
    }

    tools["journal_entry_exists"] = {
        "name": "journal_entry_exists",
        "description": "Check whether a day has a journal file without reading it.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "date": _date_property("Day to check (YYYY-MM-DD)"),
            },
            "required": ["date"],
        },
    }

    tools["journal_search_technologies"] = _prefix_tool(
        "journal_search_technologies",
        "Autocomplete technology names seen in the journal, most used first.",
    )

    tools["journal_search_keywords"] = _prefix_tool(
        "journal_search_keywords",
        "Autocomplete leading words of entry messages, most used first.",
    )

    search_prefix = _prefix_tool(
        "journal_search_prefix",
        "Search all indexed terms by prefix, optionally restricted to one kind.",
    )
    search_prefix["inputSchema"]["properties"]["tag"] = {
        "type": "string",
        "enum": ["technology", "keyword"],
        "description": "Restrict to one kind of term",
    }
    tools["journal_search_prefix"] = search_prefix

    tools["journal_stats"] = {
        "name": "journal_stats",
        "description": "Cache, membership filter, prefix index and query statistics.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "recent_queries": {
                    "type": "integer",
                    "description": "Also return this many recent query samples (default: 0)",
                },
            },
        },
    }

    return tools


async def execute_tool(engine: RetrievalEngine, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute a tool and return the result.

    Args:
        engine: Retrieval engine instance
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dictionary
    """
    try:
        if name == "journal_get_entry":
            record = await engine.get_entry(arguments["date"])
            return {
                "success": True,
                "date": arguments["date"],
                "found": record is not None,
                "record": record,
            }

        elif name == "journal_get_range":
            records = await engine.get_range(
                arguments["date_from"],
                arguments["date_to"],
                limit=arguments.get("limit", 100),
            )
            return {
                "success": True,
                "count": len(records),
                "records": records,
            }

        elif name == "journal_entry_exists":
            exists = await engine.entry_exists(arguments["date"])
            return {
                "success": True,
                "date": arguments["date"],
                "exists": exists,
            }

        elif name in ("journal_search_technologies", "journal_search_keywords", "journal_search_prefix"):
            await engine.initialize()
            limit = arguments.get("limit", 10)
            if name == "journal_search_technologies":
                matches = engine.search_technologies(arguments["prefix"], limit=limit)
            elif name == "journal_search_keywords":
                matches = engine.search_keywords(arguments["prefix"], limit=limit)
            else:
                matches = engine.search_by_prefix(
                    arguments["prefix"],
                    tag=arguments.get("tag"),
                    limit=limit,
                )
            return {
                "success": True,
                "count": len(matches),
                "results": [match.to_dict() for match in matches],
            }

        elif name == "journal_stats":
            result = {
                "success": True,
                "stats": engine.stats(),
            }
            recent = arguments.get("recent_queries", 0)
            if recent:
                result["recent_queries"] = [s.to_dict() for s in engine.recent_metrics(recent)]
            return result

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
            }

    except KeyError as e:
        return {
            "success": False,
            "error": f"Missing required argument: {e.args[0]}",
            "error_type": "missing_argument",
        }

    except JournalError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "journal_error",
        }

    except ValueError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "invalid_argument",
            "suggestion": "Dates must be YYYY-MM-DD; tag must be 'technology' or 'keyword'",
        }

    except Exception as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "unexpected_error",
        }
