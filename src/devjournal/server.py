"""devjournal server - MCP entry point and one-shot query CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

# MCP imports are optional - only needed when running the server
try:
    from mcp.server import Server  # pragma: no cover
    from mcp.server.stdio import stdio_server  # pragma: no cover
    from mcp.types import Tool, TextContent  # pragma: no cover
    HAS_MCP = True  # pragma: no cover
except ImportError:
    HAS_MCP = False
    Server = None  # type: ignore
    Tool = None  # type: ignore
    TextContent = None  # type: ignore

from .config import EngineConfig, load_config
from .engine import RetrievalEngine
from .logging_config import setup_logging
from .store import JournalStore
from .tools import execute_tool, make_tools

logger = logging.getLogger(__name__)


def create_server(config: EngineConfig, engine: Optional[RetrievalEngine] = None) -> "Server":
    """Create and configure the MCP server.

    Args:
        config: Engine configuration
        engine: Engine to serve (default: a new engine over config)

    Returns:
        Configured MCP Server instance

    Raises:
        ImportError: If MCP package is not installed
    """
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install devjournal[mcp]"
        )

    server = Server("devjournal")
    if engine is None:
        engine = RetrievalEngine(config)
    tool_defs = make_tools(engine)

    # Add custom tools from Python config
    for tool_name, tool_func in config.custom_tools.items():
        doc = tool_func.__doc__ or f"Custom tool: {tool_name}"
        tool_defs[tool_name] = {
            "name": tool_name,
            "description": doc.strip().split("\n")[0],
            "inputSchema": {
                "type": "object",
                "properties": {
                    "params": {
                        "type": "object",
                        "description": "Parameters for the custom tool",
                    }
                },
            },
        }

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return list of available tools."""
        return [
            Tool(
                name=t["name"],
                description=t["description"],
                inputSchema=t["inputSchema"],
            )
            for t in tool_defs.values()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool invocation."""
        if name in config.custom_tools:
            try:
                result = config.custom_tools[name](engine, arguments.get("params", arguments))
                if asyncio.iscoroutine(result):
                    result = await result
                return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
            except Exception as e:
                logger.exception("Custom tool %s failed", name)
                error_result = {
                    "success": False,
                    "error": str(e),
                    "error_type": "custom_tool_error",
                }
                return [TextContent(type="text", text=json.dumps(error_result, indent=2))]

        result = await execute_tool(engine, name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    return server


async def run_server(config: EngineConfig) -> None:
    """Run the MCP server with stdio transport."""
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install devjournal[mcp]"
        )

    engine = RetrievalEngine(config)  # pragma: no cover
    server = create_server(config, engine)  # pragma: no cover

    try:  # pragma: no cover
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:  # pragma: no cover
        await engine.shutdown()


def has_query(args: argparse.Namespace) -> bool:
    """True if any one-shot query flag was given."""
    return bool(
        args.get
        or args.range
        or args.search_tech is not None
        or args.search_keyword is not None
        or args.stats
    )


async def run_query(config: EngineConfig, args: argparse.Namespace) -> dict[str, Any]:
    """Run the one-shot query selected by args through the tool layer.

    Returns:
        The tool result dictionary
    """
    engine = RetrievalEngine(config)
    try:
        if args.get:
            return await execute_tool(engine, "journal_get_entry", {"date": args.get})
        if args.range:
            return await execute_tool(engine, "journal_get_range", {
                "date_from": args.range[0],
                "date_to": args.range[1],
                "limit": args.limit,
            })
        if args.search_tech is not None:
            return await execute_tool(engine, "journal_search_technologies", {
                "prefix": args.search_tech,
                "limit": args.limit,
            })
        if args.search_keyword is not None:
            return await execute_tool(engine, "journal_search_keywords", {
                "prefix": args.search_keyword,
                "limit": args.limit,
            })
        await engine.initialize()
        return await execute_tool(engine, "journal_stats", {})
    finally:
        await engine.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="devjournal - cached retrieval and search over a daily development journal"
    )
    parser.add_argument(
        "--project-root",
        "-p",
        type=Path,
        default=Path.cwd(),
        help="Project root directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Path to config file (default: auto-detect in project root)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the entries directory in project root",
    )
    parser.add_argument(
        "--log-level",
        help="Override the configured log level (DEBUG, INFO, WARNING, ERROR)",
    )

    query_group = parser.add_argument_group("queries", "One-shot queries (print JSON and exit)")
    query_group.add_argument("--get", metavar="DATE", help="Read one day record")
    query_group.add_argument(
        "--range",
        nargs=2,
        metavar=("START", "END"),
        help="Read day records from START to END inclusive",
    )
    query_group.add_argument("--search-tech", metavar="PREFIX", help="Search technologies by prefix")
    query_group.add_argument("--search-keyword", metavar="PREFIX", help="Search keywords by prefix")
    query_group.add_argument("--stats", action="store_true", help="Print engine statistics")
    query_group.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum results (default: 100 for --range, 10 for searches)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    project_root = args.project_root.resolve()

    try:
        config = load_config(project_root, args.config)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(args.log_level or config.log_level)

    if args.init:
        store = JournalStore(config.get_entries_path())
        store.ensure_directory()
        print(f"Initialized journal entries directory in {project_root}")
        print(f"  - {config.entries_dir}/")
        return

    if has_query(args):
        if args.limit is None:
            args.limit = 100 if args.range else 10
        result = asyncio.run(run_query(config, args))
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success", False):
            sys.exit(1)
        return

    # Check for MCP before serving
    if not HAS_MCP:
        print("Error: MCP package not installed.", file=sys.stderr)
        print("Install with: pip install devjournal[mcp]", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run_server(config))  # pragma: no cover


if __name__ == "__main__":  # pragma: no cover
    main()
