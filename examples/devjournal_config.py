"""devjournal Configuration - Advanced Python Example

Copy to your project root as devjournal_config.py for full extensibility.

Convention:
- CONFIG dict for static configuration (same structure as TOML)
- hook_tokenize replaces the default token extractor
- Functions named custom_tool_* become MCP tools
"""

from devjournal.models import KeywordPayload, TechnologyPayload, Token

# =============================================================================
# Static Configuration (same structure as TOML)
# =============================================================================

CONFIG = {
    "project": {
        "name": "my-dev-journal",
    },
    "directories": {
        "entries": "data/entries",
    },
    "cache": {
        "max_size": 500,
        "ttl_seconds": 300,
    },
    "filter": {
        "expected_items": 5000,
        "false_positive_rate": 0.01,
    },
    "index": {
        "warmup_files": 60,
    },
    "retrieval": {
        "batch_threshold_days": 14,
        "max_concurrent_reads": 8,
    },
    "logging": {
        "level": "DEBUG",
    },
}


# =============================================================================
# Hooks
# =============================================================================

def hook_tokenize(record) -> list:
    """Index every technology plus every hashtag in the message.

    Receives a day record ({"date", "entries": [...]}) and returns Tokens.
    Must not mutate the record.
    """
    date = record.get("date", "")
    tokens = []
    for entry in record.get("entries", []):
        for tech in entry.get("technologies") or []:
            tokens.append(Token(tech, TechnologyPayload(name=tech, date=date)))
        for word in (entry.get("message") or "").split():
            if word.startswith("#") and len(word) > 1:
                tag = word[1:].lower()
                tokens.append(Token(tag, KeywordPayload(word=tag, date=date)))
    return tokens


# =============================================================================
# Custom Tools - Exposed as additional MCP tools
# =============================================================================

async def custom_tool_hours_logged(engine, params) -> dict:
    """Sum hours spent coding between two dates.

    Params: date_from, date_to (YYYY-MM-DD).
    """
    records = await engine.get_range(params["date_from"], params["date_to"], limit=366)
    hours = sum(
        entry.get("timeSpent") or 0
        for record in records
        for entry in record.get("entries", [])
    )
    return {"success": True, "days": len(records), "hours": hours}


async def custom_tool_top_technologies(engine, params) -> dict:
    """List the most frequently logged technologies."""
    await engine.initialize()
    matches = engine.search_technologies("", limit=params.get("limit", 5))
    return {
        "success": True,
        "technologies": [{"name": m.word, "count": m.frequency} for m in matches],
    }
