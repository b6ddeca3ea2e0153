"""
moodtrack MCP Server

Exposes the emotion log over MCP so an agent (or a thin UI) can record
observations and read the dashboard numbers.

Tools:
  - analyze_text(text, record) → classification, optionally recorded
  - record_emotion(emotion, confidence, source) → store one observation
  - record_expressions(expressions) → store the strongest face expression
  - emotion_stats(source, days) → dashboard statistics
  - export_history() → the full log as JSON text
  - clear_history() → empty the log
  - get_suggestion(emotion) → advice text from the suggestion service

Resources:
  - moodtrack://stats/{source} → statistics for "all", "camera" or "text"

Usage:
    python -m moodtrack.mcp_server --data-dir ./moodtrack_data
    # or
    from moodtrack.mcp_server import create_server
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import timedelta
from typing import Any, Dict, Optional

try:
    from mcp.server.fastmcp import FastMCP
    MCP_AVAILABLE = True
except ImportError:
    MCP_AVAILABLE = False
    FastMCP = None  # type: ignore

from moodtrack.aggregation import AggregationEngine
from moodtrack.config import Settings, configure_logging
from moodtrack.ingestion import IngestionCoordinator
from moodtrack.observation import local_now
from moodtrack.store import StoreWriteError
from moodtrack.suggestions import SuggestionClient

logger = logging.getLogger("moodtrack")


def _stats_for(coord: IngestionCoordinator, source: Optional[str] = None,
               days: Optional[int] = None) -> Dict[str, Any]:
    if days is not None and days < 0:
        raise ValueError(f"days must be zero or positive, got {days}")
    now = local_now()
    observations = coord.store.all()
    since = now - timedelta(days=days) if days is not None else None
    if source is not None or since is not None:
        observations = AggregationEngine.filter(observations, source=source, since=since)
    return AggregationEngine.compute(observations, now=now).to_dict()


def create_server(
    data_dir: Optional[str] = None,
    suggestion_url: Optional[str] = None,
    fetch_suggestions: bool = True,
) -> "FastMCP":
    """Create the FastMCP server over a file-backed emotion log.

    Args:
        data_dir: Directory holding the log. Falls back to
            ``$MOODTRACK_DATA_DIR``, then ``./moodtrack_data``.
        suggestion_url: Suggestion endpoint override.
        fetch_suggestions: When False, recording never calls the
            suggestion service.

    Raises:
        ImportError: If the ``mcp`` package is not installed.
    """
    if not MCP_AVAILABLE:
        raise ImportError(
            "The 'mcp' package is required to run the moodtrack MCP server. "
            "Install it with: pip install mcp"
        )

    settings = Settings.from_env(data_dir=data_dir, suggestion_url=suggestion_url)
    coord = IngestionCoordinator.from_settings(settings, fetch_suggestions=fetch_suggestions)
    # own session: the coordinator's client is used from its worker thread
    client = SuggestionClient(settings.suggestion_url, timeout=settings.suggestion_timeout)

    mcp = FastMCP(
        name="moodtrack",
        instructions=(
            "moodtrack — emotion observation log. "
            "Use analyze_text or record_emotion to log how the user feels, "
            "emotion_stats to read trends, and get_suggestion for advice."
        ),
    )

    @mcp.tool()
    def analyze_text(text: str, record: bool = True) -> Dict[str, Any]:
        """Classify free text by emotion keywords.

        Args:
            text: Text to analyze.
            record: Also store the result as an observation (default True).

        Returns:
            Dict with emotion, confidence, breakdown and, when recorded,
            the stored observation (or an error message if storing failed).
        """
        if not record:
            return coord.classifier.classify(text).to_dict()
        try:
            result, obs = coord.ingest_text(text)
        except StoreWriteError as e:
            out = coord.classifier.classify(text).to_dict()
            out["error"] = str(e)
            return out
        out = result.to_dict()
        out["observation"] = obs.to_dict()
        return out

    @mcp.tool()
    def record_emotion(emotion: str, confidence: float, source: str = "camera") -> Dict[str, Any]:
        """Store one observation, e.g. from an external face classifier.

        Returns:
            Dict with stored (bool) and the observation or an error message.
        """
        try:
            obs = coord.ingest(emotion, confidence, source)
        except (ValueError, StoreWriteError) as e:
            return {"stored": False, "error": str(e)}
        return {"stored": True, "observation": obs.to_dict()}

    @mcp.tool()
    def record_expressions(expressions: Dict[str, float]) -> Dict[str, Any]:
        """Store the strongest expression from a ``{label: probability}`` map."""
        try:
            obs = coord.ingest_expressions(expressions)
        except StoreWriteError as e:
            return {"stored": False, "error": str(e)}
        if obs is None:
            return {"stored": False, "error": "no face expression detected"}
        return {"stored": True, "observation": obs.to_dict()}

    @mcp.tool()
    def emotion_stats(source: Optional[str] = None, days: Optional[int] = None) -> Dict[str, Any]:
        """Dashboard statistics, optionally limited to one source or the last N days."""
        try:
            return _stats_for(coord, source=source, days=days)
        except ValueError as e:
            return {"error": str(e)}

    @mcp.tool()
    def export_history() -> str:
        """Full observation log as indented JSON, newest first."""
        return coord.store.export()

    @mcp.tool()
    def clear_history() -> Dict[str, Any]:
        """Delete every stored observation."""
        try:
            coord.store.clear()
        except StoreWriteError as e:
            return {"cleared": False, "error": str(e)}
        return {"cleared": True}

    @mcp.tool()
    def get_suggestion(emotion: str) -> str:
        """Advice for an emotion from the suggestion service (fallback text on failure)."""
        return client.fetch(emotion)

    @mcp.resource("moodtrack://stats/{source}")
    def stats_resource(source: str) -> str:
        """Statistics as JSON for ``all``, ``camera`` or ``text``."""
        stats = _stats_for(coord, source=None if source == "all" else source)
        return json.dumps(stats, indent=2)

    return mcp


def main() -> None:
    """Run the moodtrack MCP server (stdio transport by default)."""
    parser = argparse.ArgumentParser(
        description="moodtrack MCP Server — record and summarize emotion observations."
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory for the event log. Defaults to $MOODTRACK_DATA_DIR or ./moodtrack_data",
    )
    parser.add_argument(
        "--suggestion-url",
        default=None,
        help="Suggestion service endpoint. Defaults to $MOODTRACK_SUGGESTION_URL.",
    )
    parser.add_argument(
        "--no-suggestions",
        action="store_true",
        help="Do not call the suggestion service after recording.",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio).",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host for SSE transport.")
    parser.add_argument("--port", type=int, default=8765, help="Port for SSE transport.")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level. Defaults to $MOODTRACK_LOG_LEVEL or WARNING.",
    )
    args = parser.parse_args()

    configure_logging(args.log_level or Settings.from_env().log_level)

    if not MCP_AVAILABLE:
        print(
            "ERROR: The 'mcp' package is not installed.\n"
            "Install it with: pip install mcp",
            file=sys.stderr,
        )
        sys.exit(1)

    server = create_server(
        data_dir=args.data_dir,
        suggestion_url=args.suggestion_url,
        fetch_suggestions=not args.no_suggestions,
    )

    if args.transport == "stdio":
        server.run(transport="stdio")
    else:
        server.settings.host = args.host
        server.settings.port = args.port
        server.run(transport="sse")


if __name__ == "__main__":
    main()
