"""
moodtrack — emotion observation log with dashboard analytics.

Classify free text or take a facial-expression result, record it as an
immutable observation in a capacity-bounded log, and summarize the log into
dominant emotion, confidence and activity histograms.

Usage:
    from moodtrack import EventStore, FileBackend, IngestionCoordinator, AggregationEngine

    store = EventStore(FileBackend("./moodtrack_data"))
    coord = IngestionCoordinator(store)
    result, obs = coord.ingest_text("I feel wonderful today")
    coord.ingest("sad", 72, "camera")
    stats = AggregationEngine.compute(store.all())
    print(stats.dominant_emotion, stats.hourly_activity)
"""

__version__ = "1.0.0"

# Core
from moodtrack.labels import EMOTIONS, SOURCES
from moodtrack.observation import Observation
from moodtrack.classifier import ClassificationResult, TextClassifier, classify
from moodtrack.aggregation import AggregationEngine, EmotionShare, Statistics, scale_series
from moodtrack.expressions import dominant_expression

# Storage
from moodtrack.backends import FileBackend, MemoryBackend, StorageBackend, StorageQuotaExceeded
from moodtrack.store import EventStore, StoreWriteError
from moodtrack.locking import FileLock, LockTimeout

# Ingestion
from moodtrack.ingestion import IngestionCoordinator
from moodtrack.suggestions import SuggestionClient
from moodtrack.config import Settings

# MCP Server (optional, requires the 'mcp' package)
try:
    from moodtrack.mcp_server import MCP_AVAILABLE, create_server as create_mcp_server
except ImportError:
    MCP_AVAILABLE = False

    def create_mcp_server(*args, **kwargs):  # type: ignore[misc]
        """Stub: install 'mcp' to use the MCP server. ``pip install mcp``"""
        raise ImportError(
            "The 'mcp' package is required. Install with: pip install mcp"
        )

__all__ = [
    "EMOTIONS",
    "SOURCES",
    "Observation",

    # Classification
    "ClassificationResult",
    "TextClassifier",
    "classify",
    "dominant_expression",

    # Aggregation
    "AggregationEngine",
    "EmotionShare",
    "Statistics",
    "scale_series",

    # Storage
    "StorageBackend",
    "MemoryBackend",
    "FileBackend",
    "StorageQuotaExceeded",
    "EventStore",
    "StoreWriteError",
    "FileLock",
    "LockTimeout",

    # Ingestion
    "IngestionCoordinator",
    "SuggestionClient",
    "Settings",

    # MCP
    "create_mcp_server",
    "MCP_AVAILABLE",
]
