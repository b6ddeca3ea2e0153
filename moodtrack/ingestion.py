"""
IngestionCoordinator — the single writer of the event log.

Usage:
    from moodtrack import EventStore, IngestionCoordinator, SuggestionClient

    coord = IngestionCoordinator(EventStore(), suggestions=SuggestionClient())
    obs = coord.ingest("happy", 87, "camera")
    result, obs = coord.ingest_text("Stressed about the deadline")
    coord.last_suggestion.result()  # advice text, never raises
    coord.shutdown()

Persisting and fetching suggestions are independent steps. The observation
is written first; only after that succeeds is a fetch scheduled on a worker
thread. Whatever happens to the fetch, the stored observation stands.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from .backends import FileBackend
from .classifier import ClassificationResult, TextClassifier
from .expressions import dominant_expression
from .observation import Observation, local_now
from .store import EventStore
from .suggestions import FALLBACK_MESSAGE, SuggestionClient

logger = logging.getLogger("moodtrack")

SuggestionCallback = Callable[[Observation, str], None]


class IngestionCoordinator:
    """Turn classifier output into stored observations.

    Parameters
    ----------
    store : EventStore
        Log the observations are appended to.
    suggestions : SuggestionClient | None
        Client used after each append. None disables the fetch.
    classifier : TextClassifier | None
        Used by ``ingest_text``. Defaults to the built-in keyword table.
    on_suggestion : callable | None
        Called as ``on_suggestion(observation, text)`` on the worker thread
        once a fetch completes.
    clock : callable | None
        Returns the timestamp for new observations. Defaults to local now.
    """

    def __init__(
        self,
        store: EventStore,
        suggestions: Optional[SuggestionClient] = None,
        classifier: Optional[TextClassifier] = None,
        on_suggestion: Optional[SuggestionCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.suggestions = suggestions
        self.classifier = classifier or TextClassifier()
        self.on_suggestion = on_suggestion
        self.clock = clock or local_now
        self.last_suggestion: Optional[Future] = None
        self._append_lock = threading.Lock()
        self._executor_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_settings(cls, settings, fetch_suggestions: bool = True, **kwargs) -> "IngestionCoordinator":
        """Wire a file-backed coordinator from a ``config.Settings``."""
        store = EventStore(
            FileBackend(settings.data_dir),
            capacity=settings.capacity,
            key=settings.storage_key,
        )
        client = None
        if fetch_suggestions:
            client = SuggestionClient(settings.suggestion_url, timeout=settings.suggestion_timeout)
        return cls(store, suggestions=client, **kwargs)

    # ── ingestion ───────────────────────────────────────────────────────

    def ingest(self, emotion: str, confidence, source: str) -> Observation:
        """Record one observation and return it.

        Raises:
            ValueError: unknown emotion or source, or non-numeric confidence.
            StoreWriteError: the log could not be persisted; no fetch is made.
        """
        observation = Observation(
            emotion=emotion,
            confidence=confidence,
            source=source,
            timestamp=self.clock(),
        )
        with self._append_lock:
            self.store.append(observation)
        logger.info(
            "Recorded %s at %s%% from %s",
            observation.emotion, observation.confidence, observation.source,
        )
        self._schedule_suggestion(observation)
        return observation

    def ingest_text(self, text: str) -> Tuple[ClassificationResult, Observation]:
        """Classify *text* and record the dominant emotion with ``source="text"``."""
        result = self.classifier.classify(text)
        observation = self.ingest(result.emotion, result.confidence, "text")
        return result, observation

    def ingest_expressions(self, expressions: Dict[str, float]) -> Optional[Observation]:
        """Record the strongest facial expression with ``source="camera"``.

        Returns None, recording nothing, when no usable expression is present.
        """
        picked = dominant_expression(expressions)
        if picked is None:
            logger.info("No face expression to record")
            return None
        emotion, confidence = picked
        return self.ingest(emotion, confidence, "camera")

    # ── suggestions ─────────────────────────────────────────────────────

    def _schedule_suggestion(self, observation: Observation) -> None:
        if self.suggestions is None:
            return
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="moodtrack-suggest")
            self.last_suggestion = self._executor.submit(self._fetch, observation)

    def _fetch(self, observation: Observation) -> str:
        try:
            text = self.suggestions.fetch(observation.emotion)
        except Exception:
            # fetch is not supposed to raise; keep the worker alive if it does
            logger.exception("Suggestion fetch for %s failed", observation.id)
            text = FALLBACK_MESSAGE
        if self.on_suggestion is not None:
            try:
                self.on_suggestion(observation, text)
            except Exception:
                logger.exception("on_suggestion callback failed for %s", observation.id)
        return text

    def shutdown(self, wait: bool = True) -> None:
        """Stop the suggestion worker. Pending fetches finish when *wait* is True."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
