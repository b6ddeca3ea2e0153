"""
Client for the remote suggestion service.

The service takes ``{"image": <base64 or null>, "emotion": <label>}`` and
answers ``{"suggestions": "<free text>"}``. Failures never escape ``fetch``:
they are logged and turned into a fixed advisory string.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger("moodtrack")

DEFAULT_SUGGESTION_URL = "http://localhost:5000/api/analyze"
DEFAULT_TIMEOUT = 20.0

FALLBACK_MESSAGE = "Could not fetch suggestions. Try again later."
EMPTY_MESSAGE = "No suggestions found."


class SuggestionClient:
    """POSTs an emotion to the suggestion endpoint and returns advice text.

    Args:
        url: Endpoint URL.
        timeout: Seconds before the request is abandoned.
        session: Optional ``requests.Session`` (tests inject a mock).
    """

    def __init__(
        self,
        url: str = DEFAULT_SUGGESTION_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, emotion: str, image_base64: Optional[str] = None) -> str:
        """Advice for *emotion*; FALLBACK_MESSAGE on any failure."""
        try:
            response = self.session.post(
                self.url,
                json={"image": image_base64, "emotion": emotion},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning("Suggestion request for %r timed out after %ss", emotion, self.timeout)
            return FALLBACK_MESSAGE
        except requests.RequestException as e:
            logger.warning("Error calling suggestion service for %r: %s", emotion, e)
            return FALLBACK_MESSAGE
        except ValueError as e:
            logger.warning("Suggestion service returned a non-JSON body: %s", e)
            return FALLBACK_MESSAGE

        text = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            return EMPTY_MESSAGE
        return text.strip()

    def close(self) -> None:
        self.session.close()
