"""
Priority classification through a hosted generative model.

The model is asked to label a complaint Low, Medium or High. The call is
best-effort: missing credentials, network errors, timeouts and answers that
are not exactly one of the three labels all fall back to the priority the
resident picked.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import Settings, get_settings
from .constants import PRIORITIES
from .observability import priority_classifications_total

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Analyze this hostel complaint and categorize its priority as 'Low', 'Medium', or 'High'.

Guidelines:
- High: Safety hazards, major leaks, complete power failure, security issues.
- Medium: Functional issues that hinder daily life but aren't immediate dangers (broken fan, clogged drain).
- Low: Cosmetic issues, minor inconveniences, non-urgent requests.

Complaint: "{description}"

Return ONLY the word: Low, Medium, or High."""


def parse_priority(text: Optional[str]) -> Optional[str]:
    """Return the label if ``text`` is exactly one of the priorities."""
    if not text:
        return None
    label = text.strip()
    return label if label in PRIORITIES else None


def _extract_text(payload: dict) -> Optional[str]:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return None
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class PriorityClassifier:
    """Async client for the classification endpoint."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.settings.classifier_api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.classifier_timeout_seconds)
            )
        return self._client

    async def classify(self, text: str, fallback: str) -> str:
        """Label ``text``; on any failure return ``fallback``."""
        if not self.enabled:
            priority_classifications_total.labels(outcome="disabled").inc()
            return fallback

        body = {"contents": [{"parts": [{"text": PROMPT_TEMPLATE.format(description=text)}]}]}
        try:
            response = await self._get_client().post(
                self.settings.classifier_url,
                json=body,
                headers={"x-goog-api-key": self.settings.classifier_api_key},
            )
            response.raise_for_status()
            label = parse_priority(_extract_text(response.json()))
        except httpx.TimeoutException:
            logger.warning("Priority classification timed out; using %s", fallback)
            priority_classifications_total.labels(outcome="timeout").inc()
            return fallback
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Priority classification failed: {e}; using {fallback}")
            priority_classifications_total.labels(outcome="error").inc()
            return fallback

        if label is None:
            logger.warning("Priority classifier returned an unusable answer; using %s", fallback)
            priority_classifications_total.labels(outcome="unparseable").inc()
            return fallback

        priority_classifications_total.labels(outcome="classified").inc()
        return label

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


classifier = PriorityClassifier()


__all__ = ["PriorityClassifier", "classifier", "parse_priority", "PROMPT_TEMPLATE"]
