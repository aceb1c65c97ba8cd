#!/usr/bin/env python3
"""
HTTP client for the remote rule feeds.

Fetches the anime-relations text file and the shipped title-overrides
document. Transient failures are retried with exponential back-off; a
feed that still cannot be fetched raises RuleFeedError and the caller
keeps whatever rules it already has.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import requests

from .relations import RelationsTable
from .relations_parser import parse_relations
from .title_overrides import OverrideRuleSet

ANIME_RELATIONS_URL = (
    "https://raw.githubusercontent.com/erengy/anime-relations/refs/heads/master/anime-relations.txt"
)
TITLE_OVERRIDES_URL = (
    "https://raw.githubusercontent.com/4Lajf/MoeDownloader-assets/refs/heads/main/title-overrides.jsonc"
)


class RuleFeedError(RuntimeError):
    """A rule feed could not be fetched or decoded."""


class RuleFeedClient:
    """Client for downloading relation and override feeds."""

    def __init__(
        self,
        relations_url: str = ANIME_RELATIONS_URL,
        overrides_url: str = TITLE_OVERRIDES_URL,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30,
    ):
        self.relations_url = relations_url
        self.overrides_url = overrides_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self.headers: Dict[str, str] = {
            "Accept-Encoding": "gzip, deflate, br",
            "Accept": "text/plain, application/json",
            "Cache-Control": "no-cache",
        }
        self.logger = logging.getLogger(__name__)

    def fetch_text(self, url: str) -> str:
        """
        GET ``url`` and return the body as text.

        Args:
            url: Feed URL

        Returns:
            Response body

        Raises:
            RuleFeedError: Every attempt failed
        """
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = requests.get(url, headers=self.headers, timeout=self.timeout)
                if response.status_code != 200:
                    raise RuleFeedError(f"HTTP {response.status_code} from {url}")
                return response.text
            except (requests.RequestException, RuleFeedError) as exc:
                last_error = exc
                self.logger.error("Fetching %s failed (attempt %d/%d): %s",
                                  url, attempt + 1, self.max_retries, exc)
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay * (2**attempt))
                    continue
                raise RuleFeedError(f"Fetching {url} failed after retries: {last_error}") from last_error

        raise RuleFeedError(f"No attempts made to fetch {url}")

    def fetch_relations(self, id_field: str = "anilist") -> RelationsTable:
        """Download and parse the anime-relations feed."""
        text = self.fetch_text(self.relations_url)
        table = parse_relations(text, id_field)
        self.logger.info("Fetched %d relation rules from %s", len(table), self.relations_url)
        return table

    def fetch_overrides(self, name: str = "global") -> OverrideRuleSet:
        """Download and parse the title-overrides feed."""
        text = self.fetch_text(self.overrides_url)
        try:
            return OverrideRuleSet.from_text(text, name)
        except ValueError as exc:
            raise RuleFeedError(f"Invalid overrides document from {self.overrides_url}: {exc}") from exc
