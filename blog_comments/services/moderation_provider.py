"""
Moderation provider client (OpenAI moderation endpoint).

One attempt per call with a bounded timeout, no retries. Every failure mode
(missing key, network error, timeout, non-2xx, unexpected body) is raised as
ProviderUnavailableError so the screener can fall back to local-only checks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List

import requests

from ..utils.errors import ProviderUnavailableError


@dataclass
class ProviderResult:
    flagged: bool
    categories: Dict[str, bool] = field(default_factory=dict)
    category_scores: Dict[str, float] = field(default_factory=dict)

    @property
    def flagged_categories(self) -> List[str]:
        return [name for name, hit in self.categories.items() if hit]


class ModerationProvider:
    """Thin wrapper around the moderation HTTP API."""

    def __init__(self, url: str, api_key: str, model: str = "omni-moderation-latest",
                 timeout: float = 8.0, session: requests.Session | None = None):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "ModerationProvider":
        return cls(
            url=settings.provider_url,
            api_key=settings.provider_key,
            model=settings.provider_model,
            timeout=settings.provider_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.url)

    def check(self, text: str) -> ProviderResult:
        if not self.is_configured:
            raise ProviderUnavailableError("Moderation API key not configured")

        try:
            r = self.session.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"input": text, "model": self.model},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except requests.Timeout as e:
            raise ProviderUnavailableError(f"Moderation API timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ProviderUnavailableError(f"Moderation API unavailable: {e}") from e
        except ValueError as e:
            raise ProviderUnavailableError("Moderation API returned invalid JSON") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results, list):
            raise ProviderUnavailableError("No moderation result")

        result = results[0]
        if not isinstance(result, dict):
            raise ProviderUnavailableError("Moderation API returned an unexpected result")

        try:
            categories = result.get("categories") or {}
            scores = result.get("category_scores") or {}
            if not isinstance(categories, dict) or not isinstance(scores, dict):
                raise TypeError("categories and category_scores must be objects")
            return ProviderResult(
                flagged=bool(result.get("flagged", False)),
                categories={str(k): bool(v) for k, v in categories.items()},
                category_scores={str(k): float(v) for k, v in scores.items()},
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(f"Moderation API returned an unexpected result: {e}") from e
