"""Perplexity Sonar research provider over the chat-completions endpoint."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from pydantic import ValidationError

from editorial.content.models import ResearchResult
from editorial.errors import ProviderError
from editorial.prompts import RESEARCH_SYSTEM_PROMPT, research_prompt
from editorial.providers.base import ResearchProvider

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai"


class PerplexityResearchProvider(ResearchProvider):
    """Research provider backed by Perplexity's web-search models.

    ``search_domains`` follows Perplexity's filter syntax: a bare domain
    restricts the search to it, a ``-`` prefix excludes it.
    """

    name = "perplexity"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "sonar-deep-research",
        temperature: float = 0.2,
        max_tokens: int = 7000,
        context_size: str | None = "high",
        search_domains: list[str] | None = None,
        timeout: int = 600,
        api_url: str = PERPLEXITY_API_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.context_size = context_size
        self.search_domains = list(search_domains or [])
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def _payload(self, title: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
                {"role": "user", "content": research_prompt(title)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }
        if self.search_domains:
            payload["search_domain_filter"] = self.search_domains
        if self.context_size:
            payload["web_search_options"] = {"search_context_size": self.context_size}
        return payload

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        req = urllib.request.Request(
            f"{self.api_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            try:
                detail = json.loads(exc.read().decode("utf-8")).get("error", {}).get("message")
            except (ValueError, OSError, AttributeError):
                detail = None
            raise ProviderError(
                f"Perplexity API error: {detail or exc.reason}",
                status_code=exc.code,
                provider=self.name,
            ) from exc
        except urllib.error.URLError as exc:
            raise ProviderError(
                f"No response received from Perplexity API: {exc.reason}",
                provider=self.name,
            ) from exc
        except (TimeoutError, ValueError) as exc:
            raise ProviderError(f"Perplexity API error: {exc}", provider=self.name) from exc

    def research(self, title: str) -> ResearchResult:
        logger.info("Researching %r with %s", title, self.model)
        data = self._post(self._payload(title))

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                "Invalid response format from Perplexity API", provider=self.name
            ) from exc

        try:
            result = ResearchResult(
                content=content or "",
                citations=data.get("citations"),
                model=data.get("model"),
                usage=data.get("usage") or {},
            )
        except ValidationError as exc:
            raise ProviderError(
                f"Perplexity returned unusable research: {exc.errors()[0]['msg']}",
                provider=self.name,
            ) from exc

        usage = result.usage
        logger.info(
            "Research completed: model=%s prompt_tokens=%s completion_tokens=%s citations=%d",
            result.model,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
            len(result.citations),
        )
        return result
