"""Claude draft provider via the Anthropic Messages API."""

from __future__ import annotations

import logging
from typing import Any

import anthropic
from pydantic import ValidationError

from editorial.content.models import DraftResult
from editorial.errors import ProviderError
from editorial.prompts import draft_system_prompt, draft_user_prompt
from editorial.providers.base import DraftProvider

logger = logging.getLogger(__name__)


class ClaudeDraftProvider(DraftProvider):
    """Draft provider that writes an article from a research brief."""

    name = "claude"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "claude-sonnet-4-6",
        temperature: float = 0.7,
        max_tokens: int = 8192,
        timeout: int = 600,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or anthropic.Anthropic(api_key=api_key, timeout=timeout)

    def draft(self, title: str, research: str) -> DraftResult:
        logger.info("Drafting %r with %s", title, self.model)
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=draft_system_prompt(title),
                messages=[{"role": "user", "content": draft_user_prompt(title, research)}],
            )
        except anthropic.APIStatusError as exc:
            raise ProviderError(
                f"Claude API error: {exc.message}",
                status_code=exc.status_code,
                provider=self.name,
            ) from exc
        except anthropic.APIError as exc:
            raise ProviderError(f"Claude API error: {exc}", provider=self.name) from exc

        text_parts: list[str] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
        content = "".join(text_parts).strip()
        if not content:
            raise ProviderError(
                f"Claude returned an empty draft for {title!r}", provider=self.name
            )

        usage = getattr(response, "usage", None)
        usage_dict = {
            "input_tokens": getattr(usage, "input_tokens", None),
            "output_tokens": getattr(usage, "output_tokens", None),
        }
        try:
            result = DraftResult(content=content, model=response.model, usage=usage_dict)
        except ValidationError as exc:
            raise ProviderError(
                f"Claude returned an unusable draft: {exc.errors()[0]['msg']}",
                provider=self.name,
            ) from exc

        logger.info(
            "Draft completed: model=%s input_tokens=%s output_tokens=%s",
            result.model,
            usage_dict["input_tokens"],
            usage_dict["output_tokens"],
        )
        return result
