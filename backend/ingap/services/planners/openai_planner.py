"""OpenAI chat-completions planner."""
from __future__ import annotations

import logging

import openai

from ingap.services.planners.base import GenerativePlanner, PlannerError, PlannerTimeoutError

logger = logging.getLogger(__name__)


class OpenAIPlanner(GenerativePlanner):
    name = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.4,
        timeout_seconds: float = 60.0,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._client = client or openai.AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    async def generate(self, instructions: str, prompt: str) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APITimeoutError as exc:
            raise PlannerTimeoutError("OpenAI request timed out") from exc
        except openai.OpenAIError as exc:
            raise PlannerError(f"OpenAI request failed: {exc}") from exc

        content = completion.choices[0].message.content or ""
        logger.debug("OpenAI planner returned %s characters (model=%s)", len(content), self.model)
        return content
