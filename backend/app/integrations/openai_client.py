import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from app.config import Settings
from app.integrations.exceptions import PromptProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert travel planner. Reply with a single JSON object only."


class OpenAITextProvider:
    """Generative-text provider backed by OpenAI chat completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        timeout: float = 60.0,
        max_retries: int = 0,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        self.temperature = temperature
        if client is not None:
            self.client = client
        elif api_key:
            self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        else:
            self.client = None
            logger.warning("OPENAI_API_KEY not configured; itinerary generation disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAITextProvider":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            timeout=settings.openai_timeout,
            max_retries=settings.openai_max_retries,
        )

    def _create(self, prompt: str, response_format=None):
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
        }
        if response_format:
            kwargs["response_format"] = response_format
        return self.client.chat.completions.create(**kwargs)

    def complete(self, prompt: str) -> str:
        """Send one prompt and return the raw text of the first choice."""
        if self.client is None:
            raise PromptProviderError("Generative-text provider is not configured (OPENAI_API_KEY missing)")

        logger.info("Requesting itinerary from %s (%d prompt chars)", self.model, len(prompt))
        try:
            try:
                resp = self._create(prompt, response_format={"type": "json_object"})
            except TypeError:
                resp = self._create(prompt)
        except OpenAIError as e:
            logger.error(f"OpenAI call failed: {e}")
            raise PromptProviderError(f"Generative-text provider call failed: {e}") from e

        if not resp.choices:
            raise PromptProviderError("Generative-text provider returned no choices")
        content = resp.choices[0].message.content
        if not content:
            raise PromptProviderError("Generative-text provider returned an empty response")
        return content
