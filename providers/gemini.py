import logging
from typing import Optional, Type

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel

from core.errors import RateLimited
from providers.base import TextGenerator

log = logging.getLogger("vmfit.provider.gemini")


class GeminiGenerator(TextGenerator):
    name = "gemini"

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash",
                 client: Optional[genai.Client] = None):
        self.api_key = api_key
        self.model = model
        self._client = client

    def _ensure_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def complete(self, prompt: str, output_schema: Type[BaseModel],
                       system: Optional[str] = None) -> Optional[str]:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=output_schema,
            system_instruction=system,
        )
        log.debug("Gemini call model=%s schema=%s prompt_len=%d",
                  self.model, output_schema.__name__, len(prompt))
        try:
            response = await self._ensure_client().aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            if e.code == 429:
                raise RateLimited(f"Gemini rate limit: {e.message or e}") from e
            raise

        text = getattr(response, "text", None)
        if not text:
            candidates = getattr(response, "candidates", None) or []
            reason = getattr(candidates[0], "finish_reason", None) if candidates else None
            log.warning("Gemini returned no text (finish_reason=%s).", reason)
            return None
        return text
