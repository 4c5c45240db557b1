"""Structured generation: prompt template + pydantic schemas + mandatory validation."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel

from core import config
from core.errors import EmptyResponse, RateLimited, SchemaMismatch, ValidationError
from core.retry import call_with_retry

log = logging.getLogger("vmfit.generation")

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class StructuredPrompt:
    name: str
    template: str  # str.format placeholders named after input_model fields
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    system: Optional[str] = None

    def render(self, values: Dict[str, Any]) -> str:
        try:
            validated = self.input_model.model_validate(values)
        except pydantic.ValidationError as e:
            raise ValidationError(f"{self.name}: invalid input: {e}") from e
        return self.template.format(**validated.model_dump())


def is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, RateLimited)


async def generate_structured(generator, prompt: StructuredPrompt, values: Dict[str, Any]):
    rendered = prompt.render(values)
    raw = await generator.complete(rendered, prompt.output_model, prompt.system)
    if raw is None or not raw.strip():
        raise EmptyResponse(f"{prompt.name}: the model returned no content")
    try:
        return prompt.output_model.model_validate_json(raw)
    except pydantic.ValidationError as e:
        log.warning("%s: output does not match %s: %s",
                    prompt.name, prompt.output_model.__name__, e.errors()[:3])
        raise SchemaMismatch(f"{prompt.name}: output does not match schema") from e


async def generate_with_retry(generator, prompt: StructuredPrompt, values: Dict[str, Any],
                              recorder=None):
    """generate_structured under the generation policy: exponential, rate limits only."""
    return await call_with_retry(
        lambda: generate_structured(generator, prompt, values),
        name=prompt.name,
        max_attempts=config.GENERATION_MAX_ATTEMPTS,
        delay=config.GENERATION_RETRY_BASE_DELAY,
        backoff=2.0,
        retry_on=is_rate_limited,
        recorder=recorder,
    )
