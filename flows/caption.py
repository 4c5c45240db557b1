from pydantic import BaseModel, Field

from core.generation import StructuredPrompt, generate_with_retry


class CaptionRequest(BaseModel):
    topic: str = Field(min_length=1)


class InstagramCaption(BaseModel):
    caption: str


CAPTION_PROMPT = StructuredPrompt(
    name="generateInstagramCaption",
    input_model=CaptionRequest,
    output_model=InstagramCaption,
    template=(
        "You are an expert social media manager, specialized in writing engaging instagram "
        "captions. Write an engaging instagram caption about the following topic:\n\n{topic}"
    ),
)


async def generate_instagram_caption(generator, topic: str, recorder=None) -> InstagramCaption:
    return await generate_with_retry(generator, CAPTION_PROMPT, {"topic": topic}, recorder)
