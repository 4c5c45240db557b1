"""Scheduled blog post generation. Triggered externally; no scheduler lives here."""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from core import config
from core.errors import RetryExhausted
from core.retry import call_with_retry
from flows.blog_post import generate_blog_post

log = logging.getLogger("vmfit.jobs")


async def generate_post_job(aggregator, generator, store, recorder,
                            max_attempts: Optional[int] = None,
                            delay: Optional[float] = None) -> Dict[str, str]:
    """Generate one new post that avoids recent titles and store it.

    The whole attempt (titles, generation, insert) is retried with a fixed delay.
    """
    max_attempts = config.JOB_MAX_ATTEMPTS if max_attempts is None else max_attempts
    delay = config.JOB_RETRY_DELAY_SECONDS if delay is None else delay
    attempts = 0

    async def attempt() -> Dict[str, str]:
        nonlocal attempts
        attempts += 1
        await recorder.record("Cron Job Started: Generate Blog Post", {"attempt": attempts})

        recent = await aggregator.fetch_list(config.RECENT_TITLES_LIMIT)
        existing_titles = [item.title for item in recent]
        log.info("Existing titles sent to the model: %s", ", ".join(existing_titles))

        draft = await generate_blog_post(generator, existing_titles, recorder)
        log.info("Model generated a new post: %r", draft.title)

        await store.insert_post({
            "title": draft.title,
            "slug": draft.slug,
            "excerpt": draft.excerpt,
            "content": draft.content,
            "imageUrl": draft.image_url,
            "aiHint": draft.ai_hint,
            "createdAt": datetime.now(timezone.utc),
        })
        return {"title": draft.title, "slug": draft.slug}

    try:
        result = await call_with_retry(
            attempt,
            name="generate_post_job",
            max_attempts=max_attempts,
            delay=delay,
            recorder=recorder,
        )
    except RetryExhausted as e:
        await recorder.record(
            "Cron Job Failed After Max Retries", {"error": str(e.last_error)}, "error"
        )
        raise

    await recorder.record(
        "Cron Job Success: Blog Post Generated and Saved",
        {"title": result["title"], "slug": result["slug"], "attempts": attempts},
    )
    return result
