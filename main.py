import argparse
import asyncio
import logging
import sys
from typing import Optional

import pydantic

from core import config
from core.aggregator import ContentAggregator
from core.diagnostics import run_diagnostics
from core.errors import ProviderUnavailable, VMFitError, user_message
from core.events import EventRecorder
from core.jobs import generate_post_job
from core.monitoring import ProviderHealth
from flows.caption import generate_instagram_caption
from flows.workout import WorkoutRequest, generate_workout_plan
from providers.gemini import GeminiGenerator
from providers.mongo import MongoEventStore, MongoPostStore, connect
from providers.shopify import ShopifyStorefront

log = logging.getLogger("vmfit")


class App:
    """Explicitly wired clients for one process."""

    def __init__(self):
        # Only `diagnose` runs without MONGODB_URI; it reports the missing URI itself.
        self.store = None
        event_store = None
        if config.MONGODB_URI:
            db = connect(config.MONGODB_URI, config.MONGODB_DB_NAME, config.MONGODB_TIMEOUT_MS)
            self.store = MongoPostStore(db, config.POSTS_COLLECTION, config.TESTIMONIALS_COLLECTION)
            event_store = MongoEventStore(db, config.EVENTS_COLLECTION)
        self.recorder = EventRecorder(event_store)
        self.monitor = ProviderHealth(alert_threshold=config.FAILURE_ALERT_THRESHOLD)
        self.shopify = ShopifyStorefront(
            domain=config.SHOPIFY_STORE_DOMAIN,
            access_token=config.SHOPIFY_STOREFRONT_ACCESS_TOKEN,
            api_version=config.SHOPIFY_API_VERSION,
            blog_handle=config.SHOPIFY_BLOG_HANDLE,
            timeout=config.HTTP_TIMEOUT,
        )
        self.generator = GeminiGenerator(api_key=config.GEMINI_API_KEY, model=config.GEMINI_MODEL)
        self.aggregator = ContentAggregator(self.shopify, self.store, self.recorder, self.monitor)

    async def close(self):
        await self.shopify.close()


async def cmd_posts(app: App, args) -> None:
    for item in await app.aggregator.fetch_list(args.limit):
        print(f"{item.created_at:%Y-%m-%d}  [{item.origin.value}]  {item.slug}  {item.title}")


async def cmd_post(app: App, args) -> None:
    item = await app.aggregator.fetch_by_slug(args.slug)
    if item is None:
        print("Artículo no encontrado.")
        return
    print(item.title)
    print(f"{item.created_at:%Y-%m-%d} ({item.origin.value})\n")
    print(item.body or item.excerpt)


async def cmd_programs(app: App, args) -> None:
    programs = await app.shopify.list_programs(config.PROGRAMS_COLLECTION_HANDLE, config.PROGRAMS_MAX)
    for program in programs:
        flags = " *" if program.is_popular else ""
        print(f"{program.price:>8.2f}  {program.handle}  {program.title}{flags}")
        for feature in program.features:
            print(f"          - {feature}")


async def cmd_testimonials(app: App, args) -> None:
    if app.store is None:
        raise ProviderUnavailable("MongoDB", "MONGODB_URI is not set")
    for t in await app.store.list_testimonials():
        stars = f" ({t.rating}/5)" if t.rating is not None else ""
        print(f"{t.name}{stars}: {t.story}")


async def cmd_generate_post(app: App, args) -> None:
    result = await generate_post_job(app.aggregator, app.generator, app.store, app.recorder)
    print(f"Nuevo artículo: {result['title']} ({result['slug']})")


async def cmd_workout(app: App, args) -> None:
    request = WorkoutRequest(
        fitness_goal=args.goal,
        experience_level=args.level,
        equipment=args.equipment,
        workout_focus=args.focus,
        duration=args.duration,
        frequency=args.frequency,
    )
    plan = await generate_workout_plan(app.generator, request, app.recorder)
    print(plan.model_dump_json(indent=2))


async def cmd_caption(app: App, args) -> None:
    caption = await generate_instagram_caption(app.generator, args.topic, app.recorder)
    print(caption.caption)


async def cmd_diagnose(app: App, args) -> None:
    report = await run_diagnostics(
        mongo_uri=config.MONGODB_URI,
        store=app.store,
        shopify_domain=config.SHOPIFY_STORE_DOMAIN,
        shopify_token=config.SHOPIFY_STOREFRONT_ACCESS_TOKEN,
        shopify=app.shopify,
        service_account_key=config.FIREBASE_SERVICE_ACCOUNT_KEY,
        recorder=app.recorder,
        monitor=app.monitor,
        event_count=config.DIAGNOSTICS_EVENT_COUNT,
    )
    for check in report["checks"]:
        mark = "OK " if check.ok else "ERR"
        print(f"[{mark}] {check.name}: {check.message}")
    print("\nRecent events:")
    for ev in report["events"]:
        print(f"  {ev.timestamp:%Y-%m-%d %H:%M:%S}  {ev.level:<5}  {ev.message}")
    if not report["events"]:
        print("  (none)")
    for provider, error in report["provider_errors"].items():
        print(f"\n{provider}: {report['provider_failures'][provider]} failed fetch(es) in a row, last error: {error}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vmfit", description="Fitness hub content core.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("posts", help="List the merged blog feed.")
    p.add_argument("--limit", type=int, default=config.BLOG_LIST_LIMIT)
    p.set_defaults(func=cmd_posts)

    p = sub.add_parser("post", help="Show one post by slug.")
    p.add_argument("slug")
    p.set_defaults(func=cmd_post)

    p = sub.add_parser("programs", help="List the coaching programs on sale.")
    p.set_defaults(func=cmd_programs)

    p = sub.add_parser("testimonials", help="List client testimonials.")
    p.set_defaults(func=cmd_testimonials)

    p = sub.add_parser("generate-post", help="Run the scheduled blog post job once.")
    p.set_defaults(func=cmd_generate_post)

    p = sub.add_parser("workout", help="Generate a personalised workout plan.")
    p.add_argument("--goal", required=True)
    p.add_argument("--level", required=True)
    p.add_argument("--equipment", required=True)
    p.add_argument("--focus", required=True)
    p.add_argument("--duration", type=int, required=True)
    p.add_argument("--frequency", type=int, required=True)
    p.set_defaults(func=cmd_workout)

    p = sub.add_parser("caption", help="Generate an Instagram caption.")
    p.add_argument("topic")
    p.set_defaults(func=cmd_caption)

    p = sub.add_parser("diagnose", help="Run the operations health checks.")
    p.set_defaults(func=cmd_diagnose)
    return parser


async def run(args, app: Optional[App] = None) -> int:
    app = app or App()
    try:
        await args.func(app, args)
        return 0
    except (VMFitError, pydantic.ValidationError) as e:
        log.error("%s failed: %s", args.command, e, exc_info=True)
        print(user_message(e), file=sys.stderr)
        return 1
    except Exception as e:
        log.exception("%s failed with an unexpected error: %s", args.command, e)
        print(user_message(e), file=sys.stderr)
        return 1
    finally:
        await app.close()


def main(argv=None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    if args.command != "diagnose":
        config.validate_required_env()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
