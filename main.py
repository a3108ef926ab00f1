import argparse
import asyncio
import inspect
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from aggregator.adapters.registry import available_sources
from aggregator.adapters.universal import scrape_page, universal_posting
from aggregator.api.client import BackendClient
from aggregator.classification.scoring import ScoringClient
from aggregator.config.settings import settings
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import AggregatorError
from aggregator.core.models import Category, ScrapeRequest
from aggregator.core.orchestrator import Orchestrator
from aggregator.core.service import ScrapeService
from aggregator.store.export import to_csv
from aggregator.store.persistence import JsonFileKeyValueStore
from aggregator.store.repository import JobRepository

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

CRITERIA_KEY = "criteria"
MAX_PAGES = 50


def _category(value: str) -> Category:
    for category in Category:
        if category.value.lower() == value.lower():
            return category
    raise argparse.ArgumentTypeError(
        f"unknown category {value!r}, expected one of {[c.value for c in Category]}"
    )


def _page_count(value: str) -> int:
    try:
        pages = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid page count {value!r}")
    if not 1 <= pages <= MAX_PAGES:
        raise argparse.ArgumentTypeError(f"page count must be between 1 and {MAX_PAGES}")
    return pages


def _universal_context(keywords: str) -> str:
    return f"Critères recherchés: {keywords}" if keywords else "Analyse standard"


def _log_task_error(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Stop request failed: {error}")


def _request_stop(service: ScrapeService, pending: set) -> None:
    task = asyncio.ensure_future(service.stop())
    pending.add(task)
    task.add_done_callback(pending.discard)
    task.add_done_callback(_log_task_error)


def _load_criteria(backend: JsonFileKeyValueStore, override: str) -> str:
    if override:
        return override
    stored = backend.get(CRITERIA_KEY) or {}
    return stored.get("text", "")


def _print_progress(current: int, total: int) -> None:
    print(f"  classifying {current}/{total}", end="\r", flush=True)


async def cmd_scrape(args) -> int:
    backend = JsonFileKeyValueStore()
    repository = JobRepository(backend)
    criteria = _load_criteria(backend, args.criteria)
    if not criteria:
        logger.warning("No criteria configured; run `criteria <cv>` or pass --criteria.")

    scraper = BackendClient() if args.remote else Orchestrator()
    service = ScrapeService(scraper, repository)

    loop = asyncio.get_running_loop()
    stop_tasks: set = set()
    try:
        loop.add_signal_handler(signal.SIGINT, _request_stop, service, stop_tasks)
    except NotImplementedError:
        logger.debug("Signal handlers unavailable on this platform; Ctrl-C aborts.")

    if args.url:
        if args.remote:
            page = await scraper.universal_scrape(args.url)
        else:
            page = await scrape_page(args.url)
        context = _universal_context(args.keywords)
        postings = [universal_posting(args.url, page["title"], page["content"], context)]
        service.token = CancellationToken()
        outcome = await service.classify_and_merge(
            postings, criteria, service.token, _print_progress
        )
    else:
        request = ScrapeRequest(
            source=args.source,
            keywords=args.keywords,
            location=args.location,
            max_pages=args.max_pages,
            radius=args.radius,
            contract_type=args.contract_type,
            published_date=args.published_date,
            min_salary=args.min_salary,
        )
        outcome = await service.scrape_and_classify(request, criteria, on_progress=_print_progress)

    print()
    print(outcome.message)
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    from aggregator.api.server import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def cmd_board(args) -> int:
    store = JobRepository().store
    for category, count in store.counts().items():
        print(f"== {category.value} ({count})")
        for posting in store[category]:
            print(f"  [{posting.score:>3}] {posting.id}  {posting.title} - {posting.company}")
    return 0


def cmd_move(args) -> int:
    JobRepository().move(args.id, args.source, args.target)
    print(f"Moved {args.id}: {args.source.value} -> {args.target.value}")
    return 0


def cmd_delete(args) -> int:
    JobRepository().delete(args.id, args.category)
    print(f"Deleted {args.id} from {args.category.value}")
    return 0


def cmd_clear(args) -> int:
    if not args.yes:
        print("Refusing to clear the board without --yes.")
        return 1
    JobRepository().clear()
    print("Board cleared.")
    return 0


def cmd_export(args) -> int:
    content = to_csv(JobRepository().store)
    Path(args.output).write_text(content, encoding="utf-8")
    print(f"Exported to {args.output}")
    return 0


async def cmd_criteria(args) -> int:
    text = await ScoringClient().extract_criteria(Path(args.cv), args.mime_type)
    JsonFileKeyValueStore().set(CRITERIA_KEY, {"text": text})
    print(text)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multi-source job aggregator")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape, classify and merge into the board")
    scrape.add_argument("--source", default="full", choices=available_sources())
    scrape.add_argument("--keywords", default="")
    scrape.add_argument("--location", default="")
    scrape.add_argument("--max-pages", type=_page_count, default=settings.DEFAULT_MAX_PAGES)
    scrape.add_argument("--radius", default="any")
    scrape.add_argument("--contract-type", default="any")
    scrape.add_argument("--published-date", default="any",
                        choices=["any", "24h", "3d", "7d", "14d", "30d"])
    scrape.add_argument("--min-salary", default=None)
    scrape.add_argument("--criteria", default="", help="Override the stored criteria text")
    scrape.add_argument("--url", default=None, help="Classify a single arbitrary page instead")
    scrape.add_argument("--remote", action="store_true", help="Use the HTTP backend at BACKEND_URL")
    scrape.set_defaults(func=cmd_scrape)

    serve = sub.add_parser("serve", help="Run the HTTP control surface")
    serve.add_argument("--host", default=settings.HOST)
    serve.add_argument("--port", type=int, default=settings.PORT)
    serve.set_defaults(func=cmd_serve)

    sub.add_parser("board", help="Show the board").set_defaults(func=cmd_board)

    move = sub.add_parser("move", help="Move a posting between columns")
    move.add_argument("id")
    move.add_argument("source", type=_category)
    move.add_argument("target", type=_category)
    move.set_defaults(func=cmd_move)

    delete = sub.add_parser("delete", help="Delete a posting")
    delete.add_argument("id")
    delete.add_argument("category", type=_category)
    delete.set_defaults(func=cmd_delete)

    clear = sub.add_parser("clear", help="Empty the whole board")
    clear.add_argument("--yes", action="store_true")
    clear.set_defaults(func=cmd_clear)

    export = sub.add_parser("export", help="Export the board as CSV")
    export.add_argument("--output", default="jobs.csv")
    export.set_defaults(func=cmd_export)

    criteria = sub.add_parser("criteria", help="Extract criteria from a CV")
    criteria.add_argument("cv")
    criteria.add_argument("--mime-type", default="application/pdf")
    criteria.set_defaults(func=cmd_criteria)

    return parser


def main(argv=None) -> int:
    """
    Main entry point.
    """
    args = build_parser().parse_args(argv)
    try:
        if inspect.iscoroutinefunction(args.func):
            return asyncio.run(args.func(args))
        return args.func(args)
    except KeyError as e:
        logger.error(f"Not found: {e}")
        return 1
    except AggregatorError as e:
        logger.error(str(e))
        return 1
    except ValidationError as e:
        logger.error(f"Invalid request: {e}")
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
