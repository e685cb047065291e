"""Command-line entry point.

Usage:
    ocw-pipeline ingest-courses
    ocw-pipeline download-course 6-006-introduction-to-algorithms-spring-2020
    ocw-pipeline parse-problems 6-006-introduction-to-algorithms-spring-2020

Exit status is 0 on success, 1 when a run fails and 2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError

from ocw_pipeline.archive.acquirer import ArchiveAcquirer, resolve_course
from ocw_pipeline.archive.lectures import LectureDiscoverer
from ocw_pipeline.catalog import CatalogIngestor
from ocw_pipeline.config import Settings, get_settings
from ocw_pipeline.conversion.llamaparse import DocumentConverter
from ocw_pipeline.conversion.rate_limiter import SlidingWindowRateLimiter
from ocw_pipeline.errors import PipelineError
from ocw_pipeline.llm.factory import create_model_router
from ocw_pipeline.llm.router import AllModelsFailedError, ModelRouter
from ocw_pipeline.logging_config import configure_logging
from ocw_pipeline.ordering.factory import select_ordering_strategy
from ocw_pipeline.pipeline import CourseContentPipeline
from ocw_pipeline.problems.extractor import EXTRACTION_ACTION, ProblemExtractor
from ocw_pipeline.problems.pipeline import PdfFetcher, ProblemExtractionPipeline
from ocw_pipeline.storage.database import create_engine, create_session_factory
from ocw_pipeline.storage.repositories import CourseRepository

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1

CommandFunc = Callable[[argparse.Namespace, Settings], Awaitable[int]]


def build_router(settings: Settings) -> ModelRouter | None:
    """ModelRouter, or None when the model registry file is missing."""
    try:
        return create_model_router(settings)
    except FileNotFoundError as exc:
        logger.warning("model_registry_missing", error=str(exc))
        return None


def archive_client() -> httpx.AsyncClient:
    # The archive host gets no client-side timeout; zips can be large.
    return httpx.AsyncClient(timeout=None, follow_redirects=True)


async def download_course(args: argparse.Namespace, settings: Settings) -> int:
    """Stages 1-5 for one course."""
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    try:
        async with archive_client() as client:
            pipeline = CourseContentPipeline(
                session_factory,
                acquirer=ArchiveAcquirer(client, scratch_dir=settings.scratch_dir),
                discoverer=LectureDiscoverer(
                    client,
                    gallery_path=settings.lecture_gallery_path,
                    request_delay=settings.archival_lookup_delay_seconds,
                ),
                ordering=select_ordering_strategy(build_router(settings)),
                settings=settings,
            )
            summary = await pipeline.run(args.slug)
    finally:
        await engine.dispose()

    print(f"Course:    {summary.course_title} (id: {summary.course_id})")
    print(f"Lectures:  {summary.lecture_count}")
    print(f"PDFs:      {summary.pdf_count}")
    print(f"Sections:  {summary.section_count}")
    print(f"Resources: {summary.resource_count}")
    print(f"Ordering:  {summary.ordering_strategy}")
    return EXIT_OK


async def parse_problems(args: argparse.Namespace, settings: Settings) -> int:
    """Problem extraction for every problem group of one course."""
    router = build_router(settings)
    if router is None or not router.is_available(EXTRACTION_ACTION):
        print("No LLM provider configured for problem extraction.", file=sys.stderr)
        return EXIT_FAILURE
    if settings.llama_cloud_api_key is None:
        print("LLAMA_CLOUD_API_KEY is not set.", file=sys.stderr)
        return EXIT_FAILURE

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    limiter = SlidingWindowRateLimiter(
        settings.conversion_rate_limit,
        settings.conversion_rate_window_seconds,
    )
    try:
        async with session_factory() as session:
            course = await resolve_course(CourseRepository(session), args.slug)

        async with (
            httpx.AsyncClient(
                timeout=settings.conversion_request_timeout_seconds
            ) as conversion_client,
            httpx.AsyncClient(follow_redirects=True) as pdf_client,
        ):
            pipeline = ProblemExtractionPipeline(
                session_factory,
                fetcher=PdfFetcher(
                    pdf_client,
                    content_root=settings.content_root,
                    public_path_prefix=settings.public_path_prefix,
                    pdf_base_url=settings.pdf_base_url,
                ),
                converter=DocumentConverter.from_settings(
                    settings, conversion_client, limiter
                ),
                extractor=ProblemExtractor(router),
            )
            groups = await pipeline.load_groups(course.id)
            if not groups:
                print("No problem sets, solutions, or exams found for this course.")
                return EXIT_OK
            summary = await pipeline.run(course)
    finally:
        await engine.dispose()

    print(f"Course:   {course.title} (id: {course.id})")
    print(
        f"Groups:   {summary.groups_processed} processed, "
        f"{summary.groups_skipped} skipped"
    )
    print(f"Problems: {summary.problems_written}")
    return EXIT_OK


async def ingest_courses(args: argparse.Namespace, settings: Settings) -> int:
    """Upsert the whole upstream course catalog."""
    engine = create_engine(settings)
    try:
        async with httpx.AsyncClient(
            timeout=settings.catalog_request_timeout_seconds
        ) as client:
            ingestor = CatalogIngestor.from_settings(
                settings, client, create_session_factory(engine)
            )
            count = await ingestor.run()
    finally:
        await engine.dispose()

    print(f"Upserted {count} courses.")
    return EXIT_OK


COMMANDS: dict[str, CommandFunc] = {
    "download-course": download_course,
    "parse-problems": parse_problems,
    "ingest-courses": ingest_courses,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocw-pipeline",
        description="Open courseware content pipeline",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # download-course
    p = sub.add_parser("download-course", help="Download and order a course's content")
    p.add_argument("slug", help="Course slug, e.g. 18-06-linear-algebra-spring-2010")

    # parse-problems
    p = sub.add_parser("parse-problems", help="Extract problems from problem-set PDFs")
    p.add_argument("slug", help="Course slug")

    # ingest-courses
    sub.add_parser("ingest-courses", help="Upsert the upstream course catalog")

    return parser


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch to the command handler, mapping failures to exit status 1."""
    try:
        return await COMMANDS[args.command](args, settings)
    except (PipelineError, AllModelsFailedError, SQLAlchemyError) as exc:
        logger.error("run_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging and run the command."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.environment, settings.log_level)
    structlog.contextvars.clear_contextvars()
    if getattr(args, "slug", None):
        structlog.contextvars.bind_contextvars(course_slug=args.slug)
    return asyncio.run(run_command(args, settings))


if __name__ == "__main__":
    sys.exit(main())
