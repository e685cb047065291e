"""Course catalog ingestion: paginated catalog API -> ``courses`` rows.

This is how Course rows come to exist for the content pipeline to
resolve by slug.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocw_pipeline.config import Settings
from ocw_pipeline.conversion.rate_limiter import SleepFunc
from ocw_pipeline.errors import CatalogFetchError, PersistenceError
from ocw_pipeline.models.catalog import CatalogCourse, CatalogPage
from ocw_pipeline.storage.repositories import CourseRepository

logger = structlog.get_logger()


def first_page_url(api_url: str, page_size: int) -> str:
    return f"{api_url}?platform=ocw&limit={page_size}"


def upgrade_to_https(url: str | None) -> str | None:
    """Pagination links come back as plain http; follow them over https."""
    if url is None:
        return None
    return url.replace("http://", "https://", 1)


def batched(rows: Sequence[dict], size: int) -> list[Sequence[dict]]:
    return [rows[i : i + size] for i in range(0, len(rows), size)]


class CatalogIngestor:
    """Fetch every catalog page and upsert the courses in batches.

    Each page is retried up to ``max_attempts`` times with a fixed
    backoff; exhausting the attempts aborts the run.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        api_url: str,
        page_size: int = 100,
        batch_size: int = 200,
        page_delay: float = 5.0,
        max_attempts: int = 3,
        retry_backoff: float = 10.0,
        sleep: SleepFunc | None = None,
    ) -> None:
        self._client = client
        self._session_factory = session_factory
        self._api_url = api_url
        self._page_size = page_size
        self._batch_size = batch_size
        self._page_delay = page_delay
        self._max_attempts = max_attempts
        self._retry_backoff = retry_backoff
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> CatalogIngestor:
        return cls(
            client,
            session_factory,
            api_url=settings.catalog_api_url,
            page_size=settings.catalog_page_size,
            batch_size=settings.catalog_upsert_batch_size,
            page_delay=settings.catalog_page_delay_seconds,
            max_attempts=settings.catalog_max_attempts,
            retry_backoff=settings.catalog_retry_backoff_seconds,
        )

    async def run(self) -> int:
        """Fetch and upsert the whole catalog. Returns the course count."""
        courses = await self.fetch_all()
        await self.upsert(courses)
        logger.info("catalog_ingestion_done", course_count=len(courses))
        return len(courses)

    async def fetch_all(self) -> list[CatalogCourse]:
        courses: list[CatalogCourse] = []
        url: str | None = first_page_url(self._api_url, self._page_size)
        page_number = 1

        while url:
            page = await self.fetch_page(url, page_number)
            courses.extend(page.results)
            logger.info(
                "catalog_page_fetched",
                page=page_number,
                page_courses=len(page.results),
                total=len(courses),
                expected=page.count,
            )
            url = upgrade_to_https(page.next)
            if url:
                await self._sleep(self._page_delay)
            page_number += 1

        return courses

    async def fetch_page(self, url: str, page_number: int) -> CatalogPage:
        """Fetch one page with bounded retry.

        Raises:
            CatalogFetchError: After ``max_attempts`` failed attempts.
        """
        last_error = ""
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self._client.get(url)
                response.raise_for_status()
                return CatalogPage.model_validate_json(response.content)
            except (httpx.HTTPError, ValidationError) as exc:
                last_error = str(exc)
                logger.warning(
                    "catalog_page_failed",
                    page=page_number,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error=last_error,
                )
                if attempt < self._max_attempts:
                    await self._sleep(self._retry_backoff)

        raise CatalogFetchError(
            f"Catalog page {page_number} failed after "
            f"{self._max_attempts} attempts: {last_error}"
        )

    async def upsert(self, courses: Sequence[CatalogCourse]) -> None:
        """Upsert courses in batches, one commit per batch.

        Raises:
            PersistenceError: If a batch fails to write.
        """
        rows = [course.to_row() for course in courses]
        for number, batch in enumerate(batched(rows, self._batch_size), start=1):
            try:
                async with self._session_factory() as session:
                    await CourseRepository(session).upsert_many(batch)
                    await session.commit()
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"Catalog upsert failed at batch {number}: {exc}"
                ) from exc
            logger.info("catalog_batch_upserted", batch=number, rows=len(batch))
