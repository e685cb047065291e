"""Archive acquisition: course lookup, zip link discovery, download and extract."""

from __future__ import annotations

import asyncio
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup

from ocw_pipeline.errors import (
    ArchiveFetchError,
    CourseNotFoundError,
    ZipLinkNotFoundError,
)
from ocw_pipeline.storage.orm import Course
from ocw_pipeline.storage.repositories import CourseRepository

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class AcquiredArchive:
    """Location of an extracted course archive in scratch storage."""

    zip_url: str
    zip_path: Path
    extract_dir: Path
    content_root: Path


def normalize_course_url(url: str) -> str:
    """Course URLs are used as bases for relative paths; force a trailing slash."""
    return url if url.endswith("/") else url + "/"


async def resolve_course(repo: CourseRepository, slug: str) -> Course:
    """Find the Course whose URL contains ``slug``.

    Multiple matches pick the lowest id and log a warning.

    Raises:
        CourseNotFoundError: If no course matches.
    """
    matches = await repo.find_by_slug(slug)
    if not matches:
        raise CourseNotFoundError(slug)
    if len(matches) > 1:
        logger.warning(
            "course_slug_ambiguous",
            slug=slug,
            match_count=len(matches),
            chosen_id=matches[0].id,
        )
    course = matches[0]
    logger.info("course_resolved", course_id=course.id, title=course.title)
    return course


def find_zip_link(html: str, base_url: str) -> str | None:
    """Absolute URL of the first ``.zip`` anchor on the download page.

    The full-course archive is listed first on the site's download page.
    """
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if href.lower().endswith(".zip"):
            return href if href.startswith("http") else urljoin(base_url, href)
    return None


def extract_archive(zip_path: Path, extract_dir: Path) -> Path:
    """Extract ``zip_path`` and return the content root.

    A single top-level directory becomes the content root; otherwise the
    extraction directory itself is used.

    Raises:
        ArchiveFetchError: If the file is not a valid zip archive.
    """
    if extract_dir.exists():
        shutil.rmtree(extract_dir)
    extract_dir.mkdir(parents=True)
    try:
        with zipfile.ZipFile(zip_path) as archive:
            archive.extractall(extract_dir)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveFetchError(f"Failed to extract {zip_path.name}: {exc}") from exc

    entries = list(extract_dir.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return extract_dir


class ArchiveAcquirer:
    """Fetch a course's downloadable zip and unpack it into scratch storage.

    Non-success statuses and transport errors are fatal; no retries.
    """

    def __init__(self, client: httpx.AsyncClient, *, scratch_dir: Path) -> None:
        self._client = client
        self._scratch_dir = scratch_dir

    async def acquire(self, course_url: str, slug: str) -> AcquiredArchive:
        """Locate, download and extract the course archive.

        Raises:
            ZipLinkNotFoundError: Download page has no zip link.
            ArchiveFetchError: Page/zip fetch or extraction failed.
        """
        base_url = normalize_course_url(course_url)
        zip_url = await self.find_zip_url(base_url)

        self._scratch_dir.mkdir(parents=True, exist_ok=True)
        zip_path = self._scratch_dir / f"{slug}.zip"
        await self.download(zip_url, zip_path)

        extract_dir = self._scratch_dir / slug
        loop = asyncio.get_running_loop()
        content_root = await loop.run_in_executor(
            None, extract_archive, zip_path, extract_dir
        )
        logger.info("archive_extracted", content_root=str(content_root))

        return AcquiredArchive(
            zip_url=zip_url,
            zip_path=zip_path,
            extract_dir=extract_dir,
            content_root=content_root,
        )

    async def find_zip_url(self, base_url: str) -> str:
        """Fetch ``<course>/download`` and return the first zip link."""
        page_url = f"{base_url}download"
        logger.info("download_page_fetch", url=page_url)
        try:
            response = await self._client.get(page_url)
        except httpx.HTTPError as exc:
            raise ArchiveFetchError(f"Failed to fetch {page_url}: {exc}") from exc
        if not response.is_success:
            raise ArchiveFetchError(
                f"Failed to fetch download page {page_url}: {response.status_code}"
            )

        zip_url = find_zip_link(response.text, base_url)
        if zip_url is None:
            raise ZipLinkNotFoundError(page_url)
        logger.info("zip_link_found", zip_url=zip_url)
        return zip_url

    async def download(self, zip_url: str, dest: Path) -> int:
        """Stream the zip to ``dest``. Returns the number of bytes written."""
        written = 0
        try:
            async with self._client.stream("GET", zip_url) as response:
                if not response.is_success:
                    raise ArchiveFetchError(
                        f"Failed to download zip {zip_url}: {response.status_code}"
                    )
                with dest.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as exc:
            raise ArchiveFetchError(f"Failed to download zip {zip_url}: {exc}") from exc

        logger.info(
            "archive_downloaded",
            zip_url=zip_url,
            size_mb=round(written / 1024 / 1024, 1),
        )
        return written
