"""Lecture discovery: cache file, live video gallery, or zip HTML fallback."""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx
import structlog
from bs4 import BeautifulSoup
from pydantic import TypeAdapter, ValidationError

from ocw_pipeline.models.content import LectureCandidate

logger = structlog.get_logger()

SleepFunc = Callable[[float], Awaitable[None]]

_YOUTUBE_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]{11})"),
)
_THUMBNAIL_RE = re.compile(r"img\.youtube\.com/vi/([a-zA-Z0-9_-]{11})")
_ARCHIVE_URL_RE = re.compile(r"https?://archive\.org/download/[^\s\"'<>]+\.mp4")
_LECTURE_NUMBER_RE = re.compile(r"lecture\s+(\d+)", re.IGNORECASE)

_LECTURE_LIST = TypeAdapter(list[LectureCandidate])


def extract_youtube_id(url: str) -> str | None:
    """Video id from embed, watch or short-link URLs."""
    for pattern in _YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_archive_url(html: str) -> str | None:
    """First archive.org ``.mp4`` download URL embedded in a page."""
    match = _ARCHIVE_URL_RE.search(html)
    return match.group(0) if match else None


def extract_lecture_number(title: str) -> int | None:
    """Parse ``N`` out of titles like "Lecture 12: Dynamic Programming"."""
    match = _LECTURE_NUMBER_RE.search(title)
    return int(match.group(1)) if match else None


def parse_gallery(html: str) -> list[LectureCandidate]:
    """Lectures from a video gallery page.

    Each lecture is an anchor holding a thumbnail ``img`` and an ``h5``
    title. Entries are deduplicated by the slug taken from the href.
    """
    soup = BeautifulSoup(html, "html.parser")
    lectures: list[LectureCandidate] = []
    seen_slugs: set[str] = set()

    for anchor in soup.find_all("a"):
        heading = anchor.find("h5")
        if heading is None:
            continue
        title = heading.get_text(strip=True)
        if not title:
            continue

        img = anchor.find("img")
        img_src = str(img.get("src", "")) if img is not None else ""
        thumb = _THUMBNAIL_RE.search(img_src)

        href = str(anchor.get("href", ""))
        link_slug = href.rstrip("/").split("/")[-1] if href else ""
        slug = link_slug or f"lecture-{len(lectures) + 1}"
        if slug in seen_slugs:
            continue
        seen_slugs.add(slug)

        lectures.append(
            LectureCandidate(
                title=title,
                slug=slug,
                youtube_id=thumb.group(1) if thumb else None,
                lecture_number=extract_lecture_number(title),
            )
        )
    return lectures


def scan_archive_html(content_root: Path) -> list[LectureCandidate]:
    """Lectures from video iframes embedded in the archive's HTML files.

    Deduplicated by video id. Files are visited in sorted path order.
    """
    lectures: list[LectureCandidate] = []
    seen_ids: set[str] = set()

    for html_file in sorted(content_root.rglob("*.html")):
        html = html_file.read_text(encoding="utf-8", errors="replace")
        soup = BeautifulSoup(html, "html.parser")
        for iframe in soup.find_all("iframe"):
            video_id = extract_youtube_id(str(iframe.get("src", "")))
            if video_id is None or video_id in seen_ids:
                continue
            seen_ids.add(video_id)
            title = _first_heading(soup) or f"Video {len(lectures) + 1}"
            lectures.append(
                LectureCandidate(
                    title=title,
                    slug=html_file.stem,
                    youtube_id=video_id,
                    archive_url=extract_archive_url(html),
                    lecture_number=extract_lecture_number(title),
                )
            )
    return lectures


def _first_heading(soup: BeautifulSoup) -> str:
    for tag in ("h1", "h2"):
        heading = soup.find(tag)
        if heading is not None:
            text = heading.get_text(strip=True)
            if text:
                return text
    return ""


def load_lecture_cache(cache_path: Path) -> list[LectureCandidate] | None:
    """Cached lecture list, or None if the cache is absent or unreadable."""
    if not cache_path.exists():
        return None
    try:
        return _LECTURE_LIST.validate_json(cache_path.read_bytes())
    except ValidationError:
        logger.warning("lecture_cache_invalid", cache_path=str(cache_path))
        return None


def save_lecture_cache(cache_path: Path, lectures: list[LectureCandidate]) -> None:
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [lec.model_dump(by_alias=True) for lec in lectures]
    cache_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class LectureDiscoverer:
    """Produce the ordered lecture list for a course.

    Sources, in order: the per-course cache file, the live lecture
    gallery, and finally the archive's own HTML pages. Archival video
    URLs are looked up one page at a time with a fixed delay between
    requests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        gallery_path: str = "video_galleries/lecture-videos/",
        request_delay: float = 0.5,
        sleep: SleepFunc | None = None,
    ) -> None:
        self._client = client
        self._gallery_path = gallery_path
        self._request_delay = request_delay
        self._sleep = sleep or asyncio.sleep

    async def discover(
        self,
        course_url: str,
        content_root: Path,
        cache_path: Path,
    ) -> list[LectureCandidate]:
        """Return lectures for the course, writing the cache on success."""
        log = logger.bind(cache_path=str(cache_path))

        cached = load_lecture_cache(cache_path)
        if cached:
            log.info("lecture_cache_hit", lecture_count=len(cached))
            return cached

        lectures = await self._from_gallery(course_url)
        if lectures is None:
            lectures = scan_archive_html(content_root)
            log.info("lectures_from_archive_html", lecture_count=len(lectures))

        if lectures:
            save_lecture_cache(cache_path, lectures)
            log.info("lecture_cache_written", lecture_count=len(lectures))
        return lectures

    async def _from_gallery(self, course_url: str) -> list[LectureCandidate] | None:
        """Lectures from the live gallery, or None if the page is unavailable."""
        gallery_url = f"{course_url}{self._gallery_path}"
        try:
            response = await self._client.get(gallery_url)
        except httpx.HTTPError as exc:
            logger.warning(
                "lecture_gallery_unavailable", url=gallery_url, error=str(exc)
            )
            return None
        if not response.is_success:
            logger.info(
                "lecture_gallery_unavailable",
                url=gallery_url,
                status_code=response.status_code,
            )
            return None

        lectures = parse_gallery(response.text)
        logger.info("lectures_from_gallery", lecture_count=len(lectures))
        await self._attach_archive_urls(course_url, lectures)
        return lectures

    async def _attach_archive_urls(
        self,
        course_url: str,
        lectures: list[LectureCandidate],
    ) -> None:
        """Fill ``archive_url`` from each lecture's resource page.

        Failures leave the field unset; a fixed delay follows every request.
        """
        for lecture in lectures:
            if not lecture.youtube_id:
                continue
            resource_url = f"{course_url}resources/{lecture.slug}/"
            try:
                response = await self._client.get(resource_url)
                if response.is_success:
                    lecture.archive_url = extract_archive_url(response.text)
                else:
                    logger.debug(
                        "archive_url_lookup_failed",
                        url=resource_url,
                        status_code=response.status_code,
                    )
            except httpx.HTTPError as exc:
                logger.debug(
                    "archive_url_lookup_failed", url=resource_url, error=str(exc)
                )
            await self._sleep(self._request_delay)
