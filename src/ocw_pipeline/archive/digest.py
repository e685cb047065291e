"""Bounded plain-text digest of an archive's HTML pages.

The digest is context for the ordering oracle: calendar and syllabus
pages usually say which problem set follows which lecture.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog
from bs4 import BeautifulSoup

logger = structlog.get_logger()

PRIORITY_KEYWORDS: tuple[str, ...] = (
    "calendar",
    "syllabus",
    "assignments",
    "resource-index",
    "readings",
    "schedule",
)

MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    "#course-content",
    ".course-content",
    "#main-content",
    ".main-content",
)

BOILERPLATE_SELECTOR = (
    "script, style, nav, header, footer, .course-nav, #course-nav, noscript, link, meta"
)
NAV_LINK_SELECTOR = "nav a, .course-nav a, #course-nav a, [role=navigation] a"

MIN_PAGE_CHARS = 20
TRUNCATION_MARKER = "\n[... truncated]"

_WHITESPACE_RE = re.compile(r"\s+")


def page_priority(path: Path) -> int:
    """Index of the first priority keyword in ``path``; unmatched pages sort last."""
    lower = str(path).lower()
    for idx, keyword in enumerate(PRIORITY_KEYWORDS):
        if keyword in lower:
            return idx
    return len(PRIORITY_KEYWORDS)


def html_to_text(html: str) -> str:
    """Main-content text of a page with boilerplate removed.

    Whitespace runs are collapsed within each line; empty lines dropped.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.select(BOILERPLATE_SELECTOR):
        tag.decompose()

    text = ""
    for selector in MAIN_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            text = element.get_text()
            break
    if not text:
        body = soup.body or soup
        text = body.get_text()

    lines = (_WHITESPACE_RE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def navigation_header(index_html: str) -> str:
    """``=== COURSE NAVIGATION ===`` block from the archive's index page."""
    soup = BeautifulSoup(index_html, "html.parser")
    links = [a.get_text(strip=True) for a in soup.select(NAV_LINK_SELECTOR)]
    links = [text for text in links if text]
    if not links:
        return ""
    return "=== COURSE NAVIGATION ===\n" + "\n".join(links) + "\n\n"


def page_label(relative: Path) -> str:
    """``syllabus/index.html`` (relative to ``pages/``) -> ``SYLLABUS > INDEX``."""
    return re.sub(r"\.html$", "", relative.as_posix()).replace("/", " > ").upper()


def build_digest(
    content_root: Path,
    *,
    page_chars: int = 15_000,
    total_chars: int = 80_000,
) -> str:
    """Concatenate the text of ``<root>/pages/**.html`` within fixed budgets.

    Priority pages come first, then the rest alphabetically. Each page
    section is capped at ``page_chars``; pages stop being added once
    ``total_chars`` is reached. Returns an empty string when the archive
    has no pages directory.
    """
    pages_dir = content_root / "pages"
    if not pages_dir.is_dir():
        logger.info("digest_no_pages_dir", content_root=str(content_root))
        return ""

    html_files = sorted(
        pages_dir.rglob("*.html"),
        key=lambda p: (page_priority(p.relative_to(pages_dir)), p.as_posix()),
    )
    if not html_files:
        return ""

    header = ""
    index_path = content_root / "index.html"
    if index_path.is_file():
        index_html = index_path.read_text(encoding="utf-8", errors="replace")
        header = navigation_header(index_html)

    sections: list[str] = []
    total = 0
    for html_file in html_files:
        if total >= total_chars:
            break
        text = html_to_text(html_file.read_text(encoding="utf-8", errors="replace"))
        if len(text) < MIN_PAGE_CHARS:
            continue

        section = f"=== {page_label(html_file.relative_to(pages_dir))} ===\n{text}"
        if len(section) > page_chars:
            section = section[:page_chars] + TRUNCATION_MARKER
        sections.append(section)
        total += len(section)

    logger.info("digest_built", page_count=len(sections), digest_chars=total)
    return header + "\n\n".join(sections)
