"""PDF discovery, renaming and type classification.

Classification is an ordered rule table: the first rule whose
predicate matches the lower-cased name decides the type. Rules are
evaluated against the original (hash-prefixed) filename first and
against the human title only when the filename yields ``other``.
"""

from __future__ import annotations

import json
import re
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ocw_pipeline.models.content import PdfEntry, PdfType

logger = structlog.get_logger()

MAX_FILENAME_STEM = 80

NamePredicate = Callable[[str], bool]

_LECTURE_MARKER_RE = re.compile(r"_lec\d+")
_RECITATION_MARKER_RE = re.compile(r"_r\d+")
_LECTURE_NOTES_NUMBER_RE = re.compile(r"_lec(\d+)", re.IGNORECASE)


def _contains(*needles: str) -> NamePredicate:
    return lambda name: any(n in name for n in needles)


def _matches(pattern: re.Pattern[str]) -> NamePredicate:
    return lambda name: pattern.search(name) is not None


def _all(*predicates: NamePredicate) -> NamePredicate:
    return lambda name: all(p(name) for p in predicates)


def _any(*predicates: NamePredicate) -> NamePredicate:
    return lambda name: any(p(name) for p in predicates)


_is_solution = _contains("sol")
_is_problem_set = _contains(
    "_ps", "pset", "homework", "_hw", "problem set", "problem-set"
)
_is_recitation = _any(_matches(_RECITATION_MARKER_RE), _contains("recitation"))

PDF_TYPE_RULES: tuple[tuple[NamePredicate, PdfType], ...] = (
    (_any(_matches(_LECTURE_MARKER_RE), _contains("lecture")), PdfType.LECTURE_NOTES),
    (
        _all(_is_solution, _any(_contains("ps", "hw", "pset"), _is_problem_set)),
        PdfType.SOLUTION,
    ),
    (_is_problem_set, PdfType.PROBLEM_SET),
    (_contains("final", "quiz", "exam", "midterm"), PdfType.EXAM),
    (_is_recitation, PdfType.RECITATION),
    (_is_solution, PdfType.SOLUTION),
)


def classify_name(name: str) -> PdfType:
    """Type of a single filename or title by the first matching rule."""
    lower = name.lower()
    for predicate, pdf_type in PDF_TYPE_RULES:
        if predicate(lower):
            return pdf_type
    return PdfType.OTHER


def classify_pdf(original_filename: str, title: str) -> PdfType:
    """Classify by original filename, falling back to the human title."""
    by_filename = classify_name(original_filename)
    if by_filename != PdfType.OTHER:
        return by_filename
    return classify_name(title)


def title_to_filename(title: str) -> str:
    """Filesystem-safe filename derived from a human title.

    "Problem Set 1: Graphs" -> "problem-set-1-graphs.pdf"
    """
    stem = re.sub(r"[^a-z0-9\s-]", "", title.lower()).strip()
    stem = re.sub(r"\s+", "-", stem)
    stem = re.sub(r"-+", "-", stem)
    return stem[:MAX_FILENAME_STEM] + ".pdf"


def dedupe_filename(filename: str, used: set[str]) -> str:
    """``filename`` or the first free ``<stem>-N.pdf`` variant (N >= 2)."""
    if filename not in used:
        return filename
    stem = filename[: -len(".pdf")] if filename.endswith(".pdf") else filename
    n = 2
    while f"{stem}-{n}.pdf" in used:
        n += 1
    return f"{stem}-{n}.pdf"


def load_pdf_titles(content_root: Path) -> dict[str, str]:
    """Map original PDF filename -> human title from ``resources/**/data.json``.

    Each side file carries ``{"title": ..., "file": "/courses/.../<name>.pdf"}``.
    Malformed or incomplete files are skipped.
    """
    titles: dict[str, str] = {}
    resources_dir = content_root / "resources"
    if not resources_dir.is_dir():
        return titles

    for data_file in sorted(resources_dir.rglob("data.json")):
        try:
            data = json.loads(data_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug("pdf_metadata_unreadable", path=str(data_file))
            continue
        if not isinstance(data, dict):
            continue
        file_ref = data.get("file")
        title = data.get("title")
        if not file_ref or not title:
            continue
        filename = str(file_ref).split("/")[-1]
        if filename.lower().endswith(".pdf"):
            titles[filename] = str(title)
    return titles


@dataclass
class ClassificationResult:
    """Classified PDFs of one course archive."""

    entries: list[PdfEntry] = field(default_factory=list)
    rename_map: dict[str, str] = field(default_factory=dict)

    def lecture_notes_index(self) -> dict[int, list[str]]:
        """Lecture number -> renamed lecture-notes filenames.

        Keyed by the ``_lec<N>`` marker of the original filename.
        """
        index: dict[int, list[str]] = {}
        for original, renamed in self.rename_map.items():
            match = _LECTURE_NOTES_NUMBER_RE.search(original)
            if match:
                index.setdefault(int(match.group(1)), []).append(renamed)
        return index


def humanize_filename(filename: str) -> str:
    """Display title for a PDF without metadata: drop extension, dashes -> spaces."""
    return re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE).replace("-", " ")


def plan_renames(
    original_filenames: list[str],
    titles: dict[str, str],
) -> dict[str, str]:
    """Original filename -> unique new filename, in input order.

    Untitled PDFs keep their original names, so those names are reserved
    before any titled PDF is renamed.
    """
    used = {name for name in original_filenames if not titles.get(name)}
    renames: dict[str, str] = {}
    for original in original_filenames:
        title = titles.get(original)
        new_name = original
        if title:
            new_name = dedupe_filename(title_to_filename(title), used)
            used.add(new_name)
        renames[original] = new_name
    return renames


class ResourceClassifier:
    """Copy the archive's static PDFs into course storage and classify them."""

    def __init__(self, dest_dir: Path) -> None:
        self._dest_dir = dest_dir

    def classify(self, content_root: Path) -> ClassificationResult:
        """Rename, copy and classify every PDF under ``static_resources/``.

        Output order follows sorted original filenames so reruns on an
        unchanged archive produce identical results.
        """
        titles = load_pdf_titles(content_root)
        logger.info("pdf_titles_loaded", title_count=len(titles))

        static_dir = content_root / "static_resources"
        originals = (
            sorted(
                p.name
                for p in static_dir.iterdir()
                if p.is_file() and p.name.lower().endswith(".pdf")
            )
            if static_dir.is_dir()
            else []
        )

        renames = plan_renames(originals, titles)
        self._dest_dir.mkdir(parents=True, exist_ok=True)

        result = ClassificationResult(rename_map=renames)
        for original, new_name in renames.items():
            shutil.copyfile(static_dir / original, self._dest_dir / new_name)
            title = titles.get(original)
            result.entries.append(
                PdfEntry(
                    filename=new_name,
                    title=title or humanize_filename(new_name),
                    guessed_type=classify_pdf(original, title or new_name),
                )
            )

        logger.info(
            "pdfs_classified",
            pdf_count=len(result.entries),
            dest_dir=str(self._dest_dir),
        )
        return result
