"""Domain-specific exceptions for ocw-pipeline.

Fatal errors abort a course run; per-item errors are caught by the
stage that owns the item, logged, and the item is skipped.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


# ── Fatal ──


class CourseNotFoundError(PipelineError):
    """No Course row matches the requested slug."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"No course matches slug '{slug}'")


class ZipLinkNotFoundError(PipelineError):
    """The course download page carries no zip archive link."""

    def __init__(self, page_url: str) -> None:
        self.page_url = page_url
        super().__init__(f"No zip download link found on {page_url}")


class ArchiveFetchError(PipelineError):
    """Download page, zip download, or zip extraction failed."""


class PersistenceError(PipelineError):
    """Writing Section/Resource/Course rows failed."""


class CatalogFetchError(PipelineError):
    """Course catalog page could not be fetched after all retries."""


# ── Oracle ──


class OracleResponseError(PipelineError):
    """LLM response is not a parseable JSON array of the expected shape."""

    def __init__(self, message: str, raw_content: str = "") -> None:
        self.raw_content = raw_content
        super().__init__(message)


# ── Per-item ──


class PdfFetchError(PipelineError):
    """A stored PDF could not be read locally or downloaded."""


class ConversionError(PipelineError):
    """Document conversion did not produce text."""


class ConversionFailedError(ConversionError):
    """Conversion service rejected the upload or reported a terminal failure."""


class ConversionTimeoutError(ConversionError):
    """Conversion job did not complete before the polling deadline."""

    def __init__(self, job_id: str, timeout_seconds: float) -> None:
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Conversion job {job_id} timed out after {timeout_seconds:.0f}s"
        )
