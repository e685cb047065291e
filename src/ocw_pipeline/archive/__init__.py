"""Course archive processing: acquisition, lecture discovery, PDF classification."""

from ocw_pipeline.archive.acquirer import (
    AcquiredArchive,
    ArchiveAcquirer,
    resolve_course,
)
from ocw_pipeline.archive.classifier import ClassificationResult, ResourceClassifier
from ocw_pipeline.archive.digest import build_digest
from ocw_pipeline.archive.lectures import LectureDiscoverer

__all__ = [
    "AcquiredArchive",
    "ArchiveAcquirer",
    "ClassificationResult",
    "LectureDiscoverer",
    "ResourceClassifier",
    "build_digest",
    "resolve_course",
]
