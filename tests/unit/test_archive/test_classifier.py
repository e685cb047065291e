"""Tests for PDF renaming and classification."""

import json
from pathlib import Path

import pytest

from ocw_pipeline.archive.classifier import (
    ResourceClassifier,
    classify_name,
    classify_pdf,
    dedupe_filename,
    humanize_filename,
    load_pdf_titles,
    plan_renames,
    title_to_filename,
)
from ocw_pipeline.models.content import PdfType


def _write_pdf_metadata(content_root: Path, folder: str, title: str, file: str) -> None:
    meta_dir = content_root / "resources" / folder
    meta_dir.mkdir(parents=True, exist_ok=True)
    (meta_dir / "data.json").write_text(json.dumps({"title": title, "file": file}))


@pytest.fixture()
def archive_root(tmp_path: Path) -> Path:
    """Extracted archive with four PDFs, three of them titled."""
    root = tmp_path / "archive"
    static = root / "static_resources"
    static.mkdir(parents=True)
    for name in (
        "a1f0_mit6_006s20_lec1.pdf",
        "b2e1_mit6_006s20_ps1.pdf",
        "c3d2_mit6_006s20_ps1_sol.pdf",
        "d4c3_mit6_006s20_handout.pdf",
    ):
        (static / name).write_bytes(b"%PDF-1.4 " + name.encode())
    (static / "notes.txt").write_text("not a pdf")

    _write_pdf_metadata(
        root, "lec1", "Lecture 1: Introduction", "/courses/x/a1f0_mit6_006s20_lec1.pdf"
    )
    _write_pdf_metadata(
        root, "ps1", "Problem Set 1", "/courses/x/b2e1_mit6_006s20_ps1.pdf"
    )
    _write_pdf_metadata(
        root,
        "ps1-sol",
        "Problem Set 1 Solutions",
        "/courses/x/c3d2_mit6_006s20_ps1_sol.pdf",
    )
    return root


class TestClassifyName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("a1f0_mit6_006s20_lec1.pdf", PdfType.LECTURE_NOTES),
            ("Lecture 4 Notes", PdfType.LECTURE_NOTES),
            ("b2e1_mit6_006s20_ps1.pdf", PdfType.PROBLEM_SET),
            ("e5f6_mit18_06_pset3.pdf", PdfType.PROBLEM_SET),
            ("f7a8_mit18_06_hw2.pdf", PdfType.PROBLEM_SET),
            ("c3d2_mit6_006s20_ps1_sol.pdf", PdfType.SOLUTION),
            ("Homework 2 Solutions", PdfType.SOLUTION),
            ("9a8b_mit6_006s20_final.pdf", PdfType.EXAM),
            ("Quiz 1", PdfType.EXAM),
            ("Midterm Review", PdfType.EXAM),
            ("7c6d_mit6_006s20_r01.pdf", PdfType.RECITATION),
            ("Recitation 3", PdfType.RECITATION),
            ("Quiz 2 Solutions", PdfType.EXAM),
            ("d4c3_mit6_006s20_handout.pdf", PdfType.OTHER),
        ],
    )
    def test_rules(self, name: str, expected: PdfType) -> None:
        assert classify_name(name) == expected

    def test_title_used_when_filename_is_other(self) -> None:
        assert classify_pdf("d4c3_handout.pdf", "Problem Set 2") == PdfType.PROBLEM_SET

    def test_filename_wins_over_title(self) -> None:
        assert classify_pdf("b2e1_ps1.pdf", "Course Calendar") == PdfType.PROBLEM_SET


class TestFilenames:
    def test_title_to_filename(self) -> None:
        assert title_to_filename("Problem Set 1: Graphs") == "problem-set-1-graphs.pdf"

    def test_title_to_filename_collapses_dashes(self) -> None:
        assert title_to_filename("  Quiz 1 -- Review  ") == "quiz-1-review.pdf"

    def test_title_to_filename_truncates(self) -> None:
        assert title_to_filename("x" * 120) == "x" * 80 + ".pdf"

    def test_dedupe_free_name(self) -> None:
        assert dedupe_filename("a.pdf", set()) == "a.pdf"

    def test_dedupe_suffixes(self) -> None:
        assert dedupe_filename("a.pdf", {"a.pdf"}) == "a-2.pdf"
        assert dedupe_filename("a.pdf", {"a.pdf", "a-2.pdf"}) == "a-3.pdf"

    def test_humanize_filename(self) -> None:
        assert humanize_filename("problem-set-1.pdf") == "problem set 1"

    def test_plan_renames_unique(self) -> None:
        """Colliding titles resolve to distinct names; untitled PDFs keep theirs."""
        renames = plan_renames(
            ["a.pdf", "b.pdf", "c.pdf"],
            {"a.pdf": "Problem Set", "b.pdf": "Problem Set"},
        )
        assert renames == {
            "a.pdf": "problem-set.pdf",
            "b.pdf": "problem-set-2.pdf",
            "c.pdf": "c.pdf",
        }
        assert len(set(renames.values())) == 3

    def test_plan_renames_avoids_untitled_names(self) -> None:
        """A derived name never lands on a PDF that keeps its original name."""
        renames = plan_renames(
            ["a_hash_ps1.pdf", "problem-set-1.pdf"],
            {"a_hash_ps1.pdf": "Problem Set 1"},
        )
        assert renames == {
            "a_hash_ps1.pdf": "problem-set-1-2.pdf",
            "problem-set-1.pdf": "problem-set-1.pdf",
        }


class TestLoadPdfTitles:
    def test_reads_side_files(self, archive_root: Path) -> None:
        titles = load_pdf_titles(archive_root)
        assert titles["b2e1_mit6_006s20_ps1.pdf"] == "Problem Set 1"
        assert len(titles) == 3

    def test_malformed_side_file_skipped(self, archive_root: Path) -> None:
        bad = archive_root / "resources" / "broken"
        bad.mkdir()
        (bad / "data.json").write_text("{not json")
        assert len(load_pdf_titles(archive_root)) == 3

    def test_no_resources_dir(self, tmp_path: Path) -> None:
        assert load_pdf_titles(tmp_path) == {}


class TestResourceClassifier:
    def test_classify_copies_and_types(
        self, archive_root: Path, tmp_path: Path
    ) -> None:
        dest = tmp_path / "course"
        result = ResourceClassifier(dest).classify(archive_root)

        by_name = {e.filename: e for e in result.entries}
        assert set(by_name) == {
            "lecture-1-introduction.pdf",
            "problem-set-1.pdf",
            "problem-set-1-solutions.pdf",
            "d4c3_mit6_006s20_handout.pdf",
        }
        assert by_name["problem-set-1.pdf"].guessed_type == PdfType.PROBLEM_SET
        assert by_name["problem-set-1-solutions.pdf"].guessed_type == PdfType.SOLUTION
        assert by_name["lecture-1-introduction.pdf"].guessed_type == (
            PdfType.LECTURE_NOTES
        )
        handout = by_name["d4c3_mit6_006s20_handout.pdf"]
        assert handout.title == "d4c3_mit6_006s20_handout"
        assert handout.guessed_type == PdfType.OTHER
        assert (dest / "problem-set-1.pdf").read_bytes().startswith(b"%PDF")
        assert not (dest / "notes.txt").exists()

    def test_rerun_is_identical(self, archive_root: Path, tmp_path: Path) -> None:
        first = ResourceClassifier(tmp_path / "one").classify(archive_root)
        second = ResourceClassifier(tmp_path / "two").classify(archive_root)
        assert first.rename_map == second.rename_map
        assert first.entries == second.entries

    def test_missing_static_resources(self, tmp_path: Path) -> None:
        result = ResourceClassifier(tmp_path / "dest").classify(tmp_path)
        assert result.entries == []

    def test_lecture_notes_index(self, archive_root: Path, tmp_path: Path) -> None:
        result = ResourceClassifier(tmp_path / "dest").classify(archive_root)
        assert result.lecture_notes_index() == {1: ["lecture-1-introduction.pdf"]}


    def test_titled_rename_keeps_untitled_file(self, tmp_path: Path) -> None:
        root = tmp_path / "archive"
        static = root / "static_resources"
        static.mkdir(parents=True)
        (static / "a_hash_ps1.pdf").write_bytes(b"%PDF titled")
        (static / "problem-set-1.pdf").write_bytes(b"%PDF untitled")
        _write_pdf_metadata(root, "ps1", "Problem Set 1", "/courses/x/a_hash_ps1.pdf")

        dest = tmp_path / "dest"
        result = ResourceClassifier(dest).classify(root)

        filenames = [e.filename for e in result.entries]
        assert sorted(filenames) == ["problem-set-1-2.pdf", "problem-set-1.pdf"]
        assert (dest / "problem-set-1-2.pdf").read_bytes() == b"%PDF titled"
        assert (dest / "problem-set-1.pdf").read_bytes() == b"%PDF untitled"
