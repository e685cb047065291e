"""SQLAlchemy ORM models for courses and their ingested content."""

import uuid
from datetime import datetime
from typing import Any

import uuid_utils as uuid7_lib
from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-ordered) for use as default PK value."""
    return uuid.UUID(bytes=uuid7_lib.uuid7().bytes)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# ──────────────────────────────────────────────
# Course catalog
# ──────────────────────────────────────────────


class Course(Base):
    """Catalog course. The primary key is the upstream catalog id.

    Rows are created by catalog ingestion; the content pipeline only
    reads them and flips ``content_downloaded``.
    """

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    readable_id: Mapped[str] = mapped_column(String(200), index=True)
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text)
    url: Mapped[str | None] = mapped_column(String(2000))
    image_url: Mapped[str | None] = mapped_column(String(2000))
    image_alt: Mapped[str | None] = mapped_column(String(500))
    topics: Mapped[list[Any]] = mapped_column(JSONB, default=list)
    departments: Mapped[list[Any]] = mapped_column(JSONB, default=list)
    runs: Mapped[list[Any]] = mapped_column(JSONB, default=list)
    course_feature: Mapped[list[Any]] = mapped_column(JSONB, default=list)
    free: Mapped[bool] = mapped_column(default=True)
    certification: Mapped[bool] = mapped_column(default=False)
    views: Mapped[int] = mapped_column(Integer, default=0)
    content_downloaded: Mapped[bool] = mapped_column(default=False)
    content_downloaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    sections: Mapped[list["Section"]] = relationship(
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Section.ordering",
    )


# ──────────────────────────────────────────────
# Ingested content
# ──────────────────────────────────────────────


class Section(Base):
    """One entry of a course timeline (a lecture or a PDF-backed group).

    ``ordering`` is a contiguous 0-based position within the course.
    """

    __tablename__ = "course_sections"
    __table_args__ = (
        UniqueConstraint("course_id", "ordering", name="uq_course_sections_ordering"),
    )

    def __repr__(self) -> str:
        return (
            f"<Section(id={self.id}, course_id={self.course_id}, "
            f"ordering={self.ordering}, section_type='{self.section_type}')>"
        )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(500))
    slug: Mapped[str] = mapped_column(String(300))
    section_type: Mapped[str] = mapped_column(String(30))
    ordering: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    course: Mapped["Course"] = relationship(back_populates="sections")
    resources: Mapped[list["Resource"]] = relationship(
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Resource.ordering",
    )


class Resource(Base):
    """A video or file attached to a Section.

    ``ordering`` is 0-based within the owning section.
    """

    __tablename__ = "resources"

    def __repr__(self) -> str:
        return (
            f"<Resource(id={self.id}, resource_type='{self.resource_type}', "
            f"section_id={self.section_id}, ordering={self.ordering})>"
        )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    section_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("course_sections.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(500))
    resource_type: Mapped[str] = mapped_column(String(30))
    pdf_path: Mapped[str | None] = mapped_column(String(1000))
    video_url: Mapped[str | None] = mapped_column(String(1000))
    youtube_id: Mapped[str | None] = mapped_column(String(20))
    archive_url: Mapped[str | None] = mapped_column(String(1000))
    ordering: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    section: Mapped["Section | None"] = relationship(back_populates="resources")
    problems: Mapped[list["Problem"]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
        order_by="Problem.ordering",
    )


class Problem(Base):
    """A single practice problem extracted from a questions resource."""

    __tablename__ = "problems"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    resource_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("resources.id", ondelete="CASCADE"), index=True
    )
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    problem_label: Mapped[str] = mapped_column(String(200))
    question_text: Mapped[str] = mapped_column(Text)
    solution_text: Mapped[str | None] = mapped_column(Text)
    ordering: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    resource: Mapped["Resource"] = relationship(back_populates="problems")
