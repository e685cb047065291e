"""Schemas for the upstream course catalog API payload."""

from typing import Any

from pydantic import BaseModel, Field


class CatalogImage(BaseModel):
    url: str
    alt: str | None = None


class CatalogTopic(BaseModel):
    id: int
    name: str
    parent: int | None = None


class CatalogSchool(BaseModel):
    id: int
    name: str
    url: str


class CatalogDepartment(BaseModel):
    department_id: str
    name: str
    school: CatalogSchool | None = None


class CatalogInstructor(BaseModel):
    id: int
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""


class CatalogLevel(BaseModel):
    code: str
    name: str


class CatalogRun(BaseModel):
    id: int
    semester: str | None = None
    year: int | None = None
    level: list[CatalogLevel] = Field(default_factory=list)
    instructors: list[CatalogInstructor] = Field(default_factory=list)
    image: CatalogImage | None = None


class CatalogCourse(BaseModel):
    """One course as returned by the catalog API."""

    id: int
    readable_id: str
    title: str
    description: str | None = None
    url: str | None = None
    image: CatalogImage | None = None
    topics: list[CatalogTopic] = Field(default_factory=list)
    departments: list[CatalogDepartment] = Field(default_factory=list)
    runs: list[CatalogRun] = Field(default_factory=list)
    course_feature: list[str] = Field(default_factory=list)
    free: bool = True
    certification: bool = False
    views: int = 0

    def to_row(self) -> dict[str, Any]:
        """Flatten into a ``courses`` table row."""
        return {
            "id": self.id,
            "readable_id": self.readable_id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "image_url": self.image.url if self.image else None,
            "image_alt": self.image.alt if self.image else None,
            "topics": [t.model_dump() for t in self.topics],
            "departments": [d.model_dump() for d in self.departments],
            "runs": [r.model_dump() for r in self.runs],
            "course_feature": self.course_feature,
            "free": self.free,
            "certification": self.certification,
            "views": self.views,
        }


class CatalogPage(BaseModel):
    """One page of the paginated catalog response."""

    count: int
    next: str | None = None
    results: list[CatalogCourse]
