"""Data models exchanged between the scraper, the cache and the tools."""

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """A tracked course and its final grade.

    ``grade`` is None while the course has no published grade.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    grade: str | None = None

    @property
    def resolved(self) -> bool:
        return self.grade is not None


class FetchResult(BaseModel):
    """Result of one grade report fetch.

    ``courses`` is aligned with the requested course codes; ``new_grades``
    holds only the records resolved during this fetch.
    """

    gpa: float = 0.0
    credit_hours: float = 0.0
    courses: list[Record] = Field(default_factory=list)
    new_grades: list[Record] = Field(default_factory=list)
