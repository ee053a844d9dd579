"""Request and response models for the recommendation endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.features.recommendations.domain.models import (
    InteractionEvent,
    RecommendationReason,
    RecommendedCourse,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RecordInteractionRequest(CamelModel):
    """Body for POST /interactions. Type and weight are validated by the service."""

    course_id: str | None = Field(None, alias="courseId")
    type: str | None = None
    weight: float | None = None


class InteractionOut(CamelModel):
    id: str
    type: str
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_event(cls, event: InteractionEvent) -> "InteractionOut":
        return cls(id=event.id, type=event.type.value, created_at=event.occurred_at)


class RecordInteractionResponse(BaseModel):
    success: bool
    interaction: InteractionOut


class InstructorOut(BaseModel):
    id: str
    name: str


class RecommendationItem(CamelModel):
    id: str
    course_name: str | None = Field(None, alias="courseName")
    course_code: str | None = Field(None, alias="courseCode")
    department: str | None = None
    campus: str | None = None
    year: int | None = None
    term: str | None = None
    credits: float | None = None
    instructors: list[InstructorOut] = Field(default_factory=list)
    score: float
    reason: RecommendationReason

    @classmethod
    def from_domain(cls, item: RecommendedCourse) -> "RecommendationItem":
        course = item.course
        return cls(
            id=course.id,
            course_name=course.course_name,
            course_code=course.course_code,
            department=course.department,
            campus=course.campus,
            year=course.year,
            term=course.term,
            credits=course.credits,
            instructors=[InstructorOut(id=i.id, name=i.name) for i in course.instructors],
            score=round(item.score, 4),
            reason=item.reason,
        )


class RecommendationsResponse(BaseModel):
    recommendations: list[RecommendationItem]
    cached: bool
