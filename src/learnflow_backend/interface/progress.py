from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProgressUpdate(BaseModel):
    lecture_id: str
    time_spent_seconds: int = Field(0, ge=0)
    is_completed: bool = False
    session_watched_seconds: Optional[int] = Field(None, ge=0)


class ProgressQuery(BaseModel):
    user_id: Optional[str] = None
    course_id: Optional[str] = None


class LectureProgressGet(BaseModel):
    id: str
    user_id: str
    lecture_id: str
    time_spent_seconds: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    last_watched_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProgressSummary(BaseModel):
    total_lectures: int = 0
    completed_lectures: int = 0
    total_time_spent_seconds: int = 0


class CourseProgressSummary(BaseModel):
    course_id: str
    title: Optional[str] = None
    index_id: Optional[str] = None
    total_lectures: int = 0
    completed_lectures: int = 0
    time_spent_seconds: int = 0
    completion_percentage: int = 0

    @property
    def is_completed(self) -> bool:
        return self.total_lectures > 0 and self.completed_lectures == self.total_lectures


class IndexProgressSummary(BaseModel):
    index_id: str
    name: Optional[str] = None
    course_count: int = 0
    completed_courses: int = 0
    total_lectures: int = 0
    completed_lectures: int = 0
    completion_percentage: int = 0


class ProgressList(BaseModel):
    success: bool = True
    progress: List[LectureProgressGet] = []
    summary: ProgressSummary = ProgressSummary()


class ProgressResponse(BaseModel):
    success: bool = True
    progress: LectureProgressGet
