from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from learnflow_backend.interface.base import SuccessResponse


class AssignmentCreate(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)
    course_id: Optional[str] = None
    index_id: Optional[str] = None


class AssignmentQuery(BaseModel):
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    index_id: Optional[str] = None


class AssignmentDelete(BaseModel):
    type: Literal["course", "index"]
    user_id: str
    target_id: str


class CourseAssignmentGet(BaseModel):
    id: str
    user_id: str
    course_id: str
    assigned_by: str
    created_at: Optional[datetime] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    course_title: Optional[str] = None


class IndexAssignmentGet(BaseModel):
    id: str
    user_id: str
    index_id: str
    assigned_by: str
    created_at: Optional[datetime] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    index_name: Optional[str] = None


class AssignmentListResponse(SuccessResponse):
    course_assignments: List[CourseAssignmentGet] = []
    index_assignments: List[IndexAssignmentGet] = []
