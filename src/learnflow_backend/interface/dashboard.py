from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from learnflow_backend.interface.base import SuccessResponse
from learnflow_backend.interface.progress import CourseProgressSummary, IndexProgressSummary
from learnflow_backend.interface.roles import UserRole


class ActivityGet(BaseModel):
    id: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime


class StaffStats(BaseModel):
    id: str
    username: str
    full_name: Optional[str] = None
    role: UserRole
    is_active: bool
    managed_users: int = 0
    indexes: int = 0
    courses: int = 0
    last_active: Optional[datetime] = None


class AdminStats(BaseModel):
    trainers: int = 0
    crms: int = 0
    candidates: int = 0
    others: int = 0
    courses: int = 0
    active_users: int = 0
    inactive_users: int = 0
    active_last_7_days: int = 0
    completed_lectures: int = 0
    total_time_spent_seconds: int = 0


class AdminDashboard(SuccessResponse):
    stats: AdminStats
    staff: List[StaffStats] = []
    recent_activity: List[ActivityGet] = []


class LearnerRow(BaseModel):
    id: str
    username: str
    full_name: Optional[str] = None
    is_active: bool
    assigned_courses: int = 0
    total_lectures: int = 0
    completed_lectures: int = 0
    completion_percentage: int = 0
    total_time_spent_seconds: int = 0
    last_active: Optional[datetime] = None
    is_stalled: bool = False


class StaffDashboardStats(BaseModel):
    learners: int = 0
    active_learners: int = 0
    indexes: int = 0
    courses: int = 0
    lectures: int = 0
    assignments: int = 0
    avg_completion_rate: int = 0
    active_last_7_days: int = 0
    stalled_learners: int = 0
    total_time_spent_seconds: int = 0


class StaffDashboard(SuccessResponse):
    stats: StaffDashboardStats
    learners: List[LearnerRow] = []
    recent_activity: List[ActivityGet] = []


class LearnerStats(BaseModel):
    total_courses: int = 0
    completed_courses: int = 0
    total_lectures: int = 0
    completed_lectures: int = 0
    total_time_spent_seconds: int = 0
    completion_percentage: int = 0
    current_streak: int = 0


class LearnerDashboard(SuccessResponse):
    stats: LearnerStats
    courses: List[CourseProgressSummary] = []
    indexes: List[IndexProgressSummary] = []
