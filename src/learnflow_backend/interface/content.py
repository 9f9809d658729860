from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnflow_backend.interface.base import SuccessResponse


def strip_or_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class IndexCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip(cls, value):
        return strip_or_none(value)


class IndexUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class IndexGet(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    is_active: bool
    created_at: Optional[datetime] = None
    course_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class CourseCreate(BaseModel):
    index_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None

    @field_validator("title", "description", "thumbnail_url", mode="before")
    @classmethod
    def strip(cls, value):
        return strip_or_none(value)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: Optional[bool] = None


class CourseGet(BaseModel):
    id: str
    index_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_by: str
    is_active: bool
    created_at: Optional[datetime] = None
    index_name: Optional[str] = None
    section_count: int = 0
    lecture_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class LectureFileGet(BaseModel):
    id: str
    lecture_id: str
    file_name: str
    file_size: int
    file_type: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LectureGet(BaseModel):
    id: str
    section_id: str
    title: str
    description: Optional[str] = None
    youtube_url: Optional[str] = None
    video_storage_path: Optional[str] = None
    video_mime_type: Optional[str] = None
    video_url: Optional[str] = None
    order_index: int
    duration_seconds: int
    files: List[LectureFileGet] = []

    model_config = ConfigDict(from_attributes=True)


class SectionGet(BaseModel):
    id: str
    course_id: str
    title: str
    order_index: int
    lectures: List[LectureGet] = []

    model_config = ConfigDict(from_attributes=True)


class CourseDetail(CourseGet):
    sections: List[SectionGet] = []


class IndexDetail(IndexGet):
    courses: List[CourseGet] = []


class SectionCreate(BaseModel):
    course_id: str
    title: str = Field(..., min_length=1, max_length=255)
    order_index: Optional[int] = Field(None, ge=0)


class SectionUpdate(BaseModel):
    id: str
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    order_index: Optional[int] = Field(None, ge=0)


class LectureCreate(BaseModel):
    section_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    youtube_url: Optional[str] = None
    video_storage_path: Optional[str] = None
    video_mime_type: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    duration_seconds: int = Field(0, ge=0)

    @field_validator("title", "description", "youtube_url", "video_storage_path", "video_mime_type", mode="before")
    @classmethod
    def strip(cls, value):
        return strip_or_none(value)


class LectureUpdate(BaseModel):
    id: str
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    youtube_url: Optional[str] = None
    video_storage_path: Optional[str] = None
    video_mime_type: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    duration_seconds: Optional[int] = Field(None, ge=0)

    @field_validator("description", "youtube_url", "video_storage_path", "video_mime_type", mode="before")
    @classmethod
    def strip(cls, value):
        return strip_or_none(value)


class IndexResponse(SuccessResponse):
    index: IndexGet


class IndexDetailResponse(SuccessResponse):
    index: IndexDetail


class IndexListResponse(SuccessResponse):
    indexes: List[IndexGet] = []


class CourseResponse(SuccessResponse):
    course: CourseGet


class CourseDetailResponse(SuccessResponse):
    course: CourseDetail


class CourseListResponse(SuccessResponse):
    courses: List[CourseGet] = []


class SectionResponse(SuccessResponse):
    section: SectionGet


class LectureResponse(SuccessResponse):
    lecture: LectureGet


class FileResponse(SuccessResponse):
    file: LectureFileGet


class FileDownloadRequest(BaseModel):
    file_id: str


class DownloadUrlResponse(SuccessResponse):
    url: str


class UploadResponse(SuccessResponse):
    url: Optional[str] = None
    storage_path: str
    file_name: str
    file_size: int
    mime_type: Optional[str] = None
