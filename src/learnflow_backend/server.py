import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from learnflow_backend.api.assignments import assignment_router
from learnflow_backend.api.auth import auth_router
from learnflow_backend.api.courses import course_router
from learnflow_backend.api.dashboard import dashboard_router
from learnflow_backend.api.exceptions import register_exception_handlers
from learnflow_backend.api.files import file_router
from learnflow_backend.api.indexes import index_router
from learnflow_backend.api.lectures import lecture_router
from learnflow_backend.api.progress import progress_router
from learnflow_backend.api.sections import section_router
from learnflow_backend.api.uploads import upload_router
from learnflow_backend.api.users import user_router
from learnflow_backend.database import get_db
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import hash_password
from learnflow_backend.settings import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG_MODE != "production" else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def init_admin_user(db: Session):
    """Bootstrap the first administrator from ADMIN_USERNAME / ADMIN_PASSWORD."""

    username = os.environ.get("ADMIN_USERNAME")
    password = os.environ.get("ADMIN_PASSWORD")

    if not username or not password:
        return

    if db.query(User).filter(User.username == username.lower()).first() is not None:
        return

    db.add(User(
        username=username.lower(),
        password_hash=hash_password(password),
        role=UserRole.ADMIN,
        full_name="Administrator",
        password_set=True,
    ))
    db.commit()
    logger.info(f"Created administrator {username.lower()}")


def startup_logic():
    with next(get_db()) as db:
        init_admin_user(db)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DEBUG_MODE == "production":
        startup_logic()
    yield


app = FastAPI(title="LearnFlow", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(user_router, prefix="/api/users", tags=["users"])
app.include_router(index_router, prefix="/api/indexes", tags=["indexes"])
app.include_router(course_router, prefix="/api/courses", tags=["courses"])
app.include_router(section_router, prefix="/api/sections", tags=["sections"])
app.include_router(lecture_router, prefix="/api/lectures", tags=["lectures"])
app.include_router(file_router, prefix="/api/files", tags=["files"])
app.include_router(upload_router, prefix="/api", tags=["uploads"])
app.include_router(assignment_router, prefix="/api/assignments", tags=["assignments"])
app.include_router(progress_router, prefix="/api/progress", tags=["progress"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])


@app.get("/api/health")
def get_health():
    return {"success": True, "status": "ok"}
