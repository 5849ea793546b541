from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from projecthub.config import settings
from projecthub.core.exception_handlers import register_exception_handlers
from projecthub.core.logging_config import configure_logging
from projecthub.database.base import Base
from projecthub.database.session import SessionLocal, engine
from projecthub.models.user import User  # noqa: F401
from projecthub.models.project import Project  # noqa: F401
from projecthub.models.task import Task, SubmissionFile  # noqa: F401
from projecthub.models.notification import Notification  # noqa: F401
from projecthub.routes import auth, chat, notifications, projects, tasks
from projecthub.services import notification_service
from projecthub.services.file_storage import ensure_upload_dir
from projecthub.services.scheduler import AutoCompletionScheduler


configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting ProjectHub API...")
    Base.metadata.create_all(bind=engine)

    scheduler = None
    if settings.AUTO_COMPLETE_ENABLED:
        scheduler = AutoCompletionScheduler(SessionLocal, settings.AUTO_COMPLETE_INTERVAL_SECONDS)
        await scheduler.start()

    yield

    if scheduler:
        await scheduler.stop()
    notification_service.email_executor.shutdown(wait=False)
    logger.info("Shutting down ProjectHub API...")
    engine.dispose()


app = FastAPI(title="ProjectHub API", lifespan=lifespan)

app.mount("/uploads", StaticFiles(directory=ensure_upload_dir()), name="uploads")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(tasks.router)
app.include_router(notifications.router)
app.include_router(chat.ws_router)


@app.get("/health")
def health():
    return {"status": "ok"}
