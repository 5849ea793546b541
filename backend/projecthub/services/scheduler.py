import asyncio
from datetime import date
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from projecthub.models.project import Project, ProjectStatus
from projecthub.services.notification_service import NotificationType, notify
from projecthub.services.progress_service import recompute_progress


def auto_complete_due_projects(db: Session, today: Optional[date] = None) -> List[Project]:
    # completed projects are filtered out, so repeat sweeps are no-ops
    today = today or date.today()
    projects = db.query(Project).filter(
        Project.end_date <= today,
        Project.status != ProjectStatus.COMPLETED.value,
    ).all()

    for project in projects:
        project.status = ProjectStatus.COMPLETED.value
        if project.end_date is None:
            project.end_date = today
        db.commit()

        recompute_progress(db, project)

        notify(
            db,
            project.participant_ids(),
            NotificationType.PROJECT_UPDATED,
            "Project Auto-Completed",
            f'Project "{project.title}" has been automatically completed as the end date has been reached.',
            project_id=project.id,
        )
        logger.info(f"Auto-completed project: {project.title} ({project.id})")

    return projects


class AutoCompletionScheduler:
    """Runs the auto-completion sweep on a single cancellable asyncio task."""

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = 3600):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.task: Optional[asyncio.Task] = None
        self.running = False

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            return len(auto_complete_due_projects(db))
        finally:
            db.close()

    async def start(self):
        # first sweep runs immediately
        self.running = True
        self.task = asyncio.create_task(self._loop())
        logger.info(f"Project auto-completion scheduler started (every {self.interval_seconds}s)")

    async def stop(self):
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None

        logger.info("Project auto-completion scheduler stopped")

    async def _loop(self):
        while self.running:
            try:
                completed = await run_in_threadpool(self.run_once)
                if completed:
                    logger.info(f"Auto-completion sweep completed {completed} project(s)")
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in project auto-completion sweep")

            await asyncio.sleep(self.interval_seconds)
