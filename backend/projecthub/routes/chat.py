from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from loguru import logger
from sqlalchemy.orm import Session

from projecthub.core.dependencies import resolve_token_user
from projecthub.core.exceptions import Unauthenticated
from projecthub.core.permissions import has_project_access
from projecthub.core.project_room_manager import project_room_manager
from projecthub.database.session import get_db
from projecthub.models.project import Project

ws_router = APIRouter(tags=["Chat"])

MAX_MESSAGE_LENGTH = 4000


def _authorize_participant(db: Session, token: str | None, project_id: int):
    """Return ``(user_id, user_name)`` or a ``(close_code, reason)`` rejection."""
    try:
        user = resolve_token_user(db, token)
    except Unauthenticated as exc:
        return None, (4401, exc.message)

    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        return None, (4404, "Project not found")
    if not has_project_access(user, project):
        return None, (4403, "Access denied to this project")
    return (user.id, user.name), None


@ws_router.websocket("/ws/projects/{project_id}/chat")
async def project_chat_ws(
    websocket: WebSocket,
    project_id: int,
    token: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    identity, rejection = _authorize_participant(db, token, project_id)
    if rejection:
        code, reason = rejection
        await websocket.close(code=code, reason=reason)
        return

    user_id, user_name = identity
    await project_room_manager.join(project_id, websocket)
    logger.info(f"User {user_id} joined project {project_id} chat")
    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"type": "error", "message": "Invalid message format"})
                continue

            message = ""
            if isinstance(data, dict):
                message = str(data.get("message") or "").strip()
            if not message:
                await websocket.send_json({"type": "error", "message": "Message cannot be empty"})
                continue

            await project_room_manager.broadcast(project_id, {
                "type": "new-message",
                "project_id": project_id,
                "user_id": user_id,
                "user_name": user_name,
                "message": message[:MAX_MESSAGE_LENGTH],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })
    except WebSocketDisconnect:
        pass
    finally:
        project_room_manager.leave(project_id, websocket)
        logger.info(f"User {user_id} left project {project_id} chat")
