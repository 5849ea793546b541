import asyncio
from typing import Dict, Set

from fastapi import WebSocket


class ProjectRoomManager:
    """Websocket rooms keyed by project id, for ephemeral project chat."""

    def __init__(self) -> None:
        self.rooms: Dict[int, Set[WebSocket]] = {}

    async def join(self, project_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self.rooms.setdefault(project_id, set()).add(websocket)

    def leave(self, project_id: int, websocket: WebSocket) -> None:
        sockets = self.rooms.get(project_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            self.rooms.pop(project_id, None)

    def room_size(self, project_id: int) -> int:
        return len(self.rooms.get(project_id, ()))

    async def broadcast(self, project_id: int, payload: dict) -> None:
        sockets = list(self.rooms.get(project_id, []))
        if not sockets:
            return
        results = await asyncio.gather(*(socket.send_json(payload) for socket in sockets), return_exceptions=True)
        for socket, result in zip(sockets, results):
            if isinstance(result, Exception):
                self.leave(project_id, socket)


project_room_manager = ProjectRoomManager()
