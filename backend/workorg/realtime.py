import logging
from typing import Optional

from workorg import auth
from workorg.services.projects import ProjectDirectory
from workorg.services.relay import (
    EventRelay,
    VIDEO_ADDED,
    VIDEO_MINIMIZED,
    VIDEO_PAUSE,
    VIDEO_PLAY,
    VIDEO_REMOVED,
    VIDEO_SEEK,
)
from workorg.services.rooms import RoomRegistry

logger = logging.getLogger(__name__)


def _project_id(data) -> Optional[str]:
    # join-project/leave-project send the bare id, relay events send {projectId, ...}
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        project_id = data.get("projectId")
        return str(project_id) if project_id else None
    return None


def _connect_token(environ: dict, auth_payload) -> Optional[str]:
    if isinstance(auth_payload, dict) and auth_payload.get("token"):
        return auth_payload["token"]
    return auth.bearer_token(environ.get("HTTP_AUTHORIZATION"))


def register_handlers(sio, registry: RoomRegistry, relay: EventRelay, projects: ProjectDirectory):
    """Wire the real-time channel events onto a socket server."""

    @sio.event
    async def connect(sid, environ, auth_payload=None):
        user_id = auth.decode_token(_connect_token(environ, auth_payload))
        if not user_id:
            logger.warning(f"Refusing unauthenticated connection {sid}")
            raise ConnectionRefusedError("authentication failed")
        await sio.save_session(sid, {"user_id": user_id})
        logger.info(f"Client {sid} connected as user {user_id}")

    @sio.event
    async def disconnect(sid, *args):
        logger.info(f"Client {sid} disconnected")
        registry.drop_session(sid)

    @sio.on("join-project")
    async def join_project(sid, data):
        project_id = _project_id(data)
        if not project_id:
            logger.warning(f"join-project from {sid} without a project id")
            return
        try:
            session = await sio.get_session(sid)
            user_id = session.get("user_id")
            if not await projects.has_access(project_id, user_id):
                logger.warning(f"User {user_id} ({sid}) may not join project {project_id}")
                await sio.emit("error", {"message": "Access denied"}, to=sid)
                return

            evicted = registry.join(sid, project_id)
            if evicted:
                logger.info(f"Client {sid} left rooms {evicted} on joining {project_id}")
            logger.info(f"Client {sid} joined project room {project_id}")
        except Exception as e:
            logger.error(f"Error in join-project: {e}", exc_info=True)
            await sio.emit("error", {"message": "Internal server error during join"}, to=sid)

    @sio.on("leave-project")
    async def leave_project(sid, data):
        project_id = _project_id(data)
        if project_id:
            registry.leave(sid, project_id)
            logger.info(f"Client {sid} left project room {project_id}")

    def relayed(event: str):
        async def handler(sid, data):
            project_id = _project_id(data)
            if not project_id:
                logger.warning(f"{event} from {sid} without a project id")
                return
            if project_id not in registry.rooms_of(sid):
                # Only sessions admitted by join-project may drive a room
                logger.warning(f"Dropping {event} from {sid}: not in project room {project_id}")
                return
            await relay.forward(event, project_id, data if isinstance(data, dict) else None, sender=sid)

        handler.__name__ = event.replace("-", "_")
        return handler

    for event in (VIDEO_PLAY, VIDEO_PAUSE, VIDEO_SEEK, VIDEO_MINIMIZED, VIDEO_ADDED, VIDEO_REMOVED):
        sio.on(event, relayed(event))
