import logging
from typing import Optional

from workorg.services.rooms import RoomRegistry

logger = logging.getLogger(__name__)

# Wire names shared by client->server and server->peer messages
VIDEO_PLAY = "video-play"
VIDEO_PAUSE = "video-pause"
VIDEO_SEEK = "video-seek"
VIDEO_ADDED = "video-added"
VIDEO_REMOVED = "video-removed"
VIDEO_MINIMIZED = "video-minimized"

RELAY_EVENTS = (VIDEO_PLAY, VIDEO_PAUSE, VIDEO_SEEK, VIDEO_ADDED, VIDEO_REMOVED, VIDEO_MINIMIZED)


class EventRelay:
    """
    Fan-out of playback events to every other session in a project's room.

    The relay never reads or writes playback records. Delivery is at most once:
    a peer that cannot be reached is skipped and the sender is never told.
    """

    def __init__(self, transport, registry: RoomRegistry):
        self.transport = transport
        self.registry = registry

    async def forward(self, event: str, project: str, data: Optional[dict] = None, sender: Optional[str] = None) -> int:
        payload = {k: v for k, v in (data or {}).items() if k != "projectId"}
        peers = self.registry.members_of(project)
        peers.discard(sender)

        delivered = 0
        for sid in sorted(peers):
            try:
                await self.transport.emit(event, payload, to=sid)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping {event} for {sid} in project {project}: {e}")
        logger.debug(f"Relayed {event} for project {project} to {delivered} peer(s)")
        return delivered

    async def play(self, project: str, current_time: float, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_PLAY, project, {"currentTime": current_time}, sender)

    async def pause(self, project: str, current_time: float, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_PAUSE, project, {"currentTime": current_time}, sender)

    async def seek(self, project: str, current_time: float, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_SEEK, project, {"currentTime": current_time}, sender)

    async def minimized(self, project: str, is_minimized: bool, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_MINIMIZED, project, {"isMinimized": is_minimized}, sender)

    async def video_added(self, project: str, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_ADDED, project, None, sender)

    async def video_removed(self, project: str, sender: Optional[str] = None) -> int:
        return await self.forward(VIDEO_REMOVED, project, None, sender)
