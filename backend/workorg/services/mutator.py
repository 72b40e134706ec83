import logging
from typing import Optional

from workorg import config
from workorg.errors import AccessDenied, ProjectNotFound
from workorg.models.video import PlaybackRecord
from workorg.services import video_ref
from workorg.services.playback_store import PlaybackStore
from workorg.services.projects import ProjectDirectory
from workorg.services.relay import EventRelay

logger = logging.getLogger(__name__)


class PlaybackMutator:
    """
    The only writer of playback records. Every call checks project access first;
    successful writes are announced to the room so peers refetch.
    """

    def __init__(self, store: PlaybackStore, projects: ProjectDirectory, relay: EventRelay, fetch_titles: bool = config.FETCH_VIDEO_TITLES):
        self.store = store
        self.projects = projects
        self.relay = relay
        self.fetch_titles = fetch_titles

    async def _authorize(self, project_id: str, user_id: str):
        project = await self.projects.get(project_id)
        if not project:
            raise ProjectNotFound(project_id)
        if not project.has_member(user_id):
            logger.warning(f"User {user_id} denied access to project {project_id}")
            raise AccessDenied(project_id)

    async def fetch(self, project_id: str, user_id: str) -> Optional[PlaybackRecord]:
        await self._authorize(project_id, user_id)
        return await self.store.get(project_id)

    async def share(self, project_id: str, user_id: str, video_url: str, title: Optional[str] = None, origin: Optional[str] = None) -> PlaybackRecord:
        await self._authorize(project_id, user_id)

        # Raises before anything is written
        video_id = video_ref.extract_video_id(video_url)

        title = (title or "").strip() or None
        if title is None and self.fetch_titles:
            title = await video_ref.lookup_title(f"https://www.youtube.com/watch?v={video_id}")

        record = await self.store.put(project_id, video_id, video_url.strip(), title, user_id)
        logger.info(f"User {user_id} shared video {video_id} in project {project_id}")

        await self.relay.video_added(project_id, sender=origin)
        return record

    async def set_state(
        self,
        project_id: str,
        user_id: str,
        is_playing: Optional[bool] = None,
        current_time: Optional[float] = None,
        is_minimized: Optional[bool] = None,
        origin: Optional[str] = None,
    ) -> PlaybackRecord:
        await self._authorize(project_id, user_id)
        record = await self.store.update_flags(project_id, is_playing=is_playing, current_time=current_time, is_minimized=is_minimized)

        if is_minimized is not None:
            await self.relay.minimized(project_id, record.is_minimized, sender=origin)
        return record

    async def unshare(self, project_id: str, user_id: str, origin: Optional[str] = None) -> bool:
        await self._authorize(project_id, user_id)
        removed = await self.store.remove(project_id)
        logger.info(f"User {user_id} removed shared video from project {project_id} (existed={removed})")

        if removed:
            await self.relay.video_removed(project_id, sender=origin)
        return removed
