import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from redis.exceptions import RedisError, WatchError

from workorg.errors import StoreUnavailable, VideoNotFound
from workorg.models.video import PlaybackRecord

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _flag(value: bool) -> str:
    return "true" if value else "false"


class PlaybackStore:
    """
    One playback record per project, kept as a Redis hash under video:{project}.

    A single key per project is what enforces the one-record invariant; every
    write path runs inside MULTI/EXEC so concurrent writers never interleave.
    """

    def __init__(self, redis):
        self.redis = redis

    @staticmethod
    def _key(project: str) -> str:
        return f"video:{project}"

    async def get(self, project: str) -> Optional[PlaybackRecord]:
        try:
            data = await self.redis.hgetall(self._key(project))
        except RedisError as e:
            logger.error(f"Error loading video for project {project}: {e}")
            raise StoreUnavailable(str(e)) from e
        if not data:
            return None
        return PlaybackRecord.model_validate(data)

    async def put(self, project: str, video_id: str, video_url: str, title: Optional[str], owner: str) -> PlaybackRecord:
        key = self._key(project)
        now = _now()
        fields = {
            "project": project,
            "video_id": video_id,
            "video_url": video_url,
            "added_by": owner,
            "is_playing": _flag(False),
            "current_time": "0",
            "updated_at": now,
        }
        if title:
            fields["title"] = title

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                # Identity survives a replace, only the video and its state change
                pipe.hsetnx(key, "id", uuid.uuid4().hex)
                pipe.hsetnx(key, "created_at", now)
                pipe.hsetnx(key, "is_minimized", _flag(False))
                pipe.hset(key, mapping=fields)
                if not title:
                    pipe.hdel(key, "title")
                pipe.hgetall(key)
                results = await pipe.execute()
        except RedisError as e:
            logger.error(f"Error saving video for project {project}: {e}")
            raise StoreUnavailable(str(e)) from e

        return PlaybackRecord.model_validate(results[-1])

    async def update_flags(
        self,
        project: str,
        is_playing: Optional[bool] = None,
        current_time: Optional[float] = None,
        is_minimized: Optional[bool] = None,
    ) -> PlaybackRecord:
        key = self._key(project)
        changes = {"updated_at": _now()}
        if is_playing is not None:
            changes["is_playing"] = _flag(is_playing)
        if current_time is not None:
            changes["current_time"] = repr(float(current_time))
        if is_minimized is not None:
            changes["is_minimized"] = _flag(is_minimized)

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        if not await pipe.exists(key):
                            raise VideoNotFound(project)
                        pipe.multi()
                        pipe.hset(key, mapping=changes)
                        pipe.hgetall(key)
                        results = await pipe.execute()
                        break
                    except WatchError:
                        # Record replaced or removed underneath us, try again
                        logger.info(f"Concurrent write on {key}, retrying flag update")
                        continue
        except RedisError as e:
            logger.error(f"Error updating video state for project {project}: {e}")
            raise StoreUnavailable(str(e)) from e

        return PlaybackRecord.model_validate(results[-1])

    async def remove(self, project: str) -> bool:
        try:
            removed = await self.redis.delete(self._key(project))
        except RedisError as e:
            logger.error(f"Error removing video for project {project}: {e}")
            raise StoreUnavailable(str(e)) from e
        return bool(removed)
