import logging
from typing import Optional

from redis.exceptions import RedisError

from workorg.errors import StoreUnavailable
from workorg.models.project import Project

logger = logging.getLogger(__name__)


class ProjectDirectory:
    """Read side of the project subsystem, used only for membership checks."""

    def __init__(self, redis):
        self.redis = redis

    async def get(self, project_id: str) -> Optional[Project]:
        try:
            data = await self.redis.get(f"project:{project_id}")
        except RedisError as e:
            logger.error(f"Error loading project {project_id}: {e}")
            raise StoreUnavailable(str(e)) from e
        if not data:
            return None
        return Project.model_validate_json(data)

    async def save(self, project: Project):
        await self.redis.set(f"project:{project.id}", project.model_dump_json())

    async def has_access(self, project_id: str, user_id: str) -> bool:
        project = await self.get(project_id)
        return bool(project and project.has_member(user_id))
