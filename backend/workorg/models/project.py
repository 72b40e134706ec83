from typing import List

from pydantic import BaseModel


class Project(BaseModel):
    id: str
    name: str = ""
    owner: str
    members: List[str] = []

    def has_member(self, user_id: str) -> bool:
        return self.owner == user_id or user_id in self.members
