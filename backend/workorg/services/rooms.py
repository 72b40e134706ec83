import logging
from typing import Dict, List, Set

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    In-memory map of socket sessions to project rooms.

    Mutated only from the event loop that owns the socket server, so no locking.
    """

    def __init__(self, single_room: bool = False):
        self.single_room = single_room
        self._members: Dict[str, Set[str]] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def join(self, session: str, project: str) -> List[str]:
        """Add session to the project's room, returning any rooms it was evicted from."""
        evicted = []
        if self.single_room:
            evicted = [p for p in self.rooms_of(session) if p != project]
            for previous in evicted:
                self.leave(session, previous)

        self._members.setdefault(project, set()).add(session)
        self._rooms.setdefault(session, set()).add(project)
        return evicted

    def leave(self, session: str, project: str):
        members = self._members.get(project)
        if members is not None:
            members.discard(session)
            if not members:
                del self._members[project]

        rooms = self._rooms.get(session)
        if rooms is not None:
            rooms.discard(project)
            if not rooms:
                del self._rooms[session]

    def members_of(self, project: str) -> Set[str]:
        return set(self._members.get(project, ()))

    def rooms_of(self, session: str) -> Set[str]:
        return set(self._rooms.get(session, ()))

    def drop_session(self, session: str) -> Set[str]:
        rooms = self.rooms_of(session)
        for project in rooms:
            self.leave(session, project)
        if rooms:
            logger.info(f"Session {session} dropped from rooms {sorted(rooms)}")
        return rooms
