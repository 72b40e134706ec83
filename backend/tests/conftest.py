import json

import fakeredis
import jwt
import pytest

from workorg import config
from workorg.services.mutator import PlaybackMutator
from workorg.services.playback_store import PlaybackStore
from workorg.services.projects import ProjectDirectory
from workorg.services.relay import EventRelay
from workorg.services.rooms import RoomRegistry

PROJECT = "proj-1"
OTHER_PROJECT = "proj-2"


class RecordingTransport:
    """Stands in for the socket server: remembers every emit, can play dead for chosen sids."""

    def __init__(self):
        self.sent = []
        self.dead = set()

    async def emit(self, event, data=None, to=None):
        if to in self.dead:
            raise ConnectionError(f"{to} is gone")
        self.sent.append((to, event, data))

    def received(self, sid):
        return [(event, data) for to, event, data in self.sent if to == sid]


class FakeSocketServer(RecordingTransport):
    def __init__(self):
        super().__init__()
        self.handlers = {}
        self.sessions = {}

    def event(self, handler):
        self.handlers[handler.__name__] = handler
        return handler

    def on(self, event, handler=None):
        def register(h):
            self.handlers[event] = h
            return h
        return register(handler) if handler else register

    async def save_session(self, sid, session):
        self.sessions[sid] = session

    async def get_session(self, sid):
        return self.sessions[sid]

    async def trigger(self, event, sid, *args):
        return await self.handlers[event](sid, *args)


def make_token(user_id):
    return jwt.encode({"userId": user_id}, config.JWT_SECRET, algorithm="HS256")


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis(fake_server):
    return fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def sync_redis(fake_server):
    """Synchronous view of the same data, for seeding and inspecting from sync tests."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def seed_projects(sync_redis):
    # alice owns proj-1 with bob as member; carol belongs to proj-2 only
    projects = [
        {"id": PROJECT, "name": "Launch", "owner": "alice", "members": ["alice", "bob"]},
        {"id": OTHER_PROJECT, "name": "Other", "owner": "carol", "members": ["carol"]},
    ]
    for project in projects:
        sync_redis.set(f"project:{project['id']}", json.dumps(project))
    return projects


@pytest.fixture
def store(redis):
    return PlaybackStore(redis)


@pytest.fixture
def projects(redis, seed_projects):
    return ProjectDirectory(redis)


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def socket_server():
    return FakeSocketServer()


@pytest.fixture
def relay(transport, registry):
    return EventRelay(transport, registry)


@pytest.fixture
def mutator(store, projects, relay):
    return PlaybackMutator(store, projects, relay, fetch_titles=False)


@pytest.fixture
def token():
    return make_token
