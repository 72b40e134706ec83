import pytest

from workorg.realtime import register_handlers
from workorg.services.relay import EventRelay


@pytest.fixture
def server(socket_server, registry, projects):
    relay = EventRelay(socket_server, registry)
    register_handlers(socket_server, registry, relay, projects)
    return socket_server


async def connect(server, sid, token, user):
    await server.trigger("connect", sid, {}, {"token": token(user)})


@pytest.mark.asyncio
async def test_connect_requires_valid_token(server):
    with pytest.raises(ConnectionRefusedError):
        await server.trigger("connect", "s1", {}, None)
    with pytest.raises(ConnectionRefusedError):
        await server.trigger("connect", "s1", {}, {"token": "not-a-jwt"})


@pytest.mark.asyncio
async def test_connect_accepts_authorization_header(server, token):
    await server.trigger("connect", "s1", {"HTTP_AUTHORIZATION": f"Bearer {token('alice')}"}, None)
    assert server.sessions["s1"] == {"user_id": "alice"}


@pytest.mark.asyncio
async def test_member_play_reaches_joined_peers_only(server, registry, token):
    await connect(server, "a", token, "alice")
    await connect(server, "b", token, "bob")
    await connect(server, "c", token, "carol")

    await server.trigger("join-project", "a", "proj-1")
    await server.trigger("join-project", "b", "proj-1")
    await server.trigger("join-project", "c", "proj-2")

    await server.trigger("video-play", "a", {"projectId": "proj-1", "currentTime": 12.5})

    assert server.received("b") == [("video-play", {"currentTime": 12.5})]
    assert server.received("a") == []
    assert server.received("c") == []


@pytest.mark.asyncio
async def test_join_without_access_is_refused(server, registry, token):
    await connect(server, "c", token, "carol")

    await server.trigger("join-project", "c", "proj-1")

    assert registry.members_of("proj-1") == set()
    assert server.received("c") == [("error", {"message": "Access denied"})]


@pytest.mark.asyncio
async def test_join_accepts_object_payload(server, registry, token):
    await connect(server, "b", token, "bob")
    await server.trigger("join-project", "b", {"projectId": "proj-1"})
    assert registry.members_of("proj-1") == {"b"}


@pytest.mark.asyncio
async def test_leave_and_disconnect_stop_delivery(server, registry, token):
    for sid, user in (("a", "alice"), ("b", "bob")):
        await connect(server, sid, token, user)
        await server.trigger("join-project", sid, "proj-1")

    await server.trigger("leave-project", "b", "proj-1")
    await server.trigger("video-seek", "a", {"projectId": "proj-1", "currentTime": 4})
    assert server.received("b") == []

    await server.trigger("join-project", "b", "proj-1")
    await server.trigger("disconnect", "b")
    await server.trigger("video-pause", "a", {"projectId": "proj-1", "currentTime": 5})
    assert server.received("b") == []
    assert registry.rooms_of("b") == set()


@pytest.mark.asyncio
async def test_minimize_and_signals_are_forwarded(server, token):
    for sid, user in (("a", "alice"), ("b", "bob")):
        await connect(server, sid, token, user)
        await server.trigger("join-project", sid, "proj-1")

    await server.trigger("video-minimized", "a", {"projectId": "proj-1", "isMinimized": True})
    await server.trigger("video-added", "a", {"projectId": "proj-1"})
    await server.trigger("video-removed", "a", {"projectId": "proj-1"})

    assert server.received("b") == [
        ("video-minimized", {"isMinimized": True}),
        ("video-added", {}),
        ("video-removed", {}),
    ]


@pytest.mark.asyncio
async def test_event_without_project_is_ignored(server, token):
    await connect(server, "a", token, "alice")
    await server.trigger("video-play", "a", {"currentTime": 1})
    await server.trigger("join-project", "a", None)
    assert server.sent == []


@pytest.mark.asyncio
async def test_sender_outside_room_cannot_drive_it(server, token):
    """A connected session that never joined the room reaches nobody in it."""
    for sid, user in (("a", "alice"), ("b", "bob")):
        await connect(server, sid, token, user)
        await server.trigger("join-project", sid, "proj-1")
    await connect(server, "c", token, "carol")
    await connect(server, "b2", token, "bob")

    await server.trigger("video-play", "c", {"projectId": "proj-1", "currentTime": 999})
    await server.trigger("video-removed", "c", {"projectId": "proj-1"})
    # Members too must join before their events are relayed
    await server.trigger("video-seek", "b2", {"projectId": "proj-1", "currentTime": 3})

    assert server.received("a") == []
    assert server.received("b") == []
