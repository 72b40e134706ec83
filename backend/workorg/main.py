import logging
from contextlib import asynccontextmanager
from typing import Optional

import socketio
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from workorg import config
from workorg.auth import get_current_user
from workorg.database import redis_client
from workorg.errors import (
    AccessDenied,
    InvalidVideoReference,
    ProjectNotFound,
    StoreUnavailable,
    VideoNotFound,
)
from workorg.models.video import PlaybackRecord, PlaybackStateUpdate, ShareVideoRequest
from workorg.realtime import register_handlers
from workorg.services.mutator import PlaybackMutator
from workorg.services.playback_store import PlaybackStore
from workorg.services.projects import ProjectDirectory
from workorg.services.relay import EventRelay
from workorg.services.rooms import RoomRegistry

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

origins = config.ALLOWED_ORIGINS


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("WORKORG API starting")
    yield
    await redis_client.aclose()


app = FastAPI(title="WORKORG API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins=origins if origins != ["*"] else "*")
socket_app = socketio.ASGIApp(sio, app)

# Process-wide services, built once and handed to whoever needs them
registry = RoomRegistry(single_room=config.SINGLE_ROOM_PER_SESSION)
relay = EventRelay(sio, registry)
projects = ProjectDirectory(redis_client)
playback_mutator = PlaybackMutator(PlaybackStore(redis_client), projects, relay)

register_handlers(sio, registry, relay, projects)


def get_mutator() -> PlaybackMutator:
    return playback_mutator


async def _run(call):
    try:
        return await call
    except ProjectNotFound:
        raise HTTPException(status_code=404, detail="Project not found")
    except AccessDenied:
        raise HTTPException(status_code=403, detail="Access denied")
    except VideoNotFound:
        raise HTTPException(status_code=404, detail="No shared video found")
    except InvalidVideoReference:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL. Please provide a valid YouTube video link.")
    except StoreUnavailable as e:
        logger.error(f"Store unavailable: {e}")
        raise HTTPException(status_code=500, detail="Server error")


# REST API
@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "WORKORG API is running"}


@app.get("/api/videos/project/{project_id}", response_model=Optional[PlaybackRecord])
async def get_shared_video(
    project_id: str,
    user_id: str = Depends(get_current_user),
    mutator: PlaybackMutator = Depends(get_mutator),
):
    # A project without a video is a normal empty result
    return await _run(mutator.fetch(project_id, user_id))


@app.post("/api/videos/project/{project_id}", response_model=PlaybackRecord)
async def share_video(
    project_id: str,
    body: ShareVideoRequest,
    user_id: str = Depends(get_current_user),
    mutator: PlaybackMutator = Depends(get_mutator),
    x_socket_id: Optional[str] = Header(default=None),
):
    return await _run(mutator.share(project_id, user_id, body.video_url, body.title, origin=x_socket_id))


@app.put("/api/videos/project/{project_id}/state", response_model=PlaybackRecord)
async def update_video_state(
    project_id: str,
    body: PlaybackStateUpdate,
    user_id: str = Depends(get_current_user),
    mutator: PlaybackMutator = Depends(get_mutator),
    x_socket_id: Optional[str] = Header(default=None),
):
    return await _run(mutator.set_state(
        project_id,
        user_id,
        is_playing=body.is_playing,
        current_time=body.current_time,
        is_minimized=body.is_minimized,
        origin=x_socket_id,
    ))


@app.delete("/api/videos/project/{project_id}")
async def remove_video(
    project_id: str,
    user_id: str = Depends(get_current_user),
    mutator: PlaybackMutator = Depends(get_mutator),
    x_socket_id: Optional[str] = Header(default=None),
):
    await _run(mutator.unshare(project_id, user_id, origin=x_socket_id))
    return {"message": "Shared video removed successfully"}
