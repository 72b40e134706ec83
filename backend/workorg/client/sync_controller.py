import enum
import logging
import time
from typing import Callable, List, Optional, Tuple

from workorg import config
from workorg.errors import TransportUnavailable, VideoNotFound, WorkorgError
from workorg.models.video import PlaybackRecord
from workorg.services.relay import (
    VIDEO_ADDED,
    VIDEO_MINIMIZED,
    VIDEO_PAUSE,
    VIDEO_PLAY,
    VIDEO_REMOVED,
    VIDEO_SEEK,
)

logger = logging.getLogger(__name__)

JOIN_PROJECT = "join-project"
LEAVE_PROJECT = "leave-project"


class SyncState(str, enum.Enum):
    IDLE = "idle"
    JOINING = "joining"
    SYNCED = "synced"
    APPLYING = "applying"
    LEAVING = "leaving"


class PlaybackSyncController:
    """
    Keeps one client's player in step with the rest of a project room.

    The player is any object with ``seek_to(seconds)``, ``play()``, ``pause()``,
    ``get_current_time()`` and ``destroy()``; ``player_factory(record)`` builds
    one for a playback record. ``channel.emit(event, data)`` sends on the
    real-time channel and raises TransportUnavailable when it is down. ``api``
    is the HTTP client (see VideoApiClient).

    Player callbacks that fire while an inbound event is being applied, or right
    after a local action was sent, fall inside the echo window and are dropped.
    Without that two peers would bounce the same play/pause back and forth.
    """

    def __init__(
        self,
        project_id: str,
        channel,
        api,
        player_factory: Callable,
        clock: Callable[[], float] = time.monotonic,
        echo_window_ms: int = config.ECHO_SUPPRESSION_MS,
        drift_threshold: float = config.DRIFT_THRESHOLD_SECONDS,
    ):
        self.project_id = project_id
        self.channel = channel
        self.api = api
        self.player_factory = player_factory
        self.clock = clock
        self.echo_window = echo_window_ms / 1000.0
        self.drift_threshold = drift_threshold

        self.player = None
        self.record: Optional[PlaybackRecord] = None
        self.is_minimized = False
        self.degraded = False
        self.joined = False

        self._state = SyncState.IDLE
        self._suppress_until = 0.0
        self._pending: List[Tuple[str, dict]] = []

        # Last intended position and when it was set, to work out drift
        self._anchor_position = 0.0
        self._anchor_clock = 0.0
        self._anchor_playing = False

    # State

    @property
    def state(self) -> SyncState:
        if self._state is SyncState.APPLYING and self.clock() >= self._suppress_until:
            self._state = SyncState.SYNCED
        return self._state

    @property
    def suppressed(self) -> bool:
        return self.clock() < self._suppress_until

    def expected_position(self) -> float:
        if self._anchor_playing:
            return self._anchor_position + (self.clock() - self._anchor_clock)
        return self._anchor_position

    def _set_anchor(self, position: float, playing: Optional[bool] = None):
        self._anchor_position = float(position)
        self._anchor_clock = self.clock()
        if playing is not None:
            self._anchor_playing = playing

    def _open_window(self, applying: bool):
        self._suppress_until = self.clock() + self.echo_window
        if applying:
            self._state = SyncState.APPLYING

    # Room lifecycle

    async def join(self):
        self._state = SyncState.JOINING
        self.joined = True
        await self._emit(JOIN_PROJECT, self.project_id)
        await self._reconcile()

    async def leave(self):
        self._state = SyncState.LEAVING
        self.joined = False
        self._pending = []
        await self._emit(LEAVE_PROJECT, self.project_id)
        self._teardown()

    async def resync(self):
        """Reload the persisted record, e.g. after the channel came back."""
        if self.state is SyncState.LEAVING:
            return
        self._state = SyncState.JOINING
        await self._reconcile()

    async def on_connected(self):
        if not self.joined:
            return
        logger.info(f"Channel back for project {self.project_id}, rejoining")
        self.degraded = False
        await self.join()

    def on_transport_lost(self):
        if not self.degraded:
            logger.warning(f"Channel lost for project {self.project_id}, falling back to saved state")
        self.degraded = True

    async def _reconcile(self):
        try:
            record = await self.api.fetch(self.project_id)
        except Exception:
            # Queued events predate whatever a later fetch will return
            self._pending = []
            self._state = SyncState.IDLE
            raise
        self._load(record)

        # Events that arrived while the fetch was in flight are newer than it
        pending, self._pending = self._pending, []
        for name, data in pending:
            await self._apply(name, data)

    def _load(self, record: Optional[PlaybackRecord]):
        if record is None:
            self._teardown()
            return

        if self.player is None or self.record is None or self.record.video_id != record.video_id:
            self._teardown()
            self.player = self.player_factory(record)

        self.record = record
        self.is_minimized = record.is_minimized
        self._open_window(applying=True)
        if record.current_time:
            self.player.seek_to(record.current_time)
        if record.is_playing:
            self.player.play()
        else:
            self.player.pause()
        self._set_anchor(record.current_time, record.is_playing)

    def _teardown(self):
        if self.player is not None:
            self.player.destroy()
        self.player = None
        self.record = None
        if self._state is not SyncState.LEAVING:
            self._state = SyncState.IDLE

    # Inbound relay events

    async def handle_event(self, name: str, data: Optional[dict] = None):
        state = self.state
        if state is SyncState.LEAVING:
            return
        if state is SyncState.JOINING:
            self._pending.append((name, data or {}))
            return
        await self._apply(name, data or {})

    async def _apply(self, name: str, data: dict):
        if name == VIDEO_ADDED:
            await self.resync()
        elif name == VIDEO_REMOVED:
            self._teardown()
        elif name == VIDEO_MINIMIZED:
            self.is_minimized = bool(data.get("isMinimized"))
        elif name in (VIDEO_PLAY, VIDEO_PAUSE, VIDEO_SEEK):
            if self.player is None:
                logger.debug(f"Ignoring {name} for project {self.project_id}: no player")
                return
            position = float(data.get("currentTime", 0))
            self._open_window(applying=True)
            self.player.seek_to(position)
            if name == VIDEO_PLAY:
                self.player.play()
                self._set_anchor(position, True)
            elif name == VIDEO_PAUSE:
                self.player.pause()
                self._set_anchor(position, False)
            else:
                self._set_anchor(position)
        else:
            logger.debug(f"Unknown event {name}")

    # Player callbacks

    def _may_emit(self) -> bool:
        return self.player is not None and self.state is SyncState.SYNCED and not self.suppressed

    async def on_player_play(self):
        if self._may_emit():
            position = self.player.get_current_time()
            self._set_anchor(position, True)
            await self._send(VIDEO_PLAY, position, is_playing=True)

    async def on_player_pause(self):
        if self._may_emit():
            position = self.player.get_current_time()
            self._set_anchor(position, False)
            await self._send(VIDEO_PAUSE, position, is_playing=False)

    async def on_player_state_change(self):
        if not self._may_emit():
            return
        position = self.player.get_current_time()
        if abs(position - self.expected_position()) > self.drift_threshold:
            # Scrubbing or buffering moved the playhead, treat it as a seek
            self._set_anchor(position)
            await self._send(VIDEO_SEEK, position)

    # Local actions

    async def play(self):
        if self.player is None:
            return
        self._open_window(applying=False)
        self.player.play()
        position = self.player.get_current_time()
        self._set_anchor(position, True)
        await self._send(VIDEO_PLAY, position, is_playing=True)

    async def pause(self):
        if self.player is None:
            return
        self._open_window(applying=False)
        self.player.pause()
        position = self.player.get_current_time()
        self._set_anchor(position, False)
        await self._send(VIDEO_PAUSE, position, is_playing=False)

    async def seek(self, position: float):
        if self.player is None:
            return
        self._open_window(applying=False)
        self.player.seek_to(position)
        self._set_anchor(position)
        await self._send(VIDEO_SEEK, position)

    async def toggle_minimize(self):
        self.is_minimized = not self.is_minimized
        sent = await self._emit(VIDEO_MINIMIZED, {"projectId": self.project_id, "isMinimized": self.is_minimized})
        if not sent and self.record is not None:
            await self._save_state(is_minimized=self.is_minimized)

    async def share_video(self, video_url: str, title: Optional[str] = None) -> PlaybackRecord:
        record = await self.api.share(self.project_id, video_url, title)
        self._load(record)
        return record

    async def remove_video(self):
        await self.api.remove(self.project_id)
        self._teardown()

    # Outbound

    async def _emit(self, event: str, data) -> bool:
        if self.degraded:
            return False
        try:
            await self.channel.emit(event, data)
            return True
        except TransportUnavailable as e:
            logger.warning(f"Could not send {event}: {e}")
            self.on_transport_lost()
            return False

    async def _send(self, event: str, position: float, is_playing: Optional[bool] = None):
        sent = await self._emit(event, {"projectId": self.project_id, "currentTime": position})
        if not sent:
            # Peers pick this up from the saved record when they next reconcile
            await self._save_state(is_playing=is_playing, current_time=position)

    async def _save_state(self, **flags):
        try:
            await self.api.update_state(self.project_id, **flags)
        except VideoNotFound:
            logger.info(f"Video for project {self.project_id} is gone, tearing down player")
            self._teardown()
        except WorkorgError as e:
            logger.warning(f"Could not save playback state for project {self.project_id}: {e}")
