from __future__ import annotations

from asyncio import get_running_loop
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Callable, Any

from loguru import logger

from connectapp.config import config
from connectapp.playback.register import ActiveVideoRegister, RegisterSnapshot, VideoId
from connectapp.playback.status import PlaybackStatus, Loaded, parse_status
from connectapp.utils.timers import Timer, TaskSet


class MediaPlayer(Protocol):
    async def play(self) -> None:
        ...

    async def pause(self) -> None:
        ...

    async def set_position(self, position_millis: int) -> None:
        ...

    async def replay(self) -> None:
        ...


class PlayerState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    SCRUBBING = "scrubbing"


class TapAction(Enum):
    PLAY = "play"
    PAUSE = "pause"
    OPEN_SHORTS = "open_shorts"


def _ms(value: int) -> float:
    return value / 1000


@dataclass(frozen=True)
class PlayerTimings:
    long_press: float = field(default_factory=lambda: _ms(config.player_long_press_ms))
    double_tap: float = field(default_factory=lambda: _ms(config.player_double_tap_ms))
    pause_icon: float = field(default_factory=lambda: _ms(config.player_pause_icon_ms))
    controls: float = field(default_factory=lambda: _ms(config.player_controls_ms))
    loop: bool = field(default_factory=lambda: config.player_loop)


@dataclass
class PlayerSeekState:
    position_millis: int = 0
    duration_millis: int = 0
    is_scrubbing: bool = False
    is_held_paused: bool = False

    @property
    def progress(self) -> float:
        if self.duration_millis <= 0:
            return 0.
        return min(1., max(0., self.position_millis / self.duration_millis))


def format_time(millis: int) -> str:
    total_seconds = max(0, int(millis)) // 1000
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"


def seek_fraction(x: float, bar_width: float) -> float:
    if bar_width <= 0:
        return 0.
    return min(1., max(0., x / bar_width))


class PlayerController:
    """Per-player state machine driven by gestures, status callbacks and the shared register.

    State changes are applied synchronously so every player agrees with the register at once.
    Calls into the media player are spawned in the background, `drain()` waits for them.
    """

    def __init__(
            self,
            video_id: VideoId,
            register: ActiveVideoRegister,
            player: MediaPlayer,
            *,
            timings: PlayerTimings | None = None,
            fullscreen_owner: bool = False,
            on_error: Callable[[BaseException], Any] | None = None,
    ) -> None:
        self.video_id = video_id
        self.fullscreen_owner = fullscreen_owner
        self.state = PlayerState.IDLE
        self.seek = PlayerSeekState()
        self.loading = False
        self.error: BaseException | None = None
        self.pause_icon_visible = False
        self.controls_visible = False

        self._register = register
        self._player = player
        self._timings = timings or PlayerTimings()
        self._on_error = on_error
        self._unsubscribe: Callable[[], None] | None = None
        self._last_tap: float | None = None
        self._tasks = TaskSet(f"player {video_id!r}")
        self._press_timer = Timer()
        self._pause_icon_timer = Timer()
        self._controls_timer = Timer()

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    @property
    def authorized(self) -> bool:
        return self._register.is_authorized(
            self.video_id, fullscreen_owner=self.fullscreen_owner, held_paused=self.seek.is_held_paused,
        )

    async def drain(self) -> None:
        await self._tasks.drain()

    def mount(self) -> None:
        if self.mounted:
            return
        self._unsubscribe = self._register.subscribe(self._on_register_change)
        self._sync()

    def unmount(self) -> None:
        for timer in (self._press_timer, self._pause_icon_timer, self._controls_timer):
            timer.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        self.state = PlayerState.IDLE
        self.seek.is_scrubbing = False
        self.seek.is_held_paused = False
        self.pause_icon_visible = False
        self.controls_visible = False
        self._tasks.cancel_all()
        self._tasks.spawn(self._player.pause())

    def _on_register_change(self, _: RegisterSnapshot) -> None:
        self._sync()

    def _sync(self) -> None:
        if self.state is PlayerState.SCRUBBING:
            return
        if self.authorized:
            if self.state is not PlayerState.PLAYING:
                self._start_playback()
        elif self.state is PlayerState.PLAYING:
            self._stop_playback()

    def _start_playback(self) -> None:
        self.state = PlayerState.PLAYING
        self._tasks.spawn(self._player.play())

    def _stop_playback(self) -> None:
        self.state = PlayerState.PAUSED
        self._tasks.spawn(self._player.pause())

    def _show_controls(self) -> None:
        self.controls_visible = True
        self._controls_timer.start(self._timings.controls, self._hide_controls)

    def _hide_controls(self) -> None:
        self.controls_visible = False

    def _flash_pause_icon(self) -> None:
        self.pause_icon_visible = True
        self._pause_icon_timer.start(self._timings.pause_icon, self._hide_pause_icon)

    def _hide_pause_icon(self) -> None:
        self.pause_icon_visible = False

    def tap(self, now: float | None = None) -> TapAction | None:
        if self.state is PlayerState.SCRUBBING:
            return None

        now = get_running_loop().time() if now is None else now
        if self._last_tap is not None and now - self._last_tap < self._timings.double_tap:
            self._last_tap = None
            if self.state is PlayerState.PLAYING:
                self._stop_playback()
            self._register.clear_active()
            return TapAction.OPEN_SHORTS

        self._last_tap = now
        self._show_controls()

        if self.state is PlayerState.PLAYING:
            self._stop_playback()
            if self._register.active_id == self.video_id:
                self._register.clear_active()
            self._flash_pause_icon()
            return TapAction.PAUSE

        self._register.set_active(self.video_id)
        self._sync()
        return TapAction.PLAY

    def press_in(self) -> None:
        self._press_timer.start(self._timings.long_press, self._on_long_press)

    def _on_long_press(self) -> None:
        if self.state is PlayerState.PLAYING:
            self.seek.is_held_paused = True
            self._stop_playback()

    def press_out(self) -> bool:
        """Ends a touch. Returns True if playback resumed after a hold-to-pause."""
        self._press_timer.cancel()
        if not self.seek.is_held_paused:
            return False

        self.seek.is_held_paused = False
        self._register.set_active(self.video_id)
        self._sync()
        return True

    def begin_scrub(self) -> None:
        if self.state is PlayerState.SCRUBBING:
            return
        if self.state is PlayerState.PLAYING:
            self._tasks.spawn(self._player.pause())
        self.state = PlayerState.SCRUBBING
        self.seek.is_scrubbing = True

    def move_scrub(self, x: float, bar_width: float) -> int:
        if self.seek.is_scrubbing:
            self.seek.position_millis = int(seek_fraction(x, bar_width) * self.seek.duration_millis)
        return self.seek.position_millis

    async def end_scrub(self, x: float, bar_width: float) -> None:
        if not self.seek.is_scrubbing:
            return

        position = int(seek_fraction(x, bar_width) * self.seek.duration_millis)
        self.seek.position_millis = position
        try:
            if self.seek.duration_millis > 0:
                await self._player.set_position(position)
            if not self.mounted:
                return

            self._register.set_active(self.video_id)
            if self.authorized:
                self.state = PlayerState.PLAYING
                await self._player.play()
        finally:
            if self.state is PlayerState.SCRUBBING:
                self.state = PlayerState.PAUSED
            self.seek.is_scrubbing = False

    def enter_fullscreen(self) -> None:
        self.fullscreen_owner = True
        self._register.set_active(self.video_id)
        self._register.set_fullscreen(True)
        self._sync()

    def exit_fullscreen(self) -> None:
        if self.state is PlayerState.PLAYING:
            self._stop_playback()
        # cleared first so the feed copy of this video does not resume
        self._register.clear_active()
        self._register.set_fullscreen(False)
        self.fullscreen_owner = False

    def on_load_start(self) -> None:
        self.loading = True
        self.error = None

    def on_load(self, status: PlaybackStatus | dict) -> None:
        self.loading = False
        self.on_playback_status(status)
        self._sync()

    def on_error(self, exc: BaseException) -> None:
        self.loading = False
        self.error = exc
        logger.opt(exception=exc).warning(f"Player for video {self.video_id!r} reported an error")
        if self._on_error is not None:
            self._on_error(exc)

    def on_playback_status(self, status: PlaybackStatus | dict) -> None:
        if isinstance(status, dict):
            status = parse_status(status)
        if not isinstance(status, Loaded):
            return

        self.seek.duration_millis = status.duration_millis
        if not self.seek.is_scrubbing:
            self.seek.position_millis = status.position_millis

        if not status.did_just_finish or self.state is not PlayerState.PLAYING:
            return
        if self._timings.loop:
            if not self.seek.is_scrubbing:
                self.seek.position_millis = 0
            self._tasks.spawn(self._player.replay())
        else:
            self.state = PlayerState.IDLE
