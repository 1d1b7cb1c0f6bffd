from dataclasses import dataclass
from typing import Callable, Hashable

from loguru import logger

VideoId = Hashable


@dataclass(frozen=True)
class RegisterSnapshot:
    active_id: VideoId | None
    previous_id: VideoId | None
    fullscreen: bool


Subscriber = Callable[[RegisterSnapshot], None]


def can_play_with_sound(my_id: VideoId, active_id: VideoId | None, fullscreen: bool, held_paused: bool) -> bool:
    """The only place the play authorization rule lives.

    A player that owns the fullscreen view passes `fullscreen=False` for itself.
    """
    return active_id is not None and active_id == my_id and not fullscreen and not held_paused


class ActiveVideoRegister:
    """Which video may play with sound in one app session.

    Not a singleton: create one per session (or per test) and hand it to every player.
    Subscribers are called synchronously, in subscription order, before the mutating call returns.
    """

    def __init__(self) -> None:
        self._active_id: VideoId | None = None
        self._previous_id: VideoId | None = None
        self._fullscreen = False
        self._subscribers: list[Subscriber] = []

    @property
    def active_id(self) -> VideoId | None:
        return self._active_id

    @property
    def previous_id(self) -> VideoId | None:
        return self._previous_id

    @property
    def fullscreen(self) -> bool:
        return self._fullscreen

    def snapshot(self) -> RegisterSnapshot:
        return RegisterSnapshot(self._active_id, self._previous_id, self._fullscreen)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)

    def _change_active(self, video_id: VideoId | None) -> bool:
        if (old_id := self._active_id) == video_id:
            return False
        if old_id is not None:
            self._previous_id = old_id
        self._active_id = video_id
        logger.debug(f"Active video changed: {old_id!r} -> {video_id!r}")
        self._notify()
        return True

    def set_active(self, video_id: VideoId) -> None:
        self._change_active(video_id)

    def clear_active(self) -> None:
        self._change_active(None)

    def restore_previous(self) -> VideoId | None:
        if self._previous_id is None:
            return None

        restored = self._previous_id
        if restored != self._active_id:
            self._active_id = restored
            logger.debug(f"Active video restored: {restored!r}")
            self._notify()
        return restored

    def swap_active(self, old_id: VideoId | None, new_id: VideoId) -> None:
        if old_id is not None and self._active_id == old_id:
            self.clear_active()
        self.set_active(new_id)

    def set_fullscreen(self, fullscreen: bool) -> None:
        if fullscreen == self._fullscreen:
            return
        self._fullscreen = fullscreen
        self._notify()

    def is_authorized(self, my_id: VideoId, *, fullscreen_owner: bool = False, held_paused: bool = False) -> bool:
        return can_play_with_sound(my_id, self._active_id, self._fullscreen and not fullscreen_owner, held_paused)
