from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from .clock import Clock

logger = logging.getLogger(__name__)

DEFAULT_GRACE_INTERVAL_S = 0.10
MAX_GRACE_INTERVAL_S = 0.50


class PlaybackError(Exception):
    """A sound could not be loaded, decoded or started."""


class AudioBackend(Protocol):
    """Output device adapter. Only the guard calls it."""

    def load(self, uri: str) -> object:
        """Acquire a playback resource for ``uri``; raise PlaybackError on failure."""
        ...

    def start(self, handle: object) -> None: ...

    def stop(self, handle: object) -> None: ...

    def is_playing(self, handle: object) -> bool: ...


class PlaybackStatus(StrEnum):
    PENDING = "pending"
    STARTED = "started"
    FAILED = "failed"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class PlaybackRequest:
    uri: str
    tag: str | None = None
    status: PlaybackStatus = PlaybackStatus.PENDING
    error: str | None = None
    requested_at_s: float = 0.0

    @property
    def done(self) -> bool:
        return self.status is not PlaybackStatus.PENDING


class AudioPlaybackGuard:
    """Owns the single active playback and the stop-before-start barrier.

    ``play`` never starts a sound directly. It releases whatever is playing and
    parks a pending request; ``update`` completes the transition once the
    backend reports the previous resource silent, or once the grace interval
    has elapsed without that acknowledgement. While a request is pending the
    guard is busy and further ``play`` calls are dropped.
    """

    def __init__(
        self,
        *,
        backend: AudioBackend,
        clock: Clock,
        grace_interval_s: float = DEFAULT_GRACE_INTERVAL_S,
    ) -> None:
        if not (0.0 <= grace_interval_s <= MAX_GRACE_INTERVAL_S):
            raise ValueError(f"grace_interval_s must be in [0.0, {MAX_GRACE_INTERVAL_S}]")
        self._backend = backend
        self._clock = clock
        self._grace_interval_s = float(grace_interval_s)

        self._active: object | None = None
        self._active_request: PlaybackRequest | None = None
        self._pending: PlaybackRequest | None = None
        self._stopping: object | None = None

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def active_request(self) -> PlaybackRequest | None:
        return self._active_request

    def is_sounding(self) -> bool:
        if self._active is None:
            return False
        return bool(self._backend.is_playing(self._active))

    def stop(self) -> None:
        """Halt the active playback and cancel any pending start. Idempotent."""

        self.cancel_pending()
        self._release_active()

    def cancel_pending(self) -> bool:
        """Drop a pending start, leaving the active playback alone."""

        request = self._pending
        if request is None:
            return False
        logger.debug("Cancelling pending playback of %s", request.uri)
        request.status = PlaybackStatus.CANCELLED
        self._pending = None
        self._stopping = None
        return True

    def play(self, uri: str, *, tag: str | None = None) -> PlaybackRequest:
        now = self._clock.now()
        if self._pending is not None:
            logger.debug("Playback busy; dropping request for %s", uri)
            return PlaybackRequest(uri=uri, tag=tag, status=PlaybackStatus.DROPPED, requested_at_s=now)

        self._stopping = self._release_active()
        request = PlaybackRequest(uri=uri, tag=tag, requested_at_s=now)
        self._pending = request
        return request

    def update(self) -> PlaybackRequest | None:
        """Advance a pending transition. Returns the request if it resolved now."""

        request = self._pending
        if request is None:
            return None

        if not self._stop_acknowledged(request):
            return None

        handle: object | None = None
        try:
            handle = self._backend.load(request.uri)
            self._backend.start(handle)
        except Exception as exc:
            if handle is not None:
                self._safe_backend_stop(handle)
            request.status = PlaybackStatus.FAILED
            request.error = str(exc) or exc.__class__.__name__
            logger.warning("Playback of %s failed: %s", request.uri, request.error)
        else:
            self._active = handle
            self._active_request = request
            request.status = PlaybackStatus.STARTED
            logger.debug("Playback of %s started", request.uri)
        finally:
            self._pending = None
            self._stopping = None
        return request

    def _stop_acknowledged(self, request: PlaybackRequest) -> bool:
        if self._stopping is None:
            return True
        if not self._backend.is_playing(self._stopping):
            return True
        if self._clock.now() - request.requested_at_s >= self._grace_interval_s:
            logger.warning(
                "No stop acknowledgement after %.3fs; starting %s anyway",
                self._grace_interval_s,
                request.uri,
            )
            return True
        return False

    def _release_active(self) -> object | None:
        handle = self._active
        if handle is None:
            return None
        self._active = None
        self._active_request = None
        self._safe_backend_stop(handle)
        return handle

    def _safe_backend_stop(self, handle: object) -> None:
        try:
            self._backend.stop(handle)
        except Exception as exc:
            logger.warning("Failed to stop playback cleanly: %s", exc)
