from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pygame

from .audio_guard import PlaybackError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _PygameHandle:
    uri: str
    sound: pygame.mixer.Sound


class PygameAudioBackend:
    """pygame.mixer output for the playback guard.

    Every sound goes through one dedicated channel, so starting a new handle
    always cuts the previous one. Catalog URIs are paths rooted at
    ``assets_dir`` ("/sounds/piano.mp3" -> assets_dir/sounds/piano.mp3);
    remote URIs are rejected because the quiz never fetches over the network.
    """

    _sample_rate = 44100

    def __init__(self, assets_dir: Path) -> None:
        self._assets_dir = assets_dir
        self._available = False
        self._channel: pygame.mixer.Channel | None = None

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=2, buffer=512)
            pygame.mixer.set_num_channels(max(8, int(pygame.mixer.get_num_channels())))
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except Exception as exc:
            logger.warning("Audio output unavailable: %s", exc)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def resolve(self, uri: str) -> Path:
        if "://" in uri:
            raise PlaybackError(f"remote sound not supported: {uri}")
        return self._assets_dir / uri.lstrip("/")

    def load(self, uri: str) -> object:
        if not self._available:
            raise PlaybackError("audio output unavailable")
        path = self.resolve(uri)
        if not path.exists():
            raise PlaybackError(f"sound file missing: {path}")
        try:
            sound = pygame.mixer.Sound(str(path))
        except pygame.error as exc:
            raise PlaybackError(f"cannot decode {path.name}: {exc}") from exc
        return _PygameHandle(uri=uri, sound=sound)

    def start(self, handle: object) -> None:
        assert isinstance(handle, _PygameHandle)
        if self._channel is None:
            raise PlaybackError("audio output unavailable")
        self._channel.play(handle.sound)

    def stop(self, handle: object) -> None:
        assert isinstance(handle, _PygameHandle)
        handle.sound.stop()
        if self._channel is not None and self._channel.get_sound() is handle.sound:
            self._channel.stop()

    def is_playing(self, handle: object) -> bool:
        assert isinstance(handle, _PygameHandle)
        if self._channel is None:
            return False
        return bool(self._channel.get_busy()) and self._channel.get_sound() is handle.sound
