"""Pygame shell for the instrument quiz.

One window holds the whole quiz: a play button, the instrument picture
(revealed as a hint or after the round), a message line, a text box for the
guess and a reset control. All round/pass logic lives in
instrument_quiz.session; this module only renders snapshots and turns input
into session events.

Keys: Enter submits, F2 plays, F5 resets, Esc quits. Buttons take mouse clicks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import pygame

from .audio_backend import PygameAudioBackend
from .catalog import default_catalog_path, load_catalog
from .clock import RealClock
from .config import QuizConfig
from .confetti import Confetti
from .messages import message_for, play_label, text
from .session import EventKind, GameSession, Outcome, SessionEvent, SessionSnapshot, build_game_session

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 640)
TARGET_FPS = 60
MAX_GUESS_CHARS = 40

# Light theme palette.
BACKGROUND = (0xF7, 0xF9, 0xFC)
TEXT_MAIN = (0x33, 0x33, 0x33)
TEXT_LIGHT = (0x66, 0x66, 0x66)
PRIMARY = (0xFF, 0x6B, 0x6B)
SECONDARY = (0x4E, 0xCD, 0xC4)
SUCCESS = (0x3F, 0xB8, 0x2E)
WARNING = (0xFF, 0xB3, 0x47)
ERROR = (0xFF, 0x6B, 0x6B)
PANEL = (0xE0, 0xE0, 0xE0)
DISABLED = (0xBB, 0xBB, 0xBB)

_OUTCOME_COLORS: dict[Outcome, tuple[int, int, int]] = {
    Outcome.CORRECT: SUCCESS,
    Outcome.CORRECT_PASS_COMPLETE: SUCCESS,
    Outcome.PASS_COMPLETE: SUCCESS,
    Outcome.WRONG_HINT: ERROR,
    Outcome.WRONG_REVEAL_ANSWER: ERROR,
    Outcome.PLAYBACK_ERROR: ERROR,
    Outcome.MUST_PLAY_FIRST: WARNING,
    Outcome.EMPTY_GUESS: WARNING,
    Outcome.ROUND_CLOSED: WARNING,
}

_CLEARS_INPUT = frozenset(
    {
        Outcome.AWAITING_PLAY,
        Outcome.CORRECT,
        Outcome.CORRECT_PASS_COMPLETE,
        Outcome.WRONG_HINT,
        Outcome.WRONG_REVEAL_ANSWER,
    }
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class QuizScreen:
    def __init__(
        self,
        app: App,
        *,
        session: GameSession,
        confetti: Confetti,
        assets_dir: Path,
    ) -> None:
        self._app = app
        self._session = session
        self._confetti = confetti
        self._assets_dir = assets_dir
        self._input = ""
        self._last_ticks = pygame.time.get_ticks()

        self._title_font = pygame.font.Font(None, 48)
        self._button_font = pygame.font.Font(None, 32)
        self._body_font = pygame.font.Font(None, 30)
        self._small_font = pygame.font.Font(None, 22)

        self._image_cache: dict[str, pygame.Surface | None] = {}
        self._hitboxes: dict[EventKind, pygame.Rect] = {}

    @property
    def input_text(self) -> str:
        return self._input

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            pos = getattr(event, "pos", None)
            if pos is None:
                return
            for kind, rect in self._hitboxes.items():
                if rect.collidepoint(pos):
                    self._send(kind)
                    return
            return

        if event.type != pygame.KEYDOWN:
            return

        key = event.key
        if key == pygame.K_ESCAPE:
            self._app.quit()
            return
        if key == pygame.K_F2:
            self._send(EventKind.PLAY)
            return
        if key == pygame.K_F5:
            self._send(EventKind.RESET)
            return
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._send(EventKind.SUBMIT)
            return
        if key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return

        ch = event.unicode
        if ch and ch.isprintable() and len(self._input) < MAX_GUESS_CHARS:
            self._input += ch

    def _send(self, kind: EventKind) -> None:
        snap = self._session.snapshot()
        if kind is EventKind.SUBMIT and not snap.guess_enabled:
            return
        response = self._session.dispatch(SessionEvent(kind=kind, text=self._input))
        if response is None:
            return
        if response.outcome in _CLEARS_INPUT:
            self._input = ""

    def render(self, surface: pygame.Surface) -> None:
        now_ticks = pygame.time.get_ticks()
        dt = max(0, now_ticks - self._last_ticks) / 1000.0
        self._last_ticks = now_ticks

        self._session.update()
        self._confetti.update(dt)
        snap = self._session.snapshot()

        w, h = surface.get_size()
        surface.fill(BACKGROUND)
        self._hitboxes = {}

        title = self._title_font.render(text("title", snap.locale), True, TEXT_MAIN)
        surface.blit(title, title.get_rect(midtop=(w // 2, 24)))

        progress = text(
            "progress",
            snap.locale,
            done=snap.completed_count,
            total=snap.total,
            score=snap.score,
        )
        prog = self._small_font.render(progress, True, TEXT_LIGHT)
        surface.blit(prog, prog.get_rect(midtop=(w // 2, 68)))

        play_enabled = not snap.playback_pending and (snap.guess_enabled or snap.next_round_ready)
        play_rect = pygame.Rect(0, 0, 280, 48)
        play_rect.midtop = (w // 2, 96)
        self._draw_button(surface, play_rect, play_label(snap), PRIMARY, enabled=play_enabled)
        self._hitboxes[EventKind.PLAY] = play_rect

        display = pygame.Rect(0, 0, min(420, w - 80), min(260, h - 360))
        display.midtop = (w // 2, play_rect.bottom + 20)
        self._draw_display(surface, display, snap)

        msg_y = display.bottom + 16
        self._draw_message(surface, snap, center_x=w // 2, top=msg_y)

        input_rect = pygame.Rect(0, 0, min(420, w - 240), 44)
        input_rect.topleft = (w // 2 - (input_rect.w + 130) // 2, msg_y + 44)
        self._draw_input(surface, input_rect, snap)

        submit_rect = pygame.Rect(input_rect.right + 10, input_rect.y, 120, 44)
        self._draw_button(surface, submit_rect, "OK", SECONDARY, enabled=snap.guess_enabled)
        self._hitboxes[EventKind.SUBMIT] = submit_rect

        reset_rect = pygame.Rect(0, 0, 180, 40)
        reset_rect.midtop = (w // 2, input_rect.bottom + 18)
        self._draw_button(surface, reset_rect, text("reset", snap.locale), TEXT_LIGHT, enabled=True)
        self._hitboxes[EventKind.RESET] = reset_rect

        hint = self._small_font.render(text("input_hint", snap.locale), True, TEXT_LIGHT)
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 12)))

        self._confetti.draw(surface)

    def _draw_button(
        self,
        surface: pygame.Surface,
        rect: pygame.Rect,
        label: str,
        color: tuple[int, int, int],
        *,
        enabled: bool,
    ) -> None:
        fill = color if enabled else DISABLED
        pygame.draw.rect(surface, fill, rect, border_radius=10)
        txt = self._button_font.render(label, True, (255, 255, 255))
        surface.blit(txt, txt.get_rect(center=rect.center))

    def _draw_display(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        pygame.draw.rect(surface, PANEL, rect, border_radius=8)

        if snap.show_sad_face:
            self._draw_sad_face(surface, rect)
            return

        image = None if snap.image_uri is None else self._load_image(snap.image_uri)
        if image is not None:
            fitted = self._fit_image(image, rect.size)
            surface.blit(fitted, fitted.get_rect(center=rect.center))
            return

        label = "Get Ready!" if snap.image_uri is None else (snap.answer_name or "?")
        txt = self._body_font.render(label, True, TEXT_LIGHT)
        surface.blit(txt, txt.get_rect(center=rect.center))

    def _draw_sad_face(self, surface: pygame.Surface, rect: pygame.Rect) -> None:
        radius = max(20, min(rect.w, rect.h) // 2 - 30)
        cx, cy = rect.center
        pygame.draw.circle(surface, ERROR, (cx, cy), radius, 6)
        eye_dx = radius // 3
        eye_y = cy - radius // 4
        eye_r = max(3, radius // 9)
        pygame.draw.circle(surface, ERROR, (cx - eye_dx, eye_y), eye_r)
        pygame.draw.circle(surface, ERROR, (cx + eye_dx, eye_y), eye_r)
        mouth = pygame.Rect(0, 0, radius, radius // 2)
        mouth.midtop = (cx, cy + radius // 4)
        pygame.draw.arc(surface, ERROR, mouth, 0.2, 2.94, 5)

    def _draw_message(self, surface: pygame.Surface, snap: SessionSnapshot, *, center_x: int, top: int) -> None:
        response = snap.last_response
        if response is None:
            return
        message = message_for(response, self._session.catalog, snap.locale)
        color = _OUTCOME_COLORS.get(response.outcome, TEXT_LIGHT)
        txt = self._body_font.render(message, True, color)
        surface.blit(txt, txt.get_rect(midtop=(center_x, top)))

    def _draw_input(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        border = SECONDARY if snap.guess_enabled else DISABLED
        pygame.draw.rect(surface, (255, 255, 255), rect, border_radius=6)
        pygame.draw.rect(surface, border, rect, 2, border_radius=6)
        caret = "|" if snap.guess_enabled and (pygame.time.get_ticks() // 500) % 2 == 0 else ""
        txt = self._body_font.render(self._input + caret, True, TEXT_MAIN)
        surface.blit(txt, (rect.x + 10, rect.y + (rect.h - txt.get_height()) // 2))

    def _load_image(self, uri: str) -> pygame.Surface | None:
        if uri in self._image_cache:
            return self._image_cache[uri]
        image: pygame.Surface | None = None
        if "://" not in uri:
            path = self._assets_dir / uri.lstrip("/")
            if path.exists():
                try:
                    image = pygame.image.load(str(path))
                except pygame.error as exc:
                    logger.warning("Cannot load image %s: %s", path, exc)
        self._image_cache[uri] = image
        return image

    @staticmethod
    def _fit_image(image: pygame.Surface, size: tuple[int, int]) -> pygame.Surface:
        iw, ih = image.get_size()
        if iw <= 0 or ih <= 0:
            return image
        scale = min(size[0] / iw, size[1] / ih)
        return pygame.transform.smoothscale(image, (max(1, int(iw * scale)), max(1, int(ih * scale))))


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    config: QuizConfig | None = None,
) -> int:
    cfg = config or QuizConfig.from_env()
    configure_logging(cfg.log_level)

    catalog = load_catalog(cfg.catalog_path or default_catalog_path())
    assets_dir = cfg.resolved_assets_dir()

    pygame.init()
    pygame.display.set_caption(text("title", cfg.locale))
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()
    app = App(surface=surface)

    confetti = Confetti()
    session = build_game_session(
        catalog=catalog,
        backend=PygameAudioBackend(assets_dir),
        clock=RealClock(),
        config=cfg,
        celebrate=confetti.trigger,
    )
    app.push(QuizScreen(app, session=session, confetti=confetti, assets_dir=assets_dir))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
