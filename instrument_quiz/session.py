from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .answer_matching import matches, normalize_guess
from .audio_guard import AudioBackend, AudioPlaybackGuard, PlaybackRequest, PlaybackStatus
from .catalog import CatalogError, InstrumentCatalog, InstrumentRecord
from .clock import Clock
from .config import QuizConfig
from .sequencer import build_order, next_target

logger = logging.getLogger(__name__)


class RoundState(StrEnum):
    IDLE = "idle"
    AWAITING_PLAY = "awaiting_play"
    PLAYED = "played"
    CORRECT = "correct"
    REVEALED = "revealed"


class PassState(StrEnum):
    IN_PROGRESS = "in_progress"
    ALL_COMPLETED = "all_completed"


class Outcome(StrEnum):
    AWAITING_PLAY = "awaiting-play"
    PLAYED = "played"
    CORRECT = "correct"
    CORRECT_PASS_COMPLETE = "correct+pass-complete"
    WRONG_HINT = "wrong-hint"
    WRONG_REVEAL_ANSWER = "wrong-reveal-answer"
    PLAYBACK_ERROR = "playback-error"
    MUST_PLAY_FIRST = "must-play-first"
    EMPTY_GUESS = "empty-guess"
    PASS_COMPLETE = "pass-complete"
    ROUND_CLOSED = "round-closed"


class Celebration(StrEnum):
    NONE = "none"
    BURST = "burst"
    SUSTAINED = "sustained"


class EventKind(StrEnum):
    PLAY = "play"
    SUBMIT = "submit"
    RESET = "reset"


class _Stage(StrEnum):
    IDLE = "idle"
    ROUND_OPEN = "round_open"
    ROUND_CLOSED = "round_closed"
    PASS_COMPLETE = "pass_complete"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    kind: EventKind
    text: str = ""


@dataclass(frozen=True, slots=True)
class SessionResponse:
    outcome: Outcome
    instrument_id: str | None = None
    celebration: Celebration = Celebration.NONE
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    locale: str
    round_state: RoundState
    pass_state: PassState
    nominee: str | None
    sounding: str | None
    has_played: bool
    playback_pending: bool
    wrong_streak: int
    score: int
    completed_count: int
    total: int
    passes_completed: int
    image_uri: str | None
    answer_name: str | None
    show_sad_face: bool
    guess_enabled: bool
    next_round_ready: bool
    last_response: SessionResponse | None


CelebrationTrigger = Callable[[Celebration], None]


class GameSession:
    """Round and pass state machine for the instrument quiz.

    Guesses are validated against ``sounding`` (the instrument whose audio
    last started successfully), not against the nominal round target. The two
    differ while a play request is in flight or was dropped.

    All time comes from the injected Clock; playback outcomes are collected by
    calling ``update`` once per frame.
    """

    def __init__(
        self,
        *,
        catalog: InstrumentCatalog,
        guard: AudioPlaybackGuard,
        clock: Clock,
        locale: str,
        round_close_delay_s: float = 1.5,
        rng: random.Random | None = None,
        celebrate: CelebrationTrigger | None = None,
    ) -> None:
        missing = catalog.missing_locale(locale)
        if missing:
            raise CatalogError(f"instruments without a {locale!r} name: {', '.join(missing)}")
        if round_close_delay_s < 0:
            raise ValueError("round_close_delay_s must be >= 0")

        self._catalog = catalog
        self._guard = guard
        self._clock = clock
        self._locale = locale
        self._round_close_delay_s = float(round_close_delay_s)
        self._rng = rng
        self._celebrate = celebrate

        self._order: tuple[str, ...] = build_order(catalog.ids_in_order(), rng)
        self._cursor = 0
        self._completed: set[str] = set()
        self._pass_state = PassState.IN_PROGRESS
        self._passes_completed = 0
        self._score = 0

        self._round_state = RoundState.IDLE
        self._nominee: str | None = None
        self._sounding: str | None = None
        self._subject: str | None = None
        self._has_played = False
        self._wrong_streak = 0
        self._image_revealed = False
        self._closed_at_s: float | None = None
        self._pending_play: PlaybackRequest | None = None
        self._last_response: SessionResponse | None = None

        self._routes: dict[tuple[_Stage, EventKind], Callable[[SessionEvent], SessionResponse | None]] = {
            (_Stage.IDLE, EventKind.PLAY): lambda _e: self.start_round(),
            (_Stage.IDLE, EventKind.SUBMIT): lambda e: self.submit_guess(e.text),
            (_Stage.IDLE, EventKind.RESET): lambda _e: self.reset(),
            (_Stage.ROUND_OPEN, EventKind.PLAY): lambda _e: self.play_current_sound(),
            (_Stage.ROUND_OPEN, EventKind.SUBMIT): lambda e: self.submit_guess(e.text),
            (_Stage.ROUND_OPEN, EventKind.RESET): lambda _e: self.reset(),
            (_Stage.ROUND_CLOSED, EventKind.PLAY): lambda _e: self._advance_after_close(),
            (_Stage.ROUND_CLOSED, EventKind.SUBMIT): lambda e: self.submit_guess(e.text),
            (_Stage.ROUND_CLOSED, EventKind.RESET): lambda _e: self.reset(),
            (_Stage.PASS_COMPLETE, EventKind.PLAY): lambda _e: self._advance_after_close(),
            (_Stage.PASS_COMPLETE, EventKind.SUBMIT): lambda e: self.submit_guess(e.text),
            (_Stage.PASS_COMPLETE, EventKind.RESET): lambda _e: self.reset(),
        }

    @property
    def catalog(self) -> InstrumentCatalog:
        return self._catalog

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def order(self) -> tuple[str, ...]:
        return self._order

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def completed(self) -> frozenset[str]:
        return frozenset(self._completed)

    @property
    def nominee(self) -> str | None:
        return self._nominee

    @property
    def sounding(self) -> str | None:
        return self._sounding

    @property
    def has_played(self) -> bool:
        return self._has_played

    @property
    def wrong_streak(self) -> int:
        return self._wrong_streak

    @property
    def score(self) -> int:
        return self._score

    @property
    def round_state(self) -> RoundState:
        return self._round_state

    @property
    def pass_state(self) -> PassState:
        return self._pass_state

    @property
    def passes_completed(self) -> int:
        return self._passes_completed

    def dispatch(self, event: SessionEvent) -> SessionResponse | None:
        stage = self._stage()
        logger.debug("Dispatch %s in stage %s", event.kind.value, stage.value)
        return self._routes[(stage, event.kind)](event)

    def start_round(self) -> SessionResponse:
        if self._pass_state is PassState.ALL_COMPLETED:
            return self._respond(Outcome.PASS_COMPLETE)

        if self._nominee is None:
            pick = next_target(self._order, self._cursor, self._completed)
            if pick.exhausted:
                self._mark_pass_complete()
                return self._respond(Outcome.PASS_COMPLETE)
            # Aborts the round start on a setup bug.
            self._catalog.require(pick.target)
            self._nominee = pick.target
            self._cursor = pick.cursor

        self._cancel_pending_play()
        self._sounding = None
        self._subject = None
        self._has_played = False
        self._wrong_streak = 0
        self._image_revealed = False
        self._closed_at_s = None
        self._round_state = RoundState.AWAITING_PLAY
        logger.info("Round started: %s", self._nominee)
        return self._respond(Outcome.AWAITING_PLAY, instrument_id=self._nominee)

    def play_current_sound(self) -> SessionResponse | None:
        """Request playback of the nominee. The outcome arrives from ``update``."""

        if self._round_state not in (RoundState.AWAITING_PLAY, RoundState.PLAYED):
            return None
        if self._nominee is None:
            return None

        record = self._catalog.require(self._nominee)
        request = self._guard.play(record.sound, tag=record.instrument_id)
        if request.status is PlaybackStatus.DROPPED:
            return None
        self._pending_play = request
        return None

    def update(self) -> SessionResponse | None:
        resolved = self._guard.update()
        if resolved is None or resolved is not self._pending_play:
            return None
        self._pending_play = None
        if self._round_state not in (RoundState.AWAITING_PLAY, RoundState.PLAYED):
            # Late start after the round closed: silence it and keep the verdict.
            self._guard.stop()
            return None

        if resolved.status is PlaybackStatus.STARTED:
            self._sounding = resolved.tag
            self._has_played = True
            if self._round_state is RoundState.AWAITING_PLAY:
                self._round_state = RoundState.PLAYED
            return self._respond(Outcome.PLAYED, instrument_id=resolved.tag)

        return self._respond(Outcome.PLAYBACK_ERROR, instrument_id=resolved.tag, detail=resolved.error)

    def submit_guess(self, text: str | None) -> SessionResponse:
        if self._pass_state is PassState.ALL_COMPLETED or self._round_state in (
            RoundState.CORRECT,
            RoundState.REVEALED,
        ):
            return self._respond(Outcome.ROUND_CLOSED)
        if not self._has_played or self._sounding is None:
            return self._respond(Outcome.MUST_PLAY_FIRST, instrument_id=self._nominee)
        if normalize_guess(text) == "":
            return self._respond(Outcome.EMPTY_GUESS, instrument_id=self._sounding)

        record = self._catalog.require(self._sounding)
        if matches(text, record):
            return self._credit(record)
        return self._penalize(record)

    def skip(self) -> SessionResponse:
        """Abandon the round without credit or penalty and start a fresh one."""

        self._stop_audio()
        self._abandon_round()
        return self.start_round()

    def reset(self) -> SessionResponse:
        """Full restart after a completed pass; otherwise the same as ``skip``."""

        if self._pass_state is not PassState.ALL_COMPLETED:
            return self.skip()

        self._stop_audio()
        self._completed.clear()
        self._cursor = 0
        if self._rng is not None:
            self._order = build_order(self._catalog.ids_in_order(), self._rng)
        self._pass_state = PassState.IN_PROGRESS
        self._abandon_round()
        logger.info("Full reset; starting pass %d", self._passes_completed + 1)
        return self.start_round()

    def next_round_ready(self) -> bool:
        if self._closed_at_s is None:
            return self._round_state is RoundState.IDLE
        return self._clock.now() - self._closed_at_s >= self._round_close_delay_s

    def snapshot(self) -> SessionSnapshot:
        subject = self._catalog.by_id(self._subject)
        closed = self._round_state in (RoundState.CORRECT, RoundState.REVEALED)
        show_sad_face = self._round_state is RoundState.REVEALED

        image_uri = None
        if subject is not None and self._image_revealed and not show_sad_face:
            image_uri = subject.image
        answer_name = None
        if subject is not None and closed:
            answer_name = subject.name(self._locale)

        return SessionSnapshot(
            locale=self._locale,
            round_state=self._round_state,
            pass_state=self._pass_state,
            nominee=self._nominee,
            sounding=self._sounding,
            has_played=self._has_played,
            playback_pending=self._pending_play is not None,
            wrong_streak=self._wrong_streak,
            score=self._score,
            completed_count=len(self._completed),
            total=len(self._order),
            passes_completed=self._passes_completed,
            image_uri=image_uri,
            answer_name=answer_name,
            show_sad_face=show_sad_face,
            guess_enabled=self._stage() is _Stage.ROUND_OPEN,
            next_round_ready=self.next_round_ready(),
            last_response=self._last_response,
        )

    def _stage(self) -> _Stage:
        if self._pass_state is PassState.ALL_COMPLETED:
            return _Stage.PASS_COMPLETE
        if self._round_state in (RoundState.AWAITING_PLAY, RoundState.PLAYED):
            return _Stage.ROUND_OPEN
        if self._round_state in (RoundState.CORRECT, RoundState.REVEALED):
            return _Stage.ROUND_CLOSED
        return _Stage.IDLE

    def _advance_after_close(self) -> SessionResponse | None:
        if not self.next_round_ready():
            return None
        if self._pass_state is PassState.ALL_COMPLETED:
            return self.reset()
        return self.start_round()

    def _credit(self, record: InstrumentRecord) -> SessionResponse:
        instrument_id = record.instrument_id
        self._completed.add(instrument_id)
        self._score += 1
        self._wrong_streak = 0
        self._subject = instrument_id
        self._image_revealed = True
        self._close_round(RoundState.CORRECT)

        if self._completed.issuperset(self._order):
            self._mark_pass_complete()
            outcome, celebration = Outcome.CORRECT_PASS_COMPLETE, Celebration.SUSTAINED
        else:
            outcome, celebration = Outcome.CORRECT, Celebration.BURST

        logger.info(
            "Correct: %s (score %d, %d/%d)",
            instrument_id,
            self._score,
            len(self._completed),
            len(self._order),
        )
        self._fire_celebration(celebration)
        return self._respond(outcome, instrument_id=instrument_id, celebration=celebration)

    def _penalize(self, record: InstrumentRecord) -> SessionResponse:
        instrument_id = record.instrument_id
        self._wrong_streak += 1
        self._subject = instrument_id

        if not self._image_revealed:
            self._image_revealed = True
            return self._respond(Outcome.WRONG_HINT, instrument_id=instrument_id)

        # Not completed: the scan offers it again after wrapping.
        self._close_round(RoundState.REVEALED)
        logger.info("Answer revealed: %s after %d wrong guesses", instrument_id, self._wrong_streak)
        return self._respond(Outcome.WRONG_REVEAL_ANSWER, instrument_id=instrument_id)

    def _close_round(self, state: RoundState) -> None:
        self._cancel_pending_play()
        self._round_state = state
        self._closed_at_s = self._clock.now()
        self._nominee = None
        self._sounding = None

    def _mark_pass_complete(self) -> None:
        if self._pass_state is PassState.ALL_COMPLETED:
            return
        self._pass_state = PassState.ALL_COMPLETED
        self._passes_completed += 1
        logger.info("Pass %d complete", self._passes_completed)

    def _abandon_round(self) -> None:
        self._nominee = None
        self._sounding = None
        self._subject = None
        self._closed_at_s = None
        self._round_state = RoundState.IDLE

    def _stop_audio(self) -> None:
        self._guard.stop()
        self._pending_play = None

    def _cancel_pending_play(self) -> None:
        if self._pending_play is None:
            return
        self._guard.cancel_pending()
        self._pending_play = None

    def _fire_celebration(self, celebration: Celebration) -> None:
        if self._celebrate is None or celebration is Celebration.NONE:
            return
        try:
            self._celebrate(celebration)
        except Exception:
            logger.exception("Celebration effect failed")

    def _respond(
        self,
        outcome: Outcome,
        *,
        instrument_id: str | None = None,
        celebration: Celebration = Celebration.NONE,
        detail: str | None = None,
    ) -> SessionResponse:
        response = SessionResponse(
            outcome=outcome,
            instrument_id=instrument_id,
            celebration=celebration,
            detail=detail,
        )
        self._last_response = response
        logger.debug("Outcome %s (%s)", outcome.value, instrument_id)
        return response


def build_game_session(
    *,
    catalog: InstrumentCatalog,
    backend: AudioBackend,
    clock: Clock,
    config: QuizConfig | None = None,
    celebrate: CelebrationTrigger | None = None,
) -> GameSession:
    """Create a session and open its first round."""

    cfg = config or QuizConfig()
    guard = AudioPlaybackGuard(backend=backend, clock=clock, grace_interval_s=cfg.grace_interval_s)
    rng = random.Random(cfg.seed) if cfg.shuffle_order else None
    session = GameSession(
        catalog=catalog,
        guard=guard,
        clock=clock,
        locale=cfg.locale,
        round_close_delay_s=cfg.round_close_delay_s,
        rng=rng,
        celebrate=celebrate,
    )
    session.start_round()
    return session
