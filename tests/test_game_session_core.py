from __future__ import annotations

import random

import pytest

from instrument_quiz.audio_guard import AudioPlaybackGuard
from instrument_quiz.catalog import CatalogError, InstrumentCatalog, InstrumentRecord
from instrument_quiz.config import QuizConfig
from instrument_quiz.session import (
    Celebration,
    EventKind,
    GameSession,
    Outcome,
    PassState,
    RoundState,
    SessionEvent,
    build_game_session,
)

from .fakes import FakeBackend, FakeClock

PLAY = SessionEvent(EventKind.PLAY)
RESET = SessionEvent(EventKind.RESET)


def _record(instrument_id: str, en: str, ro: str, *aliases: str) -> InstrumentRecord:
    return InstrumentRecord(
        instrument_id=instrument_id,
        names=(("en", en), ("ro", ro)),
        sound=f"/sounds/{instrument_id}.mp3",
        image=f"/images/{instrument_id}.jpg",
        aliases=tuple(aliases),
    )


CATALOG = InstrumentCatalog(
    [
        _record("piano", "Piano", "Pian", "keyboard"),
        _record("violin", "Violin", "Vioară", "fiddle"),
        _record("harp", "Harp", "Harpă"),
    ]
)


def _build(
    catalog: InstrumentCatalog = CATALOG,
    *,
    celebrations: list[Celebration] | None = None,
    config: QuizConfig | None = None,
) -> tuple[GameSession, FakeBackend, FakeClock]:
    clock = FakeClock()
    backend = FakeBackend(clock=clock)
    session = build_game_session(
        catalog=catalog,
        backend=backend,
        clock=clock,
        config=config or QuizConfig(locale="en"),
        celebrate=None if celebrations is None else celebrations.append,
    )
    return session, backend, clock


def _play(session: GameSession) -> Outcome | None:
    assert session.dispatch(PLAY) is None
    response = session.update()
    return None if response is None else response.outcome


def _guess(session: GameSession, text: str) -> Outcome:
    response = session.dispatch(SessionEvent(EventKind.SUBMIT, text))
    assert response is not None
    return response.outcome


def test_build_opens_first_round_on_first_catalog_item() -> None:
    session, _, _ = _build()

    assert session.round_state is RoundState.AWAITING_PLAY
    assert session.pass_state is PassState.IN_PROGRESS
    assert session.nominee == "piano"
    assert session.sounding is None
    assert session.has_played is False
    assert session.cursor == 1
    assert session.snapshot().last_response is not None
    assert session.snapshot().last_response.outcome is Outcome.AWAITING_PLAY


def test_guess_before_play_is_must_play_first_not_a_verdict() -> None:
    session, _, _ = _build()

    assert _guess(session, "piano") is Outcome.MUST_PLAY_FIRST
    assert _guess(session, "violin") is Outcome.MUST_PLAY_FIRST
    assert session.wrong_streak == 0
    assert session.score == 0
    assert session.completed == frozenset()


def test_guess_racing_an_unresolved_play_is_rejected() -> None:
    session, _, _ = _build()

    session.dispatch(PLAY)
    assert session.snapshot().playback_pending is True
    assert _guess(session, "piano") is Outcome.MUST_PLAY_FIRST

    response = session.update()
    assert response is not None and response.outcome is Outcome.PLAYED
    assert session.sounding == "piano"
    assert session.has_played is True
    assert session.round_state is RoundState.PLAYED


def test_empty_guess_is_advisory_only() -> None:
    session, _, _ = _build()
    _play(session)

    assert _guess(session, "   ") is Outcome.EMPTY_GUESS
    assert session.wrong_streak == 0
    assert session.round_state is RoundState.PLAYED


def test_correct_guess_credits_and_closes_round() -> None:
    celebrations: list[Celebration] = []
    session, _, _ = _build(celebrations=celebrations)
    _play(session)

    response = session.dispatch(SessionEvent(EventKind.SUBMIT, "  KEYBOARD "))
    assert response is not None
    assert response.outcome is Outcome.CORRECT
    assert response.instrument_id == "piano"
    assert response.celebration is Celebration.BURST
    assert celebrations == [Celebration.BURST]

    assert session.completed == frozenset({"piano"})
    assert session.score == 1
    assert session.nominee is None
    assert session.sounding is None
    assert session.round_state is RoundState.CORRECT

    snap = session.snapshot()
    assert snap.image_uri == "/images/piano.jpg"
    assert snap.answer_name == "Piano"
    assert snap.guess_enabled is False
    assert _guess(session, "piano") is Outcome.ROUND_CLOSED


def test_other_locale_name_is_accepted() -> None:
    session, _, _ = _build()
    _play(session)

    assert _guess(session, "pian") is Outcome.CORRECT


def test_first_wrong_reveals_image_second_reveals_answer_without_credit() -> None:
    session, _, _ = _build()
    _play(session)

    assert _guess(session, "tuba") is Outcome.WRONG_HINT
    snap = session.snapshot()
    assert snap.image_uri == "/images/piano.jpg"
    assert snap.show_sad_face is False
    assert snap.guess_enabled is True
    assert session.wrong_streak == 1

    assert _guess(session, "oboe") is Outcome.WRONG_REVEAL_ANSWER
    assert session.wrong_streak == 2
    assert session.round_state is RoundState.REVEALED
    assert session.completed == frozenset()
    assert session.score == 0

    snap = session.snapshot()
    assert snap.show_sad_face is True
    assert snap.image_uri is None
    assert snap.answer_name == "Piano"
    assert snap.guess_enabled is False
    assert _guess(session, "piano") is Outcome.ROUND_CLOSED


def test_next_round_only_after_close_delay() -> None:
    session, _, clock = _build()
    _play(session)
    _guess(session, "piano")

    assert session.dispatch(PLAY) is None
    clock.advance(1.0)
    assert session.dispatch(PLAY) is None

    clock.advance(0.5)
    response = session.dispatch(PLAY)
    assert response is not None and response.outcome is Outcome.AWAITING_PLAY
    assert session.nominee == "violin"
    assert session.has_played is False
    assert session.wrong_streak == 0


def test_playback_failure_surfaces_error_and_keeps_round_unplayed() -> None:
    session, backend, _ = _build()
    backend.failing_uris.add("/sounds/piano.mp3")

    assert _play(session) is Outcome.PLAYBACK_ERROR
    assert session.has_played is False
    assert session.round_state is RoundState.AWAITING_PLAY
    assert session.snapshot().last_response.detail is not None
    assert _guess(session, "piano") is Outcome.MUST_PLAY_FIRST

    backend.failing_uris.clear()
    assert _play(session) is Outcome.PLAYED


def test_second_play_request_while_busy_is_dropped() -> None:
    session, backend, _ = _build()

    assert session.dispatch(PLAY) is None
    assert session.dispatch(PLAY) is None
    session.update()
    assert session.update() is None

    assert [h.uri for h in backend.handles] == ["/sounds/piano.mp3"]
    assert backend.audible() == ["/sounds/piano.mp3"]


def test_replay_in_flight_is_cancelled_when_round_closes() -> None:
    session, backend, _ = _build()
    _play(session)

    # Replay requested, then answered before the replay resolves.
    session.dispatch(PLAY)
    assert session.snapshot().playback_pending is True
    assert _guess(session, "piano") is Outcome.CORRECT

    assert session.snapshot().playback_pending is False
    assert session.update() is None
    assert session.sounding is None
    assert session.round_state is RoundState.CORRECT
    assert session.snapshot().last_response.outcome is Outcome.CORRECT
    assert backend.audible() == []
    assert len(backend.handles) == 1


def test_next_round_waits_for_its_own_sound() -> None:
    session, backend, clock = _build()
    _play(session)
    session.dispatch(PLAY)
    _guess(session, "piano")

    clock.advance(2.0)
    session.dispatch(PLAY)
    assert session.nominee == "violin"
    assert session.update() is None
    assert session.sounding is None

    assert _guess(session, "piano") is Outcome.MUST_PLAY_FIRST
    assert session.score == 1
    assert session.cursor == 2

    assert _play(session) is Outcome.PLAYED
    assert session.sounding == "violin"
    assert backend.audible() == ["/sounds/violin.mp3"]
    assert _guess(session, "violin") is Outcome.CORRECT
    assert session.score == 2
    assert session.completed == frozenset({"piano", "violin"})


def test_skip_moves_on_without_touching_completion() -> None:
    session, backend, _ = _build()
    _play(session)

    response = session.skip()
    assert response.outcome is Outcome.AWAITING_PLAY
    assert session.nominee == "violin"
    assert session.completed == frozenset()
    assert session.score == 0
    assert backend.audible() == []


def test_skip_cancels_an_in_flight_play() -> None:
    session, backend, _ = _build()

    session.dispatch(PLAY)
    session.skip()
    assert session.update() is None
    assert backend.handles == []
    assert session.sounding is None


def test_reset_mid_pass_behaves_like_skip() -> None:
    session, _, clock = _build()
    _play(session)
    _guess(session, "piano")
    clock.advance(2.0)
    session.dispatch(PLAY)

    response = session.dispatch(RESET)
    assert response is not None and response.outcome is Outcome.AWAITING_PLAY
    assert session.completed == frozenset({"piano"})
    assert session.nominee == "harp"
    assert session.score == 1


def test_reset_after_full_pass_clears_completion_and_cursor() -> None:
    celebrations: list[Celebration] = []
    session, _, clock = _build(celebrations=celebrations)

    for name in ("piano", "violin"):
        _play(session)
        _guess(session, name)
        clock.advance(2.0)
        session.dispatch(PLAY)

    _play(session)
    assert _guess(session, "harp") is Outcome.CORRECT_PASS_COMPLETE
    assert celebrations[-1] is Celebration.SUSTAINED
    assert session.pass_state is PassState.ALL_COMPLETED
    assert session.passes_completed == 1

    # Play on a finished pass starts over, the same as Reset.
    assert session.dispatch(PLAY) is None
    clock.advance(2.0)
    response = session.dispatch(PLAY)
    assert response is not None and response.outcome is Outcome.AWAITING_PLAY
    assert session.score == 3
    assert session.completed == frozenset()
    assert session.pass_state is PassState.IN_PROGRESS
    assert session.nominee == "piano"
    assert session.cursor == 1


def test_explicit_reset_after_full_pass() -> None:
    session, _, _ = _build()
    for name in ("piano", "violin", "harp"):
        _play(session)
        _guess(session, name)
        session.start_round()

    assert session.start_round().outcome is Outcome.PASS_COMPLETE
    response = session.reset()
    assert response.outcome is Outcome.AWAITING_PLAY
    assert session.completed == frozenset()
    assert session.nominee == "piano"


def test_missing_active_locale_is_a_setup_error() -> None:
    catalog = InstrumentCatalog(
        [InstrumentRecord(instrument_id="gong", names=(("en", "Gong"),), sound="/g.mp3", image="/g.jpg")]
    )
    clock = FakeClock()
    guard = AudioPlaybackGuard(backend=FakeBackend(clock=clock), clock=clock)

    with pytest.raises(CatalogError):
        GameSession(catalog=catalog, guard=guard, clock=clock, locale="ro")


def test_shuffled_order_is_seeded_permutation() -> None:
    config = QuizConfig(locale="en", shuffle_order=True, seed=11)
    s1, _, _ = _build(config=config)
    s2, _, _ = _build(config=config)

    assert s1.order == s2.order
    assert sorted(s1.order) == sorted(CATALOG.ids_in_order())
    assert s1.nominee == s1.order[0]
    assert s1.order == tuple(_shuffled(CATALOG.ids_in_order(), 11))


def _shuffled(ids: tuple[str, ...], seed: int) -> list[str]:
    out = list(ids)
    random.Random(seed).shuffle(out)
    return out
