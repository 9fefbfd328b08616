from __future__ import annotations

import pytest

from instrument_quiz.catalog import default_catalog_path, load_catalog
from instrument_quiz.config import QuizConfig, SUPPORTED_LOCALES
from instrument_quiz.messages import MESSAGES, message_for, play_label, text
from instrument_quiz.session import EventKind, Outcome, SessionEvent, SessionResponse, build_game_session

from .fakes import FakeBackend, FakeClock

CATALOG = load_catalog(default_catalog_path())


@pytest.mark.parametrize("locale", SUPPORTED_LOCALES)
def test_every_outcome_has_a_message(locale: str) -> None:
    for outcome in Outcome:
        assert outcome.value in MESSAGES[locale]


def test_both_locales_share_the_same_keys() -> None:
    assert set(MESSAGES["en"]) == set(MESSAGES["ro"])


def test_unknown_locale_falls_back_to_romanian() -> None:
    assert text("title", "de") == MESSAGES["ro"]["title"]


def test_correct_message_uses_localized_name() -> None:
    response = SessionResponse(outcome=Outcome.CORRECT, instrument_id="violin")

    assert message_for(response, CATALOG, "en") == "Correct! It's a Violin!"
    assert message_for(response, CATALOG, "ro") == "Corect! Este Vioară!"


def test_wrong_hint_shows_first_letter() -> None:
    response = SessionResponse(outcome=Outcome.WRONG_HINT, instrument_id="trumpet")

    assert message_for(response, CATALOG, "en") == "Not quite! Try again. Hint: It's a T..."


def test_reveal_message_names_the_answer() -> None:
    response = SessionResponse(outcome=Outcome.WRONG_REVEAL_ANSWER, instrument_id="harp")

    assert message_for(response, CATALOG, "en") == "Sorry, that's not correct. The answer was: Harp."


def test_advisory_messages_need_no_instrument() -> None:
    assert message_for(SessionResponse(Outcome.MUST_PLAY_FIRST), CATALOG, "en") == "Please play the sound first!"
    assert message_for(SessionResponse(Outcome.EMPTY_GUESS), CATALOG, "en") == "Please enter a guess!"


def test_play_label_follows_round_progress() -> None:
    clock = FakeClock()
    session = build_game_session(
        catalog=CATALOG,
        backend=FakeBackend(clock=clock),
        clock=clock,
        config=QuizConfig(locale="en"),
    )
    assert play_label(session.snapshot()) == "Play Sound"

    session.dispatch(SessionEvent(EventKind.PLAY))
    session.update()
    assert play_label(session.snapshot()) == "Play Again"

    session.dispatch(SessionEvent(EventKind.SUBMIT, "piano"))
    assert play_label(session.snapshot()) == "Play New Sound"
