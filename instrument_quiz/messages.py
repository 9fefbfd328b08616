from __future__ import annotations

from .answer_matching import hint_for
from .catalog import InstrumentCatalog
from .config import DEFAULT_LOCALE
from .session import Outcome, PassState, RoundState, SessionResponse, SessionSnapshot

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "title": "Guess the Instrument",
        "play": "Play Sound",
        "play_again": "Play Again",
        "play_new": "Play New Sound",
        "play_new_pass": "Start Over",
        "reset": "Reset",
        "input_hint": "Type your guess, then press Enter",
        "progress": "Completed {done}/{total}  |  Score {score}",
        "awaiting-play": "Press Play to hear the instrument.",
        "played": "Listen closely and type your guess.",
        "correct": "Correct! It's a {name}!",
        "correct+pass-complete": "Correct! It's a {name}! You have guessed every instrument!",
        "wrong-hint": "Not quite! Try again. Hint: It's a {hint}...",
        "wrong-reveal-answer": "Sorry, that's not correct. The answer was: {name}.",
        "playback-error": "Error playing sound. Please try again.",
        "must-play-first": "Please play the sound first!",
        "empty-guess": "Please enter a guess!",
        "pass-complete": "You have guessed every instrument! Press Reset to play again.",
        "round-closed": "This round is over. Play a new sound to continue.",
    },
    "ro": {
        "title": "Ghicește instrumentul",
        "play": "Redă sunetul",
        "play_again": "Redă din nou",
        "play_new": "Sunet nou",
        "play_new_pass": "Începe din nou",
        "reset": "Resetează",
        "input_hint": "Scrie răspunsul și apasă Enter",
        "progress": "Ghicite {done}/{total}  |  Scor {score}",
        "awaiting-play": "Apasă Redă pentru a asculta instrumentul.",
        "played": "Ascultă cu atenție și scrie răspunsul.",
        "correct": "Corect! Este {name}!",
        "correct+pass-complete": "Corect! Este {name}! Ai ghicit toate instrumentele!",
        "wrong-hint": "Nu chiar! Mai încearcă. Indiciu: începe cu {hint}...",
        "wrong-reveal-answer": "Ne pare rău, nu este corect. Răspunsul era: {name}.",
        "playback-error": "Eroare la redarea sunetului. Încearcă din nou.",
        "must-play-first": "Te rog să redai mai întâi sunetul!",
        "empty-guess": "Te rog să scrii un răspuns!",
        "pass-complete": "Ai ghicit toate instrumentele! Apasă Resetează pentru a juca din nou.",
        "round-closed": "Runda s-a încheiat. Redă un sunet nou pentru a continua.",
    },
}


def text(key: str, locale: str, **fields: object) -> str:
    table = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    template = table.get(key) or MESSAGES[DEFAULT_LOCALE][key]
    return template.format(**fields) if fields else template


def message_for(response: SessionResponse, catalog: InstrumentCatalog, locale: str) -> str:
    """Localized advisory text for a session outcome."""

    record = catalog.by_id(response.instrument_id)
    if response.outcome in (Outcome.CORRECT, Outcome.CORRECT_PASS_COMPLETE, Outcome.WRONG_REVEAL_ANSWER):
        name = "" if record is None else (record.name(locale) or record.names[0][1])
        return text(response.outcome.value, locale, name=name)
    if response.outcome is Outcome.WRONG_HINT:
        hint = "" if record is None else hint_for(record, locale)
        return text(response.outcome.value, locale, hint=hint)
    return text(response.outcome.value, locale)


def play_label(snapshot: SessionSnapshot) -> str:
    if snapshot.pass_state is PassState.ALL_COMPLETED:
        return text("play_new_pass", snapshot.locale)
    if snapshot.round_state in (RoundState.CORRECT, RoundState.REVEALED):
        return text("play_new", snapshot.locale)
    if snapshot.has_played:
        return text("play_again", snapshot.locale)
    return text("play", snapshot.locale)
