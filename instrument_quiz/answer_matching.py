from __future__ import annotations

from .catalog import InstrumentRecord


def normalize_guess(raw: str | None) -> str:
    if raw is None:
        return ""
    return raw.strip().lower()


def matches(guess: str | None, record: InstrumentRecord | None) -> bool:
    """Exact match of a guess against every localized name and alias.

    Case and surrounding whitespace are ignored. All locales on the record are
    accepted, not only the one shown in the UI. No partial or fuzzy matching.
    """

    if record is None:
        return False
    normalized = normalize_guess(guess)
    if normalized == "":
        return False

    for _, display in record.names:
        if normalized == display.lower():
            return True
    return any(normalized == alias.lower() for alias in record.aliases)


def hint_for(record: InstrumentRecord, locale: str) -> str:
    """First letter of the localized name, used for the wrong-guess hint."""

    display = record.name(locale) or record.names[0][1]
    return display[:1]
