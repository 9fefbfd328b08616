from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Catalog data or lookups violate the setup invariants.

    Raised for an empty catalog, duplicate ids, malformed records and unknown
    ids requested as a round target. These are configuration bugs and are not
    recovered from.
    """


@dataclass(frozen=True, slots=True)
class InstrumentRecord:
    instrument_id: str
    names: tuple[tuple[str, str], ...]  # (locale, display name), catalog order
    sound: str
    image: str
    aliases: tuple[str, ...] = ()

    def locales(self) -> tuple[str, ...]:
        return tuple(locale for locale, _ in self.names)

    def name(self, locale: str) -> str | None:
        for code, display in self.names:
            if code == locale:
                return display
        return None


class InstrumentCatalog:
    """Immutable ordered collection of instrument records."""

    def __init__(self, records: Iterable[InstrumentRecord]) -> None:
        ordered = tuple(records)
        if not ordered:
            raise CatalogError("catalog must contain at least one instrument")

        by_id: dict[str, InstrumentRecord] = {}
        for record in ordered:
            if record.instrument_id in by_id:
                raise CatalogError(f"duplicate instrument id: {record.instrument_id!r}")
            by_id[record.instrument_id] = record

        self._records = ordered
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InstrumentRecord]:
        return iter(self._records)

    def size(self) -> int:
        return len(self._records)

    def by_id(self, instrument_id: str | None) -> InstrumentRecord | None:
        if instrument_id is None:
            return None
        return self._by_id.get(instrument_id)

    def require(self, instrument_id: str | None) -> InstrumentRecord:
        record = self.by_id(instrument_id)
        if record is None:
            raise CatalogError(f"no such instrument: {instrument_id!r}")
        return record

    def ids_in_order(self) -> tuple[str, ...]:
        return tuple(r.instrument_id for r in self._records)

    def missing_locale(self, locale: str) -> tuple[str, ...]:
        """Ids of records without a display name for ``locale``."""

        return tuple(r.instrument_id for r in self._records if r.name(locale) is None)


def _record_from_dict(instrument_id: str, data: object) -> InstrumentRecord:
    if not isinstance(data, Mapping):
        raise CatalogError(f"{instrument_id}: record must be an object")

    raw_names = data.get("name")
    if not isinstance(raw_names, Mapping) or not raw_names:
        raise CatalogError(f"{instrument_id}: 'name' must map locale codes to names")
    names: list[tuple[str, str]] = []
    for locale, display in raw_names.items():
        display_str = str(display).strip() if display is not None else ""
        if display_str == "":
            raise CatalogError(f"{instrument_id}: empty name for locale {locale!r}")
        names.append((str(locale), display_str))

    sound = data.get("sound")
    image = data.get("image")
    if not isinstance(sound, str) or sound.strip() == "":
        raise CatalogError(f"{instrument_id}: 'sound' must be a non-empty string")
    if not isinstance(image, str) or image.strip() == "":
        raise CatalogError(f"{instrument_id}: 'image' must be a non-empty string")

    raw_aliases = data.get("aliases", [])
    if raw_aliases is None:
        raw_aliases = []
    if not isinstance(raw_aliases, list):
        raise CatalogError(f"{instrument_id}: 'aliases' must be a list")
    aliases = tuple(str(a).strip() for a in raw_aliases if str(a).strip() != "")

    return InstrumentRecord(
        instrument_id=instrument_id,
        names=tuple(names),
        sound=sound.strip(),
        image=image.strip(),
        aliases=aliases,
    )


def catalog_from_dict(data: object) -> InstrumentCatalog:
    """Build a catalog from the ``{id: {name, sound, image, aliases}}`` table."""

    if not isinstance(data, Mapping):
        raise CatalogError("catalog data must be an object keyed by instrument id")
    records = []
    for instrument_id, raw in data.items():
        key = str(instrument_id).strip()
        if key == "":
            raise CatalogError("instrument id must be a non-empty string")
        records.append(_record_from_dict(key, raw))
    return InstrumentCatalog(records)


def load_catalog(path: Path) -> InstrumentCatalog:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"cannot read catalog {path}: {exc}") from exc
    catalog = catalog_from_dict(payload)
    logger.info("Loaded %d instruments from %s", catalog.size(), path)
    return catalog


def default_catalog_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "instruments.json"
