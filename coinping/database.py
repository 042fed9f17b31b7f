"""User-editable database of coin signatures.

Signatures are stored as one JSON document under a single key of a
``QSettings``-like store.  Every mutation rewrites the whole document.
Matching works on :meth:`CoinDatabase.snapshot`, an immutable tuple, so
an edit made while a classification is running cannot affect it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol

from appdirs import user_data_dir

from .constants import (
    COIN_DATABASE_KEY,
    DEFAULT_COINS,
    SETTINGS_APPLICATION,
    SETTINGS_ORGANISATION,
)
from .models import CoinSignature, FrequencyBand

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """The subset of ``QSettings`` used for persistence."""

    def value(self, key: str, defaultValue: Any = None) -> Any: ...

    def setValue(self, key: str, value: Any) -> None: ...


def default_signatures() -> tuple[CoinSignature, ...]:
    return tuple(
        CoinSignature(name, tuple(FrequencyBand(c, t) for c, t in bands))
        for name, bands in DEFAULT_COINS
    )


def signature_to_record(signature: CoinSignature) -> dict[str, Any]:
    return {
        "name": signature.name,
        "frequencies": [
            {"value": band.center_frequency, "tolerancePercent": band.tolerance_percent}
            for band in signature.components
        ],
    }


def signature_from_record(record: Mapping[str, Any]) -> CoinSignature:
    """Build a signature from a stored record.

    Records are not validated: a missing ``frequencies`` list simply yields
    a signature without bands, which can never match.
    """
    bands = tuple(
        FrequencyBand(float(f.get("value", 0.0)), float(f.get("tolerancePercent", 0.0)))
        for f in record.get("frequencies") or ()
    )
    return CoinSignature(str(record.get("name", "")), bands)


def parse_document(document: Any) -> tuple[CoinSignature, ...]:
    """Turn a decoded JSON document into signatures.

    An empty list is a valid, empty database.  Anything that is not a list
    of record objects raises :class:`ValueError`.
    """
    if not isinstance(document, list):
        raise ValueError(f"expected a list of coins, got {type(document).__name__}")
    try:
        return tuple(signature_from_record(record) for record in document)
    except (AttributeError, TypeError) as exc:
        raise ValueError(f"malformed coin record: {exc}") from exc


def default_export_path() -> Path:
    """Return the default location used to export the database as JSON."""
    data_dir = Path(user_data_dir(SETTINGS_APPLICATION, SETTINGS_ORGANISATION))
    return data_dir / "coins.json"


class CoinDatabase:
    """Ordered, persisted collection of :class:`CoinSignature` objects.

    Parameters
    ----------
    store:
        Key/value store providing ``value`` and ``setValue``; usually a
        ``QSettings`` instance.
    key:
        Key the JSON document is stored under.
    """

    def __init__(self, store: KeyValueStore, key: str = COIN_DATABASE_KEY) -> None:
        self.store = store
        self.key = key
        self._signatures: tuple[CoinSignature, ...] = ()

    # --------------------------------------------------------------
    def load(self) -> tuple[CoinSignature, ...]:
        """Load signatures from the store.

        Defaults are written when the key is absent or holds something that
        is not a list of coins.  A stored empty list stays empty.
        """

        raw = self.store.value(self.key, None)
        signatures: Optional[tuple[CoinSignature, ...]] = None
        if raw:
            try:
                signatures = parse_document(
                    json.loads(raw) if isinstance(raw, (str, bytes)) else raw
                )
            except ValueError as exc:
                logger.warning("Stored coin database is unreadable (%s); using defaults", exc)

        if signatures is not None:
            self._signatures = signatures
            logger.info("Loaded %d coin signatures", len(self._signatures))
        else:
            self._signatures = default_signatures()
            logger.info("No stored coin database; writing %d defaults", len(self._signatures))
            self.save()
        return self._signatures

    def save(self) -> None:
        self.store.setValue(self.key, self.to_json())

    def to_json(self) -> str:
        return json.dumps([signature_to_record(s) for s in self._signatures])

    def replace(self, signatures: Iterable[CoinSignature]) -> None:
        self._signatures = tuple(signatures)
        self.save()

    # --------------------------------------------------------------
    def snapshot(self) -> tuple[CoinSignature, ...]:
        """Return the current signatures as an immutable tuple."""
        return self._signatures

    def __iter__(self) -> Iterator[CoinSignature]:
        return iter(self._signatures)

    def __len__(self) -> int:
        return len(self._signatures)

    def __getitem__(self, index: int) -> CoinSignature:
        return self._signatures[index]

    # --------------------------------------------------------------
    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._signatures):
            raise IndexError(f"No coin at index {index}")

    def add_coin(self, name: str, components: Iterable[FrequencyBand] = ()) -> CoinSignature:
        bands = tuple(components)
        for band in bands:
            if band.tolerance_percent < 0:
                raise ValueError("tolerance_percent must be >= 0")
        signature = CoinSignature(name.strip(), bands)
        self._signatures = self._signatures + (signature,)
        self.save()
        logger.info("Added coin %r", signature.name)
        return signature

    def delete_coin(self, index: int) -> CoinSignature:
        self._check_index(index)
        removed = self._signatures[index]
        self._signatures = self._signatures[:index] + self._signatures[index + 1 :]
        self.save()
        logger.info("Deleted coin %r", removed.name)
        return removed

    def add_component(
        self, coin_index: int, center_frequency: float, tolerance_percent: float
    ) -> CoinSignature:
        self._check_index(coin_index)
        if tolerance_percent < 0:
            raise ValueError("tolerance_percent must be >= 0")
        old = self._signatures[coin_index]
        band = FrequencyBand(float(center_frequency), float(tolerance_percent))
        updated = CoinSignature(old.name, old.components + (band,))
        self._set(coin_index, updated)
        return updated

    def delete_component(self, coin_index: int, component_index: int) -> CoinSignature:
        self._check_index(coin_index)
        old = self._signatures[coin_index]
        if not 0 <= component_index < len(old.components):
            raise IndexError(f"{old.name!r} has no component at index {component_index}")
        components = old.components[:component_index] + old.components[component_index + 1 :]
        updated = CoinSignature(old.name, components)
        self._set(coin_index, updated)
        return updated

    def _set(self, index: int, signature: CoinSignature) -> None:
        items = list(self._signatures)
        items[index] = signature
        self._signatures = tuple(items)
        self.save()

    # --------------------------------------------------------------
    def export_json(self, path: Optional[Path | str] = None) -> Path:
        """Write the database to ``path`` (default: per-user data directory)."""
        target = Path(path) if path is not None else default_export_path()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps([signature_to_record(s) for s in self._signatures], indent=2),
            encoding="utf-8",
        )
        logger.info("Exported %d coins to %s", len(self._signatures), target)
        return target

    def import_json(self, path: Path | str) -> tuple[CoinSignature, ...]:
        """Replace the database with the records stored in ``path``.

        Raises :class:`ValueError` when the file is not a list of coin
        records; the database is left untouched in that case.
        """
        signatures = parse_document(json.loads(Path(path).read_text(encoding="utf-8")))
        self.replace(signatures)
        logger.info("Imported %d coins from %s", len(self._signatures), path)
        return self._signatures


__all__ = [
    "KeyValueStore",
    "default_signatures",
    "signature_to_record",
    "signature_from_record",
    "parse_document",
    "default_export_path",
    "CoinDatabase",
]
