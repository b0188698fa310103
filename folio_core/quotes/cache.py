"""Last-known-quote cache used as fallback when a live fetch fails."""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from threading import Lock

from folio_core.errors import CacheError
from folio_core.quotes.types import Quote

logger = logging.getLogger(__name__)


class QuoteCache(ABC):
    """Persistent symbol -> last known Quote map. Failures raise CacheError."""

    @abstractmethod
    def get(self, symbol: str) -> Quote | None:
        ...

    @abstractmethod
    def put(self, symbol: str, quote: Quote) -> None:
        ...


class MemoryQuoteCache(QuoteCache):
    """Thread-safe in-memory cache. Nothing survives the process."""

    def __init__(self, quotes: dict[str, Quote] | None = None) -> None:
        self._data: dict[str, Quote] = dict(quotes or {})
        self._lock = Lock()

    def get(self, symbol: str) -> Quote | None:
        with self._lock:
            return self._data.get(symbol)

    def put(self, symbol: str, quote: Quote) -> None:
        with self._lock:
            self._data[symbol] = quote


class JsonFileQuoteCache(QuoteCache):
    """
    Quotes persisted to a JSON file: {symbol: {"price": float, "as_of": iso}}.

    The file is read once on first access; every put rewrites it atomically.
    A corrupt file is treated as empty (logged) so one bad write never
    disables fallback for good.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = Lock()
        self._data: dict[str, Quote] | None = None

    def _load(self) -> dict[str, Quote]:
        if self._data is not None:
            return self._data
        data: dict[str, Quote] = {}
        if self._path.exists():
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except OSError as e:
                raise CacheError(f"Could not read quote cache {self._path}: {e}") from e
            except json.JSONDecodeError:
                logger.warning("Quote cache %s is corrupt; starting empty", self._path)
                raw = {}
            if isinstance(raw, dict):
                for symbol, entry in raw.items():
                    try:
                        data[symbol] = Quote(
                            symbol=symbol,
                            price=float(entry["price"]),
                            as_of=datetime.fromisoformat(entry["as_of"]),
                        )
                    except (KeyError, TypeError, ValueError):
                        logger.warning("Skipping malformed cache entry for %s", symbol)
        self._data = data
        return data

    def _flush(self, data: dict[str, Quote]) -> None:
        payload = {
            symbol: {"price": q.price, "as_of": q.as_of.isoformat()}
            for symbol, q in sorted(data.items())
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise CacheError(f"Could not write quote cache {self._path}: {e}") from e

    def get(self, symbol: str) -> Quote | None:
        with self._lock:
            return self._load().get(symbol)

    def put(self, symbol: str, quote: Quote) -> None:
        with self._lock:
            data = self._load()
            data[symbol] = Quote(symbol=symbol, price=quote.price, as_of=quote.as_of)
            self._flush(data)
