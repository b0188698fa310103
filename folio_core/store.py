"""
Position store: the canonical, ordered list of positions parsed from the
position file.

Input is a JSON array of records. Field names are accepted in snake_case
(``name``, ``asset_class``, ``amount``, ``quote_symbol``) or in the PascalCase
used by older files (``Name``, ``AssetClass``, ``Amount``, ``Ticker``). Each
record keeps its original keys and key order, and the file's JSON layout
(indent, separators, escaping, final newline) is detected on load, so that
serialize() only changes the edited field.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from folio_core.errors import EditError, EditErrorKind, ParseError, SerializeError
from folio_core.position import Position

logger = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name"),
    "asset_class": ("asset_class", "AssetClass"),
    "amount": ("amount", "Amount"),
    "quote_symbol": ("quote_symbol", "QuoteSymbol", "ticker", "Ticker"),
}


def parse_amount(value: str | float | int) -> float:
    """
    Parse a user-supplied amount as a non-negative finite number.

    Raises EditError(INVALID) for anything else. Used both for live validation
    of the edit buffer and by apply_edit itself.
    """
    if isinstance(value, bool):
        raise EditError(EditErrorKind.INVALID, "Amount must be a number")
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        text = str(value).strip()
        if not text:
            raise EditError(EditErrorKind.INVALID, "Amount is required")
        try:
            amount = float(text)
        except ValueError:
            raise EditError(EditErrorKind.INVALID, f"Invalid amount format: {text}") from None
    if not math.isfinite(amount):
        raise EditError(EditErrorKind.INVALID, f"Amount must be finite, got {value}")
    if amount < 0:
        raise EditError(EditErrorKind.INVALID, f"Amount cannot be negative, got {amount:g}")
    return amount


def _field(record: Mapping[str, Any], field: str) -> tuple[str | None, Any]:
    """Return (key actually used, value) for a logical field, or (None, None)."""
    for key in FIELD_ALIASES[field]:
        if key in record:
            return key, record[key]
    return None, None


def _position_from_record(index: int, record: Any) -> tuple[Position, str]:
    """Validate one raw record. Returns the position and the key holding its amount."""
    if not isinstance(record, dict):
        raise ParseError(f"Record {index}: expected an object, got {type(record).__name__}")

    _, name = _field(record, "name")
    if not isinstance(name, str) or not name.strip():
        raise ParseError(f"Record {index}: 'name' must be a non-empty string")

    _, asset_class = _field(record, "asset_class")
    if not isinstance(asset_class, str) or not asset_class.strip():
        raise ParseError(f"Record {index} ({name}): 'asset_class' must be a non-empty string")

    amount_key, amount = _field(record, "amount")
    if amount_key is None:
        raise ParseError(f"Record {index} ({name}): 'amount' is required")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ParseError(f"Record {index} ({name}): 'amount' must be a number")
    if not math.isfinite(amount):
        raise ParseError(f"Record {index} ({name}): 'amount' must be finite")
    if amount < 0:
        raise ParseError(f"Record {index} ({name}): 'amount' cannot be negative, got {amount}")

    _, symbol = _field(record, "quote_symbol")
    if symbol is not None and (not isinstance(symbol, str) or not symbol.strip()):
        raise ParseError(f"Record {index} ({name}): 'quote_symbol' must be a non-empty string or null")

    position = Position(
        name=name,
        asset_class=asset_class,
        amount=float(amount),
        quote_symbol=symbol.strip() if symbol is not None else None,
    )
    return position, amount_key


_INDENT_RE = re.compile(r"\n([ \t]*)\S")


@dataclass(frozen=True)
class JsonLayout:
    """How a position file was laid out, so it can be written back the same way."""

    indent: str | None = "    "
    item_separator: str = ","
    key_separator: str = ": "
    ensure_ascii: bool = False
    trailing_newline: bool = True

    @classmethod
    def detect(cls, text: str) -> JsonLayout:
        body = text.rstrip()
        match = _INDENT_RE.search(body)
        indent = match.group(1) if match else None
        key_separator = ": " if re.search(r'"\s*:\s', body) or not re.search(r'"\s*:', body) else ":"
        if indent is None:
            item_separator = ", " if re.search(r"[\]}\"\d el],\s", body) else ","
        else:
            item_separator = ","
        return cls(
            indent=indent,
            item_separator=item_separator,
            key_separator=key_separator,
            ensure_ascii="\\u" in body,
            trailing_newline=text.endswith("\n"),
        )

    def dumps(self, records: list[dict[str, Any]]) -> str:
        text = json.dumps(
            records,
            indent=self.indent,
            separators=(self.item_separator, self.key_separator),
            ensure_ascii=self.ensure_ascii,
            allow_nan=False,
        )
        return text + "\n" if self.trailing_newline else text


class PositionStore:
    """
    Ordered positions keyed by name. Single writer: the session.

    apply_edit mutates in place and marks the store dirty; serialize() emits
    the bytes owed to the source file; clear_dirty() acknowledges a write.
    Two stores are equal when they hold the same positions in the same order.
    """

    def __init__(self, records: list[dict[str, Any]], *, layout: JsonLayout | None = None) -> None:
        self._layout = layout or JsonLayout()
        self._records: list[dict[str, Any]] = []
        self._positions: list[Position] = []
        self._amount_keys: list[str] = []
        self._index: dict[str, int] = {}
        self._dirty = False
        for i, record in enumerate(records):
            position, amount_key = _position_from_record(i, record)
            if position.name in self._index:
                raise ParseError(f"Record {i}: duplicate position name {position.name!r}")
            self._index[position.name] = len(self._positions)
            self._records.append(dict(record))
            self._positions.append(position)
            self._amount_keys.append(amount_key)

    @classmethod
    def load(cls, data: bytes | str) -> PositionStore:
        """Parse a decrypted position file. Raises ParseError on any invalid record."""
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(f"Position file is not valid UTF-8: {e}") from e
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            raise ParseError(f"Position file is not well-formed JSON: {e}") from e
        if not isinstance(raw, list):
            raise ParseError("Position file must contain a list of position records")
        store = cls(raw, layout=JsonLayout.detect(data))
        logger.debug("Loaded %d positions, layout=%s", len(store), store._layout)
        return store

    @property
    def positions(self) -> tuple[Position, ...]:
        """Positions in file order."""
        return tuple(self._positions)

    def get(self, name: str) -> Position | None:
        i = self._index.get(name)
        return None if i is None else self._positions[i]

    def symbols(self) -> set[str]:
        """Unique quote symbols referenced by any position."""
        return {p.quote_symbol for p in self._positions if p.quote_symbol is not None}

    def apply_edit(self, name: str, new_amount: str | float | int) -> Position:
        """
        Set the amount of position `name`. Returns the updated position.

        Raises EditError(NOT_FOUND) for an unknown name and EditError(INVALID)
        for a negative or unparsable amount; the store is untouched on error.
        """
        i = self._index.get(name)
        if i is None:
            raise EditError(EditErrorKind.NOT_FOUND, f"No position named {name!r}", name=name)
        try:
            amount = parse_amount(new_amount)
        except EditError as e:
            e.name = name
            raise
        updated = self._positions[i].with_amount(amount)
        self._positions[i] = updated
        self._records[i][self._amount_keys[i]] = amount
        self._dirty = True
        logger.info("Position %r amount set to %s", name, amount)
        return updated

    def serialize(self) -> bytes:
        """
        Deterministic JSON encoding in the layout the file was loaded with,
        preserving record order and key order.
        """
        try:
            text = self._layout.dumps(self._records)
        except (TypeError, ValueError) as e:
            raise SerializeError(f"Could not encode positions: {e}") from e
        return text.encode("utf-8")

    def is_dirty(self) -> bool:
        return self._dirty

    def clear_dirty(self) -> None:
        self._dirty = False

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(self.positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PositionStore):
            return NotImplemented
        return self._positions == other._positions

    __hash__ = None  # mutable
