"""Typed, ordered collections of named fields describing one scan result.

A probe fills a FieldSet. The user may want only some fields, in a
chosen order, so a Translation is built once from the available field
definitions. It then picks and reorders the fields of every result
before they reach the output.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

MAX_FIELDS = 128
MAX_LIST_LENGTH = 255

_MASK64 = (1 << 64) - 1


class FieldType(enum.IntEnum):
    """Kind of data held by a field."""

    RESERVED = 0
    STRING = 1
    UINT64 = 2
    BINARY = 3
    NULL = 4
    FIELDSET = 5
    REPEATED = 6
    BOOL = 7


class FieldsetError(Exception):
    """Raised when a field set or definition set is misused."""


@dataclass(frozen=True)
class FieldDef:
    """A field that a probe can provide, with its type name and description."""

    name: str
    type: str
    desc: str = ""


@dataclass
class FieldDefSet:
    """An ordered collection of field definitions."""

    defs: List[FieldDef] = field(default_factory=list)

    def extend(self, defs: Iterable[FieldDef]) -> None:
        """Append definitions; fail if the set would exceed MAX_FIELDS."""
        new_defs = list(defs)
        if len(self.defs) + len(new_defs) > MAX_FIELDS:
            raise FieldsetError("out of room in field def set")
        self.defs.extend(new_defs)

    def index_by_name(self, name: str) -> Optional[int]:
        """Return the position of the definition called name, or None."""
        for idx, definition in enumerate(self.defs):
            if definition.name == name:
                return idx
        return None

    def __len__(self) -> int:
        return len(self.defs)


@dataclass(frozen=True)
class Field:
    """One named, typed value."""

    name: str
    type: FieldType
    value: object = None

    @property
    def length(self) -> int:
        """Size of the value: characters, bytes, or 8 for integers."""
        if self.type == FieldType.STRING:
            return len(self.value)
        if self.type == FieldType.BINARY:
            return len(self.value)
        if self.type == FieldType.UINT64:
            return 8
        if self.type == FieldType.BOOL:
            return 4
        if self.type == FieldType.NULL:
            return 0
        return 8


@dataclass(frozen=True)
class Translation:
    """Which source field goes into each position of a translated set."""

    indices: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.indices)


def sanitize_utf8(data: Union[bytes, bytearray]) -> str:
    """Decode UTF-8, replacing each invalid byte with U+FFFD."""
    data = bytes(data)
    pieces: List[str] = []
    pos = 0
    while pos < len(data):
        try:
            pieces.append(data[pos:].decode("utf-8"))
            break
        except UnicodeDecodeError as exc:
            bad = pos + exc.start
            pieces.append(data[pos:bad].decode("utf-8"))
            pieces.append("\ufffd")
            pos = bad + 1
    return "".join(pieces)


class FieldSet:
    """An ordered list of fields, either a record or a repeated list of one type."""

    def __init__(
        self,
        kind: FieldType = FieldType.FIELDSET,
        inner_type: Optional[FieldType] = None,
    ) -> None:
        kind = FieldType(kind)
        if kind not in (FieldType.FIELDSET, FieldType.REPEATED):
            raise FieldsetError(f"a field set must be FIELDSET or REPEATED, not {kind.name}")
        if kind == FieldType.REPEATED and inner_type is None:
            raise FieldsetError("a repeated field set needs an element type")
        self.kind = kind
        self.inner_type = FieldType(inner_type) if inner_type is not None else None
        self.fields: List[Field] = []

    @classmethod
    def repeated(cls, inner_type: FieldType) -> "FieldSet":
        """Create a list whose elements all have inner_type."""
        return cls(FieldType.REPEATED, inner_type)

    def _add(self, name: str, type_: FieldType, value: object) -> None:
        if len(self.fields) + 1 >= MAX_FIELDS:
            raise FieldsetError("out of room in fieldset")
        if self.kind == FieldType.REPEATED and self.inner_type != type_:
            raise FieldsetError(
                "object added to repeated field does not match type of repeated field."
            )
        self.fields.append(Field(name, type_, value))

    def _modify(self, name: str, type_: FieldType, value: object) -> None:
        for idx, existing in enumerate(self.fields):
            if existing.name == name:
                self.fields[idx] = Field(name, type_, value)
                return
        self._add(name, type_, value)

    def add_null(self, name: str) -> None:
        self._add(name, FieldType.NULL, None)

    def add_uint64(self, name: str, value: int) -> None:
        self._add(name, FieldType.UINT64, int(value) & _MASK64)

    def add_bool(self, name: str, value: object) -> None:
        self._add(name, FieldType.BOOL, bool(value))

    def add_string(self, name: str, value: str) -> None:
        self._add(name, FieldType.STRING, value)

    def add_unsafe_string(self, name: str, value: Union[str, bytes, bytearray]) -> None:
        """Add a string that may not be valid UTF-8, repairing it if needed."""
        if isinstance(value, (bytes, bytearray)):
            value = sanitize_utf8(value)
        self._add(name, FieldType.STRING, value)

    def chkadd_string(self, name: str, value: Optional[str]) -> None:
        """Add the string, or a null field when value is None."""
        if value is None:
            self.add_null(name)
        else:
            self.add_string(name, value)

    def chkadd_unsafe_string(self, name: str, value: Union[str, bytes, bytearray, None]) -> None:
        """Add the possibly invalid string, or a null field when value is None."""
        if value is None:
            self.add_null(name)
        else:
            self.add_unsafe_string(name, value)

    def add_binary(self, name: str, value: Union[bytes, bytearray]) -> None:
        self._add(name, FieldType.BINARY, bytes(value))

    def add_fieldset(self, name: str, child: "FieldSet") -> None:
        self._add(name, FieldType.FIELDSET, child)

    def add_repeated(self, name: str, child: "FieldSet") -> None:
        self._add(name, FieldType.REPEATED, child)

    def modify_null(self, name: str) -> None:
        self._modify(name, FieldType.NULL, None)

    def modify_uint64(self, name: str, value: int) -> None:
        self._modify(name, FieldType.UINT64, int(value) & _MASK64)

    def modify_bool(self, name: str, value: object) -> None:
        self._modify(name, FieldType.BOOL, bool(value))

    def modify_string(self, name: str, value: str) -> None:
        self._modify(name, FieldType.STRING, value)

    def modify_binary(self, name: str, value: Union[bytes, bytearray]) -> None:
        self._modify(name, FieldType.BINARY, bytes(value))

    def get_uint64_by_index(self, index: int) -> int:
        """Return the integer value of the field at index."""
        entry = self.fields[index]
        if entry.type not in (FieldType.UINT64, FieldType.BOOL):
            raise FieldsetError(f"field {entry.name!r} is not an integer")
        return int(entry.value)

    def get_string_by_index(self, index: int) -> Optional[str]:
        """Return the string value of the field at index (None for a null field)."""
        entry = self.fields[index]
        if entry.type not in (FieldType.STRING, FieldType.NULL):
            raise FieldsetError(f"field {entry.name!r} is not a string")
        return entry.value

    def __len__(self) -> int:
        return len(self.fields)


def generate_translation(avail: FieldDefSet, requested: Sequence[str]) -> Translation:
    """Build a translation selecting the requested fields in the requested order."""
    indices = []
    for name in requested:
        idx = avail.index_by_name(name)
        if idx is None:
            raise FieldsetError(
                f"specified field ({name}) not available in selected probe module."
            )
        indices.append(idx)
    return Translation(tuple(indices))


def generate_full_translation(avail: FieldDefSet) -> Translation:
    """Build a translation that keeps every field in its original order."""
    return Translation(tuple(range(len(avail))))


def translate_fieldset(fs: FieldSet, translation: Translation) -> FieldSet:
    """Return a new field set holding the fields that translation selects."""
    result = FieldSet()
    result.fields = [fs.fields[idx] for idx in translation.indices]
    return result