"""
Type definitions for shardprune's partition column types.

Each type describes how literals of a distribution column are validated,
ordered and parsed, and how shard bounds of that type map to Arrow when the
catalog is stored in Parquet.

Key Features:
- **Type Safety**: A literal whose Python type does not match the column type
  raises TypeMismatchError. Nothing is coerced (an int is not a Float, a bool
  is not an Int).
- **Comparison capability**: ``sort_key`` gives the ordering used to compare
  a literal against range bounds. It is bound once per pruning call.
- **Arrow Integration**: ``to_arrow`` gives the Arrow type of the column.
- **Text boundary**: ``parse`` / ``format`` convert between literals and the
  text form used by the catalog files and the SQL-style entry points.

Supported Types:
- String, Int(bits), Float(bits), Bool, Timestamp(unit, tz), ObjectId

Nested types (structs, lists) cannot be distribution columns and are not
provided.
"""

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import bson
import pyarrow as pa

from shardprune.errors import TypeMismatchError


class BaseType(ABC):
    """Base class for all partition column types."""

    @abstractmethod
    def to_arrow(self) -> pa.DataType:
        """Convert to PyArrow data type."""
        pass

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Stable name stored in the catalog's ``column_type`` field."""
        pass

    @abstractmethod
    def validate(self, value: Any) -> Any:
        """
        Check that ``value`` is a literal of this type.

        Returns:
            The value, normalized where the type has a canonical form

        Raises:
            TypeMismatchError: If the value is of an incompatible type
        """
        pass

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse the text form of a literal."""
        pass

    def sort_key(self, value: Any) -> Any:
        """Ordering key of a validated literal."""
        return value

    def format(self, value: Any) -> str:
        """Text form of a validated literal (inverse of ``parse``)."""
        return str(value)

    def to_arrow_value(self, value: Any) -> Any:
        """Python value of a validated literal as stored in a ``to_arrow`` column."""
        return value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    def __eq__(self, other) -> bool:
        """Compare types for equality."""
        return isinstance(other, self.__class__)

    def __hash__(self) -> int:
        """Make types hashable for use in sets/dicts."""
        return hash(self.__class__.__name__)


class String(BaseType):
    """String type."""

    type_name = "string"

    def to_arrow(self) -> pa.DataType:
        return pa.string()

    def validate(self, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeMismatchError(value, self.type_name)
        return value

    def parse(self, text: str) -> str:
        return self.validate(text)

    def __eq__(self, other) -> bool:
        return isinstance(other, String)

    def __hash__(self) -> int:
        return hash(self.__class__.__name__)


@dataclass(frozen=True)
class Int(BaseType):
    """Integer type."""
    bits: int = 64

    def __post_init__(self):
        if self.bits not in (32, 64):
            raise ValueError("Int bits must be either 32 or 64")

    @property
    def type_name(self) -> str:
        return f"int{self.bits}"

    def to_arrow(self) -> pa.DataType:
        return pa.int64() if self.bits == 64 else pa.int32()

    def validate(self, value: Any) -> int:
        # bool is a subclass of int; a boolean literal is still a mismatch
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeMismatchError(value, self.type_name)
        limit = 2 ** (self.bits - 1)
        if not -limit <= value < limit:
            raise TypeMismatchError(
                value, self.type_name, f"out of range for {self.bits}-bit integer"
            )
        return value

    def parse(self, text: str) -> int:
        try:
            value = int(text.strip())
        except (AttributeError, ValueError) as e:
            raise TypeMismatchError(text, self.type_name, str(e)) from e
        return self.validate(value)


@dataclass(frozen=True)
class Float(BaseType):
    """Floating-point type."""
    bits: int = 64

    def __post_init__(self):
        if self.bits not in (32, 64):
            raise ValueError("Float bits must be either 32 or 64")

    @property
    def type_name(self) -> str:
        return f"float{self.bits}"

    def to_arrow(self) -> pa.DataType:
        return pa.float64() if self.bits == 64 else pa.float32()

    def validate(self, value: Any) -> float:
        if not isinstance(value, float):
            raise TypeMismatchError(value, self.type_name)
        # Equal values must share one representation: -0.0 == 0.0, any NaN
        if math.isnan(value):
            return math.nan
        if value == 0.0:
            return 0.0
        return value

    def sort_key(self, value: float) -> tuple:
        # NaN sorts above every other value
        if math.isnan(value):
            return (1, 0.0)
        return (0, value)

    def parse(self, text: str) -> float:
        try:
            value = float(text.strip())
        except (AttributeError, ValueError) as e:
            raise TypeMismatchError(text, self.type_name, str(e)) from e
        return self.validate(value)

    def format(self, value: float) -> str:
        return repr(value)


class Bool(BaseType):
    """Boolean type."""

    type_name = "bool"

    _TEXT_VALUES: Dict[str, bool] = {
        "true": True,
        "t": True,
        "1": True,
        "false": False,
        "f": False,
        "0": False,
    }

    def to_arrow(self) -> pa.DataType:
        return pa.bool_()

    def validate(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise TypeMismatchError(value, self.type_name)
        return value

    def parse(self, text: str) -> bool:
        key = text.strip().lower() if isinstance(text, str) else text
        if key not in self._TEXT_VALUES:
            raise TypeMismatchError(text, self.type_name, "not a boolean literal")
        return self._TEXT_VALUES[key]

    def format(self, value: bool) -> str:
        return "true" if value else "false"

    def __eq__(self, other) -> bool:
        return isinstance(other, Bool)

    def __hash__(self) -> int:
        return hash(self.__class__.__name__)


@dataclass(frozen=True)
class Timestamp(BaseType):
    """
    Timestamp type.

    With a ``tz`` every literal is normalized to an aware UTC datetime; naive
    literals are taken to be UTC. Without a ``tz`` literals are normalized to
    naive UTC wall time.
    """
    unit: str = "ns"
    tz: Optional[str] = "UTC"

    def __post_init__(self):
        if self.unit not in ("s", "ms", "us", "ns"):
            raise ValueError("Timestamp unit must be one of 's', 'ms', 'us', 'ns'")

    @property
    def type_name(self) -> str:
        return f"timestamp[{self.unit},{self.tz or ''}]"

    def to_arrow(self) -> pa.DataType:
        return pa.timestamp(self.unit, tz=self.tz)

    def validate(self, value: Any) -> datetime:
        if not isinstance(value, datetime):
            raise TypeMismatchError(value, self.type_name)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if self.tz is None:
            value = value.replace(tzinfo=None)
        return value

    def parse(self, text: str) -> datetime:
        try:
            value = datetime.fromisoformat(text.strip())
        except (AttributeError, ValueError) as e:
            raise TypeMismatchError(text, self.type_name, str(e)) from e
        return self.validate(value)

    def format(self, value: datetime) -> str:
        return value.isoformat()


class ObjectId(BaseType):
    """MongoDB ObjectId type (stored as string in Parquet)."""

    type_name = "objectid"

    def to_arrow(self) -> pa.DataType:
        return pa.string()

    def validate(self, value: Any) -> bson.ObjectId:
        if not isinstance(value, bson.ObjectId):
            raise TypeMismatchError(value, self.type_name)
        return value

    def sort_key(self, value: bson.ObjectId) -> bytes:
        return value.binary

    def to_arrow_value(self, value: bson.ObjectId) -> str:
        return str(value)

    def parse(self, text: str) -> bson.ObjectId:
        if not isinstance(text, str) or not bson.ObjectId.is_valid(text.strip()):
            raise TypeMismatchError(text, self.type_name, "not a 24-digit hex string")
        return bson.ObjectId(text.strip())

    def __eq__(self, other) -> bool:
        return isinstance(other, ObjectId)

    def __hash__(self) -> int:
        return hash(self.__class__.__name__)


_TIMESTAMP_NAME = re.compile(r"^timestamp\[(s|ms|us|ns),([^\]]*)\]$")


def type_from_name(name: str) -> BaseType:
    """
    Resolve a catalog type name to a column type.

    Examples:
        >>> type_from_name("int32")
        Int(bits=32)
        >>> type_from_name("timestamp[ms,UTC]")
        Timestamp(unit='ms', tz='UTC')

    Raises:
        ValueError: If the name does not denote a partition column type
    """
    simple = {
        "string": String(),
        "int32": Int(32),
        "int64": Int(64),
        "float32": Float(32),
        "float64": Float(64),
        "bool": Bool(),
        "objectid": ObjectId(),
    }
    if name in simple:
        return simple[name]

    match = _TIMESTAMP_NAME.match(name)
    if match:
        return Timestamp(unit=match.group(1), tz=match.group(2) or None)

    raise ValueError(f"Unknown column type name: {name!r}")
