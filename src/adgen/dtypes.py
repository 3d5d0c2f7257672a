"""
Scalar kinds
"""

from __future__ import annotations

import enum
from typing import Any

import numpy as np

PyScalar = bool | int | float | np.generic


class UnsupportedKindError(TypeError):
    """A kind with no concrete value representation was used where one is required"""


class Kind(enum.Enum):
    """Closed set of scalar kinds a recorded value can have"""

    VOID = "void"
    BOOL = "bool"
    INT8 = "int8"
    INT32 = "int32"
    UINT32 = "uint32"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    def __str__(self) -> str:
        return self.value

    @property
    def numpy_type(self) -> type[np.generic]:
        if self is Kind.VOID:
            raise UnsupportedKindError(f"{self} has no value representation")
        return np.dtype(self.value).type

    @property
    def size(self) -> int:
        return np.dtype(self.numpy_type).itemsize

    @property
    def is_float(self) -> bool:
        return self in (Kind.FLOAT32, Kind.FLOAT64)

    @property
    def is_int(self) -> bool:
        return self is not Kind.VOID and not self.is_float

    def coerce(self, value: PyScalar) -> np.generic:
        """Round a python literal to the value it takes in this kind"""
        assert isinstance(value, (bool, int, float, np.generic)), f"Unknown literal {value=}"
        coerced = self.numpy_type(value)
        if self.is_float:
            assert np.isfinite(coerced), f"literal {value=} is not finite as {self}, it has no source representation"
        return coerced

    @classmethod
    def from_python(cls, value: Any) -> Kind:
        match value:
            case bool() | np.bool_():
                return cls.BOOL
            case np.generic() if (name := np.dtype(type(value)).name) in cls._value2member_map_:
                return cls(name)
            case int() | np.integer():  # NOTE: integers outside the catalog widths read as python ints
                return cls.INT32
            case float() | np.floating():
                return cls.FLOAT64
            case _:
                raise UnsupportedKindError(f"no scalar kind for {value=}")


def ensure_kind(kind: Kind | type | str) -> Kind:
    """Normalize a kind (member, member name, python or numpy type) to a recordable `Kind`"""
    match kind:
        case Kind.VOID:
            raise UnsupportedKindError("cannot record a value of kind void")
        case Kind():
            return kind
        case str(name) if name.upper() in Kind.__members__:
            return ensure_kind(Kind[name.upper()])
        case type() if kind in (bool, int, float):
            return Kind.from_python(kind())
        case type() if issubclass(kind, np.generic) and np.dtype(kind).name in Kind._value2member_map_:
            return ensure_kind(Kind(np.dtype(kind).name))
        case _:
            raise UnsupportedKindError(f"unknown scalar kind {kind!r}")
