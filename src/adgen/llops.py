"""
Instruction set recorded on the tape
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Callable, Self

from adgen import dtypes, templates

OpSignature = tuple[dtypes.Kind, tuple[Any, ...]]


@dataclasses.dataclass(frozen=True, slots=True)
class Operation:
    """
    One entry of the tape.
    id:     position on the tape, also the suffix of the generated variable names.
    op:     the instruction that produced the value.
    kind:   the scalar kind of the value.
    deps:   ids of the operands, all strictly smaller than `id`.
    args:   non-operand payload of the instruction (literal, symbol, source kind, raw templates).
    """

    id: int
    op: Op
    kind: dtypes.Kind
    deps: tuple[int, ...] = ()
    args: tuple[Any, ...] = ()

    def __repr__(self) -> str:
        deps = ", ".join(map(templates.var_name, self.deps))
        return f"<{self.__class__.__name__}({templates.var_name(self.id)}: {self.kind} = {self.op.name}({deps}))>"


@dataclasses.dataclass(slots=True, unsafe_hash=True)
class Op:
    constructor: Callable[..., OpSignature]
    name: str = dataclasses.field(init=False)

    def __call__(self, *dep_kinds: dtypes.Kind, **payload: Any) -> OpSignature:
        return self.constructor(*dep_kinds, **payload)

    def __set_name__(self, _: type[Ops], name: str) -> None:
        self.name = name

    def __get__(self, *_) -> Self:
        return self

    def __str__(self) -> str:
        return f"<{self.__class__.__name__}({self.name})>"

    def __repr__(self) -> str:
        return str(self)


def construct_load(*, kind: dtypes.Kind, source: str | dtypes.PyScalar) -> OpSignature:
    kind = dtypes.ensure_kind(kind)
    if isinstance(source, str):
        placeholders = (templates.SELF_PLACEHOLDER, *map(templates.dep_placeholder, range(templates.MAX_DEPS)))
        assert source.strip(), "external symbol must be non-empty source text"
        assert not any(p in source for p in placeholders), f"{source=} would be rewritten as a template"
        return kind, (source,)
    return kind, (kind.coerce(source),)


def construct_cast(k: dtypes.Kind, /, *, kind: dtypes.Kind) -> OpSignature:
    return dtypes.ensure_kind(kind), (k,)


def construct_unary(k: dtypes.Kind, /) -> OpSignature:
    assert k is not dtypes.Kind.BOOL, f"arithmetic on {k=}"
    return k, ()


def construct_transcendental(k: dtypes.Kind, /) -> OpSignature:
    assert k.is_float, f"{k=} must be a floating point kind"
    return k, ()


def construct_binary(k1: dtypes.Kind, k2: dtypes.Kind, /) -> OpSignature:
    assert k1 is k2, f"{k1=} <> {k2=} kind mismatch"
    assert k1 is not dtypes.Kind.BOOL, f"arithmetic on {k1=}"
    return k1, ()


def construct_compare(k1: dtypes.Kind, k2: dtypes.Kind, /) -> OpSignature:
    assert k1 is k2, f"{k1=} <> {k2=} kind mismatch"
    return dtypes.Kind.BOOL, ()


def construct_ternary(cond: dtypes.Kind, k1: dtypes.Kind, k2: dtypes.Kind, /) -> OpSignature:
    assert cond is dtypes.Kind.BOOL, f"{cond=} must be bool"
    assert k1 is k2, f"{k1=} <> {k2=} kind mismatch"
    return k1, ()


def construct_template(*_: dtypes.Kind, kind: dtypes.Kind, forward: str, backward: str = "") -> OpSignature:
    return dtypes.ensure_kind(kind), (forward, backward)


### Ops ##
class Ops(enum.Enum):
    """Instructions that can be recorded on the tape"""

    LOAD = Op(construct_load)
    CAST = Op(construct_cast)
    NEG = Op(construct_unary)
    SIN = Op(construct_transcendental)
    COS = Op(construct_transcendental)
    LOG = Op(construct_transcendental)
    EXP = Op(construct_transcendental)
    SQRT = Op(construct_transcendental)
    ADD = Op(construct_binary)
    SUB = Op(construct_binary)
    MUL = Op(construct_binary)
    DIV = Op(construct_binary)
    EQ = Op(construct_compare)
    NE = Op(construct_compare)
    LE = Op(construct_compare)
    GE = Op(construct_compare)
    LT = Op(construct_compare)
    GT = Op(construct_compare)
    SELECT = Op(construct_ternary)
    TEMPLATE = Op(construct_template)


CATALOG: tuple[Op, ...] = tuple(v for v in vars(Ops).values() if isinstance(v, Op))
