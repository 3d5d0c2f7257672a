"""
Recording logic for symbolic scalars

Every function below appends exactly one instruction to the tape of its
operands and returns a new handle referring to the result. The derivative
rules live with the dialect templates, recording only decides the instruction,
the operands and the result kind.
"""

from __future__ import annotations

import functools
import inspect
import typing
from typing import TYPE_CHECKING, Callable, ParamSpec, Self, TypeVar

from adgen import config, dtypes, llops, templates

if TYPE_CHECKING:
    from adgen.tape import Tape

# fmt: off
P, T = ParamSpec("P"), TypeVar("T", bound="Traceable")
TraceableInput = typing.Union[T, dtypes.PyScalar]
DEFAULT_KIND = dtypes.Kind.FLOAT32
# fmt: on


### Base for symbolic scalars ###
class Traceable:
    """A reference to the value of one operation recorded on a tape"""

    __slots__ = ("tape", "id", "kind")

    def __init__(
        self,
        data: str | dtypes.PyScalar | Traceable,
        kind: dtypes.Kind | type | str | None = None,
        tape: Tape | None = None,
    ) -> None:
        if isinstance(data, Traceable):
            assert tape is None or tape is data.tape, f"{data!r} belongs to another tape"
            self.tape, self.kind = data.tape, data.kind if kind is None else dtypes.ensure_kind(kind)
            self.id = data.id if self.kind is data.kind else self.tape.append(llops.Ops.CAST, data.id, kind=self.kind)
        else:
            self.tape = config.Configuration.recorder.tape if tape is None else tape
            self.kind = DEFAULT_KIND if kind is None else dtypes.ensure_kind(kind)
            self.id = self.tape.append(llops.Ops.LOAD, kind=self.kind, source=data)

    def __repr__(self) -> str:
        return f"<{self.__module__}.{self.__class__.__name__}({templates.var_name(self.id)}: {self.kind})>"

    def __bool__(self) -> bool:
        raise TypeError(f"truth value of {self!r} is only known when the generated code runs, use select()")

    @property
    def operation(self) -> llops.Operation:
        return self.tape[self.id]

    @classmethod
    def from_id(cls, tape: Tape, op_id: int) -> Self:
        self = cls.__new__(cls)
        self.tape, self.id, self.kind = tape, op_id, tape[op_id].kind
        return self


Condition = typing.NewType("Condition", Traceable)


### instruction ⟹ recording function ###
def recorded(op_def: Callable[P, llops.Op]) -> Callable[..., Traceable]:
    """
    Turn the instruction choice of an op into a function over handles & python scalars.
    Scalars are recorded as literal leaves of the kind of the first `Traceable` operand.
    """

    ## parse the signature
    sign = inspect.signature(op_def)
    hints = typing.get_type_hints(op_def)
    operands = tuple(k for k in sign.parameters if hints[k] in (Traceable, Condition))
    values = tuple(k for k in operands if hints[k] is Traceable)

    @functools.wraps(op_def)
    def traceable_function(*args: P.args, **kwargs: P.kwargs) -> Traceable:
        (bound_args := sign.bind(*args, **kwargs)).apply_defaults()
        reference = ensure_operands(bound_args)
        deps = tuple(bound_args.arguments[k] for k in operands)
        assert all(dep.tape is reference.tape for dep in deps), f"{deps=} are recorded on different tapes"
        op_id = reference.tape.append(op_def(*bound_args.args, **bound_args.kwargs), *(dep.id for dep in deps))
        return reference.from_id(reference.tape, op_id)

    def ensure_operands(bound_args: inspect.BoundArguments) -> Traceable:
        traceables = [arg for k in operands if isinstance(arg := bound_args.arguments[k], Traceable)]
        assert traceables, f"{op_def.__name__} needs at least one traceable operand"
        value_traceables = [arg for k in values if isinstance(arg := bound_args.arguments[k], Traceable)]
        reference = value_traceables[0] if value_traceables else traceables[0]
        value_kind = reference.kind if value_traceables else DEFAULT_KIND
        for k in operands:
            kind = value_kind if hints[k] is Traceable else dtypes.Kind.BOOL
            bound_args.arguments[k] = ensure_traceable(bound_args.arguments[k], like=reference, kind=kind)
        return reference

    return traceable_function


### Leaves & conversions ###
def ensure_traceable(value: TraceableInput[T], /, like: T, kind: dtypes.Kind | None = None) -> T:
    if isinstance(value, Traceable):
        return value  # type: ignore
    return type(like)(value, kind=like.kind if kind is None else kind, tape=like.tape)


def cast(traceable: T, /, kind: dtypes.Kind | type | str) -> T:
    return type(traceable)(traceable, kind=kind)


def template(kind: dtypes.Kind | type | str, forward: str, backward: str, *operands: T) -> T:
    """Record raw templates over `operands`, `backward` may be empty"""
    assert operands, "template needs at least one traceable operand"
    assert all(op.tape is operands[0].tape for op in operands), f"{operands=} are recorded on different tapes"
    tape = operands[0].tape
    op_id = tape.append_template(dtypes.ensure_kind(kind), forward, backward, *(op.id for op in operands))
    return operands[0].from_id(tape, op_id)


def reflected(function: Callable[[TraceableInput[T], TraceableInput[T]], T]) -> Callable[[T, TraceableInput[T]], T]:
    @functools.wraps(function)
    def reflected_function(self: T, other: TraceableInput[T]) -> T:
        return function(other, self)

    return reflected_function


### Unary ops ###
@recorded
def neg(t: Traceable, /) -> llops.Op:
    return llops.Ops.NEG


@recorded
def sin(t: Traceable, /) -> llops.Op:
    return llops.Ops.SIN


@recorded
def cos(t: Traceable, /) -> llops.Op:
    return llops.Ops.COS


@recorded
def log(t: Traceable, /) -> llops.Op:
    return llops.Ops.LOG


@recorded
def exp(t: Traceable, /) -> llops.Op:
    return llops.Ops.EXP


@recorded
def sqrt(t: Traceable, /) -> llops.Op:
    return llops.Ops.SQRT


### Binary ops ###
@recorded
def add(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.ADD


@recorded
def sub(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.SUB


@recorded
def mul(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.MUL


@recorded
def div(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.DIV


### Comparisons ###
@recorded
def eq(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.EQ


@recorded
def ne(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.NE


@recorded
def le(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.LE


@recorded
def ge(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.GE


@recorded
def lt(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.LT


@recorded
def gt(t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.GT


### Ternary ops ###
@recorded
def select(cond: Condition, t1: Traceable, t2: Traceable, /) -> llops.Op:
    return llops.Ops.SELECT
