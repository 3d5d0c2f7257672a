"""
Code emission from a recorded tape.

The forward pass replays the tape in recording order, the backward pass
replays it in reverse so that every adjoint is complete before it is
propagated to the operands that produced it.
"""

from __future__ import annotations

import dataclasses
from typing import Iterable

from adgen import dialects, llops, templates


@dataclasses.dataclass(slots=True)
class CodeBuffer:
    declarations: list[str] = dataclasses.field(default_factory=list)
    forward: list[str] = dataclasses.field(default_factory=list)
    backward: list[str] = dataclasses.field(default_factory=list)

    def __str__(self) -> str:
        return join_statements(self.declarations) + join_statements(self.forward) + join_statements(self.backward)

    def clear(self) -> None:
        self.declarations.clear()
        self.forward.clear()
        self.backward.clear()


def emit_forward(operations: Iterable[llops.Operation], dialect: dialects.Dialect, buffer: CodeBuffer) -> None:
    operations = tuple(operations)
    for operation in operations:
        buffer.declarations.append(dialect.declaration(operation.kind, templates.var_name(operation.id)))
        buffer.declarations.append(dialect.declaration(operation.kind, templates.grad_name(operation.id)))
    for operation in operations:
        if statement := templates.render(dialect.forward_template(operation), operation):
            buffer.forward.append(statement)


def emit_seed(operation: llops.Operation, expression: str, dialect: dialects.Dialect, buffer: CodeBuffer) -> None:
    buffer.backward.append(dialect.seed(templates.grad_name(operation.id), expression))


def emit_backward(operations: Iterable[llops.Operation], dialect: dialects.Dialect, buffer: CodeBuffer) -> None:
    for operation in sorted(operations, key=lambda op: op.id, reverse=True):
        if not operation.kind.is_float:  # NOTE: bools and ints carry no gradient
            continue
        if statement := templates.render(dialect.backward_template(operation), operation):
            buffer.backward.append(statement)


def join_statements(statements: Iterable[str]) -> str:
    return "".join(f"{statement}\n" for statement in statements)
