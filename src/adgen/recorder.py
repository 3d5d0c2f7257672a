"""
A `Recorder` owns one trace: its tape, the dialect it is rendered in and the
generated code.

Lifecycle: `start` → record operations → `stop` (forward pass) →
`set_gradient` → `run_backward` (backward pass) → `generated_code`.
The module level functions drive the recorder of the active `Configuration`.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from adgen import config, dialects, emitter, llops, templates
from adgen.tape import RecordingError, Tape

if TYPE_CHECKING:
    from adgen import autograd


class Stage(enum.Enum):
    IDLE = enum.auto()
    RECORDING = enum.auto()
    RECORDED = enum.auto()
    DIFFERENTIATED = enum.auto()


class Recorder:
    def __init__(self, dialect: dialects.Dialect | None = None) -> None:
        self.dialect = dialects.CppDialect() if dialect is None else dialect
        self.tape = Tape()
        self.buffer = emitter.CodeBuffer()
        self.stage = Stage.IDLE

    def __repr__(self) -> str:
        return f"<{self.__module__}.{self.__class__.__name__}({self.stage.name}, {self.dialect}, {self.tape!r})>"

    def start(self) -> None:
        self.tape.clear()
        self.buffer.clear()
        self.tape.open()
        self._enter_stage(Stage.RECORDING)

    def stop(self) -> None:
        self._expect_stage(Stage.RECORDING, "stop recording")
        self.tape.close()
        emitter.emit_forward(self.tape, self.dialect, self.buffer)
        self._enter_stage(Stage.RECORDED)

    def set_gradient(self, handle: autograd.Traceable, expression: str) -> None:
        """Seed the adjoint of `handle` with a source expression; seeds of the same handle add up"""
        self._expect_stage(Stage.RECORDED, "seed a gradient")
        emitter.emit_seed(self.operation(handle), expression, self.dialect, self.buffer)

    def run_backward(self) -> None:
        self._expect_stage(Stage.RECORDED, "run the backward pass")
        emitter.emit_backward(self.tape, self.dialect, self.buffer)
        self._enter_stage(Stage.DIFFERENTIATED)

    def gradient_reference(self, handle: autograd.Traceable) -> str:
        return templates.grad_name(self.operation(handle).id)

    def variable_reference(self, handle: autograd.Traceable) -> str:
        return templates.var_name(self.operation(handle).id)

    def generated_code(self) -> str:
        return str(self.buffer)

    def operation(self, handle: autograd.Traceable) -> llops.Operation:
        assert handle.tape is self.tape, f"{handle!r} was not recorded by {self!r}"
        return self.tape[handle.id]

    @property
    def declarations(self) -> str:
        return emitter.join_statements(self.buffer.declarations)

    @property
    def forward_code(self) -> str:
        return emitter.join_statements(self.buffer.forward)

    @property
    def backward_code(self) -> str:
        return emitter.join_statements(self.buffer.backward)

    def _expect_stage(self, stage: Stage, action: str) -> None:
        if self.stage is not stage:
            raise RecordingError(f"cannot {action} while {self.stage.name}, expected {stage.name}")

    def _enter_stage(self, stage: Stage) -> None:
        self.stage = stage
        config.Configuration.on_stage_change(self, stage)


### Active recorder API ###
def current_recorder() -> Recorder:
    return config.Configuration.recorder


def start_recording() -> Recorder:
    (recorder := current_recorder()).start()
    return recorder


def stop_recording() -> None:
    current_recorder().stop()


def set_gradient(handle: autograd.Traceable, expression: str) -> None:
    current_recorder().set_gradient(handle, expression)


def run_backward() -> None:
    current_recorder().run_backward()


def gradient_reference(handle: autograd.Traceable) -> str:
    return current_recorder().gradient_reference(handle)


def generated_code() -> str:
    return current_recorder().generated_code()
