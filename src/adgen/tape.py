"""
The tape is the append-only record of one trace.

Every recorded `Operation` may only refer to operations that are already on the
tape, so recording order is a topological order of the computation and
reversed recording order is safe for adjoint accumulation.
"""

from __future__ import annotations

from typing import Any, Iterator, Sequence, overload

from adgen import config, dtypes, llops, templates


class RecordingError(RuntimeError):
    """The trace lifecycle was used out of order"""


class Tape(Sequence[llops.Operation]):
    def __init__(self) -> None:
        self._operations: list[llops.Operation] = []
        self._recording = False

    def __repr__(self) -> str:
        status = "RECORDING" if self._recording else "CLOSED"
        return f"<{self.__module__}.{self.__class__.__name__}({status}, {len(self)} operations)>"

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[llops.Operation]:
        return iter(self._operations)

    def __reversed__(self) -> Iterator[llops.Operation]:
        return reversed(self._operations)

    @overload
    def __getitem__(self, idx: int) -> llops.Operation: ...
    @overload
    def __getitem__(self, idx: slice) -> Sequence[llops.Operation]: ...
    def __getitem__(self, idx):
        return self._operations[idx]

    @property
    def is_recording(self) -> bool:
        return self._recording

    def open(self) -> None:
        self._recording = True

    def close(self) -> None:
        self._recording = False

    def clear(self) -> None:
        self._operations.clear()

    def append(self, op: llops.Op, *deps: int, **payload: Any) -> int:
        """Record `op` applied to the values `deps` and return the id of its result"""
        if not self._recording:
            raise RecordingError(f"cannot record {op.name} on a closed tape, call start_recording() first")
        assert len(deps) <= templates.MAX_DEPS, f"{op.name} has {len(deps)=} > {templates.MAX_DEPS=}"
        assert all(0 <= dep < len(self) for dep in deps), f"{deps=} must already be on a tape of {len(self)=}"
        kind, args = op(*(self._operations[dep].kind for dep in deps), **payload)
        operation = llops.Operation(len(self), op, kind, tuple(deps), args)
        self._operations.append(operation)
        config.Configuration.on_operation_recorded(operation)
        return operation.id

    def append_template(self, kind: dtypes.Kind, forward: str, backward: str, *deps: int) -> int:
        """Record raw forward & backward templates"""
        return self.append(llops.Ops.TEMPLATE, *deps, kind=kind, forward=forward, backward=backward)
