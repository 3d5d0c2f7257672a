"""
Callback hooks of the adgen package.

A callback subclasses one or more hooks below and is pushed with
`Configuration(callback, ...)`, either permanently or for the span of a `with` block.
"""

from __future__ import annotations

import abc
import collections
import types
from typing import TYPE_CHECKING, Iterable, TypeVar

if TYPE_CHECKING:
    from adgen import llops, recorder

HookType = TypeVar("HookType", bound="Callback")


class Callback(abc.ABC): ...


class CallbackStack:
    """Registered callbacks per hook, the most recently pushed first"""

    def __init__(self, callbacks: Iterable[Callback] = ()) -> None:
        self._hooks = {hook: collections.deque[Callback]() for hook in Callback.__subclasses__()}
        self.push(*callbacks)

    def __getitem__(self, hook: type[HookType]) -> collections.deque[HookType]:
        return self._hooks[hook]  # type: ignore

    def hooks_of(self, callback: Callback) -> list[type[Callback]]:
        return [hook for hook in self._hooks if isinstance(callback, hook)]

    def push(self, *callbacks: Callback) -> None:
        for callback in callbacks:
            assert self.hooks_of(callback), f"{callback=} implements no hook"
            for hook in self.hooks_of(callback):
                self._hooks[hook].appendleft(callback)

    def drop(self, *callbacks: Callback) -> None:
        for callback in callbacks:
            for hook in self.hooks_of(callback):
                self._hooks[hook].remove(callback)


### Hooks ###
class OnOperationRecordedCallback(Callback, abc.ABC):
    def on_operation_recorded(self, operation: llops.Operation) -> None: ...
class OnStageChangeCallback(Callback, abc.ABC):
    def on_stage_change(self, rec: recorder.Recorder, stage: recorder.Stage) -> None: ...
class OnCtxEnterCallBack(Callback, abc.ABC):
    def on_ctx_enter(self) -> None: ...
class OnCtxExitCallBack(Callback, abc.ABC):
    def on_ctx_exit(self, exc_type: type[Exception], exc_value: Exception, traceback: types.TracebackType) -> None: ...
