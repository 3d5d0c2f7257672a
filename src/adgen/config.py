"""
# Global configuration for the adgen package.

User can modify this configuration in 2 ways:

## Permanent change
```python
from adgen import config, recorder
config.Configuration(recorder=recorder.Recorder())
```

## Temporary change
```python
from adgen import config, recorder
with config.Configuration(recorder=recorder.Recorder()):
    ...
```
"""

from __future__ import annotations

import collections
import types
from typing import TYPE_CHECKING, Any, ClassVar

from adgen import callbacks

if TYPE_CHECKING:
    from adgen import llops, recorder


class _StackedConfigMeta(type):
    __singletons__: ClassVar[dict[type, Any]] = {}
    __regular_attrs__: set[str]  # attrs that are not accessed through context stack
    __context_stack__: collections.ChainMap[str, Any]  # stack of contexts that hold all attrs
    __callback_stack__: callbacks.CallbackStack  # stack of callbacks
    __callback_frames__: list[tuple[callbacks.Callback, ...]]  # callbacks pushed with each context

    def __call__(cls, *callback: callbacks.Callback, **config_dict: Any) -> type[Configuration]:
        assert not (kwargs := {k: v for k, v in config_dict.items() if v is None}), f"{kwargs=}"
        if cls not in cls.__singletons__:  # initialize:=set class vars for the first time
            cls.__context_stack__ = collections.ChainMap(config_dict)
            cls.__callback_stack__ = callbacks.CallbackStack(callback)
            cls.__callback_frames__ = [callback]
            cls.__regular_attrs__ = set(dir(cls)) - set(dir(_StackedConfigMeta))
            cls.__singletons__[cls] = cls
        else:  # update the stacks with new contexts
            cls.__callback_stack__.push(*callback)
            cls.__callback_frames__.insert(0, callback)
            cls.__context_stack__.maps.insert(0, config_dict)
        return cls.__singletons__[cls]

    def __getattr__(cls: type[_StackedConfigMeta], key: str):
        return super().__getattribute__(key) if key in cls.__regular_attrs__ else cls.__context_stack__[key]

    def __enter__(cls) -> None:
        for enter_callback in cls.__callback_stack__[callbacks.OnCtxEnterCallBack]:
            enter_callback.on_ctx_enter()

    def __exit__(cls, exc_type: type[Exception], exc_value: Exception, traceback: types.TracebackType) -> None:
        for exit_callback in cls.__callback_stack__[callbacks.OnCtxExitCallBack]:
            exit_callback.on_ctx_exit(exc_type, exc_value, traceback)
        cls.__context_stack__.maps.pop(0)
        cls.__callback_stack__.drop(*cls.__callback_frames__.pop(0))


class Configuration(metaclass=_StackedConfigMeta):
    """Configuration for the adgen package."""

    recorder: recorder.Recorder

    def __init__(
        self,
        *callback: callbacks.Callback,
        recorder: recorder.Recorder | None = None,
        **context: Any,
    ) -> None: ...

    @classmethod
    def on_operation_recorded(cls, operation: llops.Operation) -> None:
        for callback in cls.__callback_stack__[callbacks.OnOperationRecordedCallback]:
            callback.on_operation_recorded(operation)

    @classmethod
    def on_stage_change(cls, rec: recorder.Recorder, stage: recorder.Stage) -> None:
        for callback in cls.__callback_stack__[callbacks.OnStageChangeCallback]:
            callback.on_stage_change(rec, stage)
