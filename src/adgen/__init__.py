import contextlib
import os

from adgen import callbacks
from adgen.autograd import cos, exp, log, select, sin, sqrt, template
from adgen.config import Configuration
from adgen.dialects import CppDialect, Dialect, PythonDialect, get_dialect
from adgen.dtypes import Kind, UnsupportedKindError
from adgen.recorder import (
    Recorder,
    gradient_reference,
    generated_code,
    run_backward,
    set_gradient,
    start_recording,
    stop_recording,
)
from adgen.scalars import Scalar
from adgen.tape import RecordingError

### Default configuration ###
Configuration(recorder=Recorder(get_dialect(os.getenv(DIALECT_ENV_VAR := "ADGEN_DIALECT", "cpp"))))


__all__ = [
    "Configuration",
    "CppDialect",
    "Dialect",
    "Kind",
    "PythonDialect",
    "Recorder",
    "RecordingError",
    "Scalar",
    "UnsupportedKindError",
    "callbacks",
    "cos",
    "exp",
    "generated_code",
    "get_dialect",
    "gradient_reference",
    "log",
    "run_backward",
    "select",
    "set_gradient",
    "sin",
    "sqrt",
    "start_recording",
    "stop_recording",
    "template",
]

### install extras
with contextlib.suppress(ImportError):
    import adgen_logging
