from __future__ import annotations

import random
from typing import TYPE_CHECKING, Callable, Sequence

import numpy as np
import pytest

from adgen import config, dialects, dtypes, recorder, scalars

if TYPE_CHECKING:
    from _pytest.python import Metafunc

DIALECTS = [dialects.CppDialect, dialects.PythonDialect]
GradientFunction = Callable[..., tuple[np.generic, ...]]


def pytest_generate_tests(metafunc: Metafunc) -> None:
    if dialect.__name__ in metafunc.fixturenames:
        metafunc.parametrize(dialect.__name__, DIALECTS, indirect=True)


@pytest.fixture
def dialect(request: pytest.FixtureRequest) -> dialects.Dialect:
    if request.param in DIALECTS:
        return request.param()
    raise ValueError("invalid internal test config")


@pytest.fixture(autouse=True)
def set_random_seeds(seed: int = 42):
    np.random.seed(seed)
    random.seed(seed)


def load_python(source: str, name: str) -> Callable:
    namespace: dict = {}
    exec(compile(source, f"<adgen:{name}>", "exec"), namespace)
    return namespace[name]


@pytest.fixture
def python_function() -> Callable[[str, str], Callable]:
    return load_python


@pytest.fixture
def differentiate() -> Callable[..., GradientFunction]:
    """
    Trace `function` over float64 inputs `x0..xn` and load the generated python as
    `grad(x0, ..., xn, seed) -> (dx0, ..., dxn, value)`
    """

    def build(function: Callable[..., scalars.Scalar], n_inputs: int, kind=dtypes.Kind.FLOAT64) -> GradientFunction:
        rec = recorder.Recorder(dialects.PythonDialect())
        with config.Configuration(recorder=rec):
            rec.start()
            inputs = [scalars.Scalar(f"x{i}", kind=kind) for i in range(n_inputs)]
            output = function(*inputs)
            rec.stop()
            rec.set_gradient(output, "seed")
            rec.run_backward()
        params: Sequence[dialects.Parameter] = [*((f"x{i}", kind) for i in range(n_inputs)), ("seed", output.kind)]
        outputs: Sequence[dialects.Output] = [
            *((f"dx{i}", kind, rec.gradient_reference(x)) for i, x in enumerate(inputs)),
            ("value", output.kind, rec.variable_reference(output)),
        ]
        source = rec.dialect.prelude + rec.dialect.function("grad", params, rec.generated_code(), outputs)
        return load_python(source, "grad")

    return build


def central_differences(f: Callable[..., float], point: Sequence[float], h: float = 1e-6) -> np.ndarray:
    grads = []
    for i in range(len(point)):
        up, down = list(point), list(point)
        up[i] += h
        down[i] -= h
        grads.append((f(*up) - f(*down)) / (2 * h))
    return np.array(grads)


@pytest.fixture
def finite_differences() -> Callable[..., np.ndarray]:
    return central_differences
