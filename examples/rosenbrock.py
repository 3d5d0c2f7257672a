"""
Example, generating the gradient of the rosenbrock function

```bash
python examples/rosenbrock.py --dialect cpp --out grad.cpp
python examples/rosenbrock.py --dialect python --out grad.py --descent_steps 2000
```

With the python dialect the generated function is loaded back and used for a
plain gradient descent towards the minimum at (1, 1).
"""

from __future__ import annotations

import argparse
import logging
import pathlib

import numpy as np

import adgen

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(message)s")
logger = logging.getLogger(__name__)


def rosenbrock(x, y):
    t = 1.0 - x
    t2 = y - x * x
    return t * t + 100.0 * t2 * t2


def generate(dialect: adgen.Dialect, kind: adgen.Kind) -> str:
    """Trace `rosenbrock` and wrap its adjoint code as grad_F(x, y, dz) -> (dx, dy, z)"""
    recorder = adgen.Recorder(dialect)
    with adgen.Configuration(recorder=recorder):
        adgen.start_recording()
        x = adgen.Scalar("x", kind=kind)
        y = adgen.Scalar("y", kind=kind)
        z = rosenbrock(x, y)
        adgen.stop_recording()
        adgen.set_gradient(z, "dz")
        adgen.run_backward()
        logger.info("recorded %d operations", len(recorder.tape))
        outputs = [
            ("dx", kind, adgen.gradient_reference(x)),
            ("dy", kind, adgen.gradient_reference(y)),
            ("z", kind, recorder.variable_reference(z)),
        ]
        return dialect.prelude + dialect.function(
            "grad_F", [("x", kind), ("y", kind), ("dz", kind)], adgen.generated_code(), outputs
        )


def descend(source: str, steps: int, learning_rate: float) -> np.ndarray:
    namespace: dict = {}
    exec(compile(source, "<grad_F>", "exec"), namespace)
    grad_F = namespace["grad_F"]
    point = np.array([-1.2, 1.0])
    for step in range(steps):
        dx, dy, z = grad_F(*point, 1.0)
        point -= learning_rate * np.array([dx, dy])
        if step % 500 == 0:
            logger.info("step %5d: F%s = %.6f", step, tuple(point.round(4)), z)
    return point


def main():
    parser = argparse.ArgumentParser(description="Generate the gradient of the rosenbrock function.")
    parser.add_argument("--dialect", choices=sorted(adgen.dialects.DIALECTS), default="cpp", help="Target language.")
    parser.add_argument("--kind", type=adgen.Kind, default=adgen.Kind.FLOAT32, help="Scalar kind of x, y.")
    parser.add_argument("--out", type=pathlib.Path, default=None, help="Write the generated code to this file.")
    parser.add_argument("--descent_steps", type=int, default=0, help="Gradient descent steps (python dialect).")
    parser.add_argument("--learning_rate", type=float, default=1e-3, help="Learning rate for gradient descent.")
    args = parser.parse_args()

    source = generate(adgen.get_dialect(args.dialect), args.kind)
    if args.out is None:
        print(source)
    else:
        args.out.write_text(source)
        logger.info("wrote %s", args.out)

    if args.descent_steps:
        assert args.dialect == "python", "gradient descent runs the generated python code"
        minimum = descend(source, args.descent_steps, args.learning_rate)
        logger.info("reached %s after %d steps", minimum, args.descent_steps)


if __name__ == "__main__":
    main()
