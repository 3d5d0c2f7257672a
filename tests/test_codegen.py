"""
Forward & backward emission
"""

import re

import pytest

import adgen
from adgen import config, dialects, dtypes, recorder, scalars, templates

Kind = dtypes.Kind
Scalar = scalars.Scalar
VAR_REF = re.compile(r"\bd?v\d+\b")


def rosenbrock(x, y):
    t = 1.0 - x
    t2 = y - x * x
    return t * t + 100.0 * t2 * t2


def test_two_input_sum_cpp():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        adgen.start_recording()
        x, y = Scalar("x"), Scalar("y")
        z = x + y
        adgen.stop_recording()
        adgen.set_gradient(z, "1")
        adgen.run_backward()
        code = adgen.generated_code()
    assert code == (
        "float v0 = 0;\n"
        "float dv0 = 0;\n"
        "float v1 = 0;\n"
        "float dv1 = 0;\n"
        "float v2 = 0;\n"
        "float dv2 = 0;\n"
        "v0 = x;\n"
        "v1 = y;\n"
        "v2 = v0 + v1;\n"
        "dv2 += 1;\n"
        "dv0 += dv2; dv1 += dv2;\n"
    )
    assert rec.gradient_reference(x) == "dv0"
    assert rec.gradient_reference(y) == "dv1"


def test_two_input_sum_python():
    rec = recorder.Recorder(dialects.PythonDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        z = Scalar("x") + Scalar("y")
        rec.stop()
        rec.set_gradient(z, "1")
        rec.run_backward()
    assert rec.forward_code == "v0 = np.float32(x)\nv1 = np.float32(y)\nv2 = v0 + v1\n"
    assert rec.backward_code == "dv2 += 1\ndv0 += dv2\ndv1 += dv2\n"
    assert rec.declarations.splitlines()[:2] == ["v0 = np.float32(0)", "dv0 = np.float32(0)"]


def test_declarations_pair_every_operation(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        x, y = Scalar("x"), Scalar("y", kind=Kind.FLOAT32)
        adgen.select(x < y, rosenbrock(x, y), adgen.sin(x).cast(Kind.FLOAT32))
        rec.stop()
    declarations = rec.buffer.declarations
    assert len(declarations) == 2 * len(rec.tape)
    for op in rec.tape:
        assert dialect.declaration(op.kind, templates.var_name(op.id)) in declarations
        assert dialect.declaration(op.kind, templates.grad_name(op.id)) in declarations
    assert len(rec.buffer.forward) == len(rec.tape)


def test_empty_trace(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    rec.start()
    rec.stop()
    assert rec.declarations == rec.forward_code == ""
    rec.run_backward()
    assert rec.backward_code == ""
    assert rec.generated_code() == ""


def test_empty_forward_template_emits_nothing(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        x = Scalar("x")
        adgen.template(Kind.FLOAT32, "", "", x)
        rec.stop()
    assert len(rec.buffer.forward) == 1
    assert len(rec.buffer.declarations) == 4


def test_literals_cpp():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        Scalar(0.5)
        Scalar(True, kind=Kind.BOOL)
        Scalar(-3, kind=Kind.INT32)
        Scalar(100, kind=Kind.FLOAT64)
        rec.stop()
    assert rec.forward_code == "v0 = 0.5;\nv1 = true;\nv2 = -3;\nv3 = 100.0;\n"
    assert "bool v1 = 0;" in rec.declarations
    assert "double dv3 = 0;" in rec.declarations


def test_cast_cpp():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        x = Scalar("x")
        n = Scalar("n", kind=Kind.INT32)
        x.cast(Kind.FLOAT64)
        n.cast(Kind.FLOAT32)
        x.cast(Kind.INT32)
        rec.stop()
        rec.run_backward()
    assert rec.forward_code.splitlines()[2:] == ["v2 = (double)(v0);", "v3 = (float)(v1);", "v4 = (int)(v0);"]
    assert rec.backward_code == "dv0 += dv2;\n"


def test_backward_runs_in_reverse_order(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        x, y = Scalar("x"), Scalar("y")
        f = rosenbrock(x, y)
        rec.stop()
        rec.set_gradient(f, "dz")
        rec.run_backward()
    seed, *sweep = rec.buffer.backward
    assert seed == dialect.seed(rec.gradient_reference(f), "dz")
    expected = [
        (op.id, templates.render(dialect.backward_template(op), op))
        for op in reversed(rec.tape)
        if op.kind.is_float and dialect.backward_template(op)
    ]
    assert sweep == [statement for _, statement in expected]
    position = {op_id: i for i, (op_id, _) in enumerate(expected)}
    for op in rec.tape:
        for dep in op.deps:
            if op.id in position and dep in position:
                assert position[op.id] < position[dep]


def test_rosenbrock_has_no_dangling_references():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        x, y = Scalar("x"), Scalar("y")
        f = rosenbrock(x, y)
        rec.stop()
        rec.set_gradient(f, "dz")
        rec.run_backward()
    declared = {m.split()[1] for m in rec.buffer.declarations}
    referenced = set(VAR_REF.findall(rec.forward_code + rec.backward_code))
    assert referenced <= declared
    assert {rec.gradient_reference(x), rec.gradient_reference(y)} <= referenced
    free = set(re.findall(r"\b[a-z_]\w*\b", rec.forward_code + rec.backward_code)) - declared
    assert free == {"x", "y", "dz"}


def test_non_differentiable_results_are_skipped(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        x = Scalar("x")
        adgen.template(Kind.BOOL, "$v = $0 > 0;", "d$0 += 1000;", x)
        adgen.template(Kind.INT32, "$v = 1;", "d$0 += 2000;", x)
        adgen.template(Kind.FLOAT32, "$v = 2 * $0;", "d$0 += 2 * d$v;", x)
        n = x.cast(Kind.INT32)
        _ = n < n
        rec.stop()
        rec.run_backward()
    assert "1000" not in rec.backward_code
    assert "2000" not in rec.backward_code
    assert rec.buffer.backward == ["dv0 += 2 * dv3;"]


def test_seeds_are_additive(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        z = Scalar("x") * 2.0
        w = z + 1.0
        rec.stop()
        rec.set_gradient(z, "1")
        rec.set_gradient(z, "2")
        rec.set_gradient(w, "a")
        rec.run_backward()
    assert rec.buffer.backward[:3] == [
        dialect.seed("dv2", "1"),
        dialect.seed("dv2", "2"),
        dialect.seed("dv4", "a"),
    ]


def test_generated_code_order(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        z = adgen.exp(Scalar("x"))
        rec.stop()
        rec.set_gradient(z, "1")
        rec.run_backward()
    assert rec.generated_code() == rec.declarations + rec.forward_code + rec.backward_code
    assert str(rec.buffer) == rec.generated_code()


def test_restart_clears_previous_trace(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        Scalar("x") + Scalar("y")
        rec.stop()
        rec.run_backward()
        rec.start()
        Scalar("w")
        rec.stop()
    assert len(rec.tape) == 1
    assert rec.backward_code == ""
    assert len(rec.buffer.declarations) == 2


@pytest.mark.parametrize(
    "action",
    [
        lambda rec: rec.stop(),
        lambda rec: rec.run_backward(),
        lambda rec: rec.set_gradient(None, "1"),
    ],
)
def test_lifecycle_requires_start(action):
    with pytest.raises(adgen.RecordingError):
        action(recorder.Recorder())


def test_lifecycle_order():
    rec = recorder.Recorder()
    with config.Configuration(recorder=rec):
        rec.start()
        x = Scalar("x")
        with pytest.raises(adgen.RecordingError):
            rec.run_backward()
        with pytest.raises(adgen.RecordingError):
            rec.set_gradient(x, "1")
        rec.stop()
        with pytest.raises(adgen.RecordingError):
            rec.stop()
        with pytest.raises(adgen.RecordingError):
            Scalar("y")
        rec.run_backward()
        with pytest.raises(adgen.RecordingError):
            rec.run_backward()
        with pytest.raises(adgen.RecordingError):
            rec.set_gradient(x, "1")


def test_foreign_handles_are_rejected():
    first, second = recorder.Recorder(), recorder.Recorder()
    first.start()
    second.start()
    x = Scalar("x", tape=first.tape)
    Scalar("y", tape=second.tape)
    second.stop()
    with pytest.raises(AssertionError):
        second.gradient_reference(x)
    with pytest.raises(AssertionError):
        second.set_gradient(x, "1")


def test_independent_recorders(dialect: dialects.Dialect):
    first, second = recorder.Recorder(dialect), recorder.Recorder(dialect)
    with config.Configuration(recorder=first):
        first.start()
        a = Scalar("a")
        with config.Configuration(recorder=second):
            second.start()
            b = adgen.sin(Scalar("b"))
            second.stop()
        a = a * a
        first.stop()
    assert len(first.tape) == 2 and len(second.tape) == 2
    assert a.tape is first.tape and b.tape is second.tape
    assert adgen.Configuration.recorder is not first


def test_function_wrapper_cpp():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        x, y = Scalar("x"), Scalar("y")
        f = rosenbrock(x, y)
        rec.stop()
        rec.set_gradient(f, "dz")
        rec.run_backward()
    source = rec.dialect.function(
        "grad_F",
        [("x", Kind.FLOAT32), ("y", Kind.FLOAT32), ("dz", Kind.FLOAT32)],
        rec.generated_code(),
        [("dx", Kind.FLOAT32, rec.gradient_reference(x)), ("dy", Kind.FLOAT32, rec.gradient_reference(y))],
    )
    assert source.startswith("void grad_F(float x, float y, float dz, float& dx, float& dy) {\n")
    assert source.endswith(f"dx = {rec.gradient_reference(x)};\ndy = {rec.gradient_reference(y)};\n}}\n")
    assert rec.generated_code() in source


def test_module_api_uses_configured_recorder():
    rec = recorder.Recorder()
    with config.Configuration(recorder=rec):
        assert adgen.start_recording() is rec
        z = Scalar("x") - 1.0
        adgen.stop_recording()
        adgen.set_gradient(z, "1")
        adgen.run_backward()
        assert adgen.gradient_reference(z) == rec.gradient_reference(z) == "dv2"
        assert adgen.generated_code() == rec.generated_code()


def test_get_dialect():
    assert isinstance(adgen.get_dialect("cpp"), dialects.CppDialect)
    assert isinstance(adgen.get_dialect("Python"), dialects.PythonDialect)
    with pytest.raises(ValueError):
        adgen.get_dialect("fortran")


def test_symbols_are_raw_source_text(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        px, x0 = Scalar("p.x"), Scalar("xs[0]")
        z = px * x0
        rec.stop()
        rec.set_gradient(z, "1")
        rec.run_backward()
    assert rec.buffer.forward[:2] == [
        templates.render(dialect.load_template(Kind.FLOAT32, "p.x"), rec.tape[px.id]),
        templates.render(dialect.load_template(Kind.FLOAT32, "xs[0]"), rec.tape[x0.id]),
    ]
    assert "p.x" in rec.buffer.forward[0] and "xs[0]" in rec.buffer.forward[1]


def test_symbol_text_cpp():
    rec = recorder.Recorder(dialects.CppDialect())
    with config.Configuration(recorder=rec):
        rec.start()
        Scalar("p.x") + Scalar("xs[i + 1]")
        rec.stop()
    assert rec.forward_code == "v0 = p.x;\nv1 = xs[i + 1];\nv2 = v0 + v1;\n"


def test_overflowing_literal_is_rejected(dialect: dialects.Dialect):
    rec = recorder.Recorder(dialect)
    with config.Configuration(recorder=rec):
        rec.start()
        x = Scalar("x")
        with pytest.raises(AssertionError):
            x * 1e300
        x.cast(Kind.FLOAT64) * 1e300
        rec.stop()
    assert "inf" not in rec.forward_code
    assert [op.op.name for op in rec.tape] == ["LOAD", "CAST", "LOAD", "MUL"]


def test_cpp_prelude_declares_fixed_width_ints():
    prelude = dialects.CppDialect.prelude
    assert "#include <cmath>" in prelude and "#include <cstdint>" in prelude
    assert dialects.CppDialect().type_name(Kind.INT8) == "int8_t"
