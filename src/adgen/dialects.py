"""
A `Dialect` renders recorded instructions into the statements of a target
language: declarations, forward templates, backward templates and the
function wrapper a driver puts around the generated body.
"""

from __future__ import annotations

import abc
import textwrap
from typing import ClassVar, Mapping, Sequence

import numpy as np

from adgen import dtypes, llops

Parameter = tuple[str, dtypes.Kind]
Output = tuple[str, dtypes.Kind, str]


class Dialect(abc.ABC):
    """Target language of the generated code"""

    name: ClassVar[str]
    prelude: ClassVar[str] = ""

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"

    @abc.abstractmethod
    def type_name(self, kind: dtypes.Kind) -> str:
        """Spelling of `kind` in the target language"""

    @abc.abstractmethod
    def literal(self, value: np.generic) -> str:
        """Spelling of a constant in the target language"""

    @abc.abstractmethod
    def declaration(self, kind: dtypes.Kind, name: str) -> str:
        """Zero initialized variable declaration"""

    @abc.abstractmethod
    def seed(self, name: str, expression: str) -> str:
        """Accumulate a caller supplied expression into an adjoint"""

    @abc.abstractmethod
    def forward_template(self, operation: llops.Operation) -> str: ...

    @abc.abstractmethod
    def backward_template(self, operation: llops.Operation) -> str: ...

    @abc.abstractmethod
    def function(self, name: str, params: Sequence[Parameter], body: str, outputs: Sequence[Output]) -> str:
        """Wrap a generated body in a function taking `params` and producing `outputs`"""


class TemplateDialect(Dialect, abc.ABC):
    """Looks templates up in fixed per-instruction tables"""

    __FORWARD__: ClassVar[Mapping[llops.Op, str]]
    __BACKWARD__: ClassVar[Mapping[llops.Op, str]]

    @abc.abstractmethod
    def load_template(self, kind: dtypes.Kind, source: str) -> str: ...

    @abc.abstractmethod
    def cast_template(self, kind: dtypes.Kind) -> str: ...

    def forward_template(self, operation: llops.Operation) -> str:
        match operation.op, operation.args:
            case llops.Ops.TEMPLATE, (forward, _):
                return forward
            case llops.Ops.LOAD, (str(symbol),):
                return self.load_template(operation.kind, symbol)
            case llops.Ops.LOAD, (value,):
                return self.load_template(operation.kind, self.literal(value))
            case llops.Ops.CAST, _:
                return self.cast_template(operation.kind)
            case op, _:
                return self.__FORWARD__[op]

    def backward_template(self, operation: llops.Operation) -> str:
        match operation.op, operation.args:
            case llops.Ops.TEMPLATE, (_, backward):
                return backward
            case llops.Ops.CAST, (source_kind,):
                return self.__BACKWARD__[operation.op] if source_kind.is_float else ""
            case op, _:
                return self.__BACKWARD__.get(op, "")


### C++ ###
class CppDialect(TemplateDialect):
    name = "cpp"
    prelude = "#include <cmath>\n#include <cstdint>\n"

    __TYPE_NAMES__ = {
        dtypes.Kind.VOID: "void",
        dtypes.Kind.BOOL: "bool",
        dtypes.Kind.INT8: "int8_t",
        dtypes.Kind.INT32: "int",
        dtypes.Kind.UINT32: "unsigned int",
        dtypes.Kind.FLOAT32: "float",
        dtypes.Kind.FLOAT64: "double",
    }
    __FORWARD__ = {
        llops.Ops.NEG: "$v = -$0;",
        llops.Ops.SIN: "$v = std::sin($0);",
        llops.Ops.COS: "$v = std::cos($0);",
        llops.Ops.LOG: "$v = std::log($0);",
        llops.Ops.EXP: "$v = std::exp($0);",
        llops.Ops.SQRT: "$v = std::sqrt($0);",
        llops.Ops.ADD: "$v = $0 + $1;",
        llops.Ops.SUB: "$v = $0 - $1;",
        llops.Ops.MUL: "$v = $0 * $1;",
        llops.Ops.DIV: "$v = $0 / $1;",
        llops.Ops.EQ: "$v = $0 == $1;",
        llops.Ops.NE: "$v = $0 != $1;",
        llops.Ops.LE: "$v = $0 <= $1;",
        llops.Ops.GE: "$v = $0 >= $1;",
        llops.Ops.LT: "$v = $0 < $1;",
        llops.Ops.GT: "$v = $0 > $1;",
        llops.Ops.SELECT: "$v = $0 ? $1 : $2;",
    }
    __BACKWARD__ = {
        llops.Ops.CAST: "d$0 += d$v;",
        llops.Ops.NEG: "d$0 += -d$v;",
        llops.Ops.SIN: "d$0 += d$v * std::cos($0);",
        llops.Ops.COS: "d$0 -= d$v * std::sin($0);",
        llops.Ops.LOG: "d$0 += d$v / $0;",
        llops.Ops.EXP: "d$0 += d$v * $v;",
        llops.Ops.SQRT: "d$0 += d$v * 0.5 / $v;",
        llops.Ops.ADD: "d$0 += d$v; d$1 += d$v;",
        llops.Ops.SUB: "d$0 += d$v; d$1 -= d$v;",
        llops.Ops.MUL: "d$0 += d$v * $1; d$1 += d$v * $0;",
        llops.Ops.DIV: "d$0 += d$v / $1; d$1 -= d$v * $0 / ($1 * $1);",
        llops.Ops.SELECT: "if ($0) { d$1 += d$v; } else { d$2 += d$v; }",
    }

    def type_name(self, kind: dtypes.Kind) -> str:
        return self.__TYPE_NAMES__[kind]

    def literal(self, value: np.generic) -> str:
        match value:
            case np.bool_():
                return "true" if value else "false"
            case np.integer():
                return str(int(value))
            case _:
                return str(value)

    def declaration(self, kind: dtypes.Kind, name: str) -> str:
        return f"{self.type_name(kind)} {name} = 0;"

    def seed(self, name: str, expression: str) -> str:
        return f"{name} += {expression};"

    def load_template(self, kind: dtypes.Kind, source: str) -> str:
        return f"$v = {source};"

    def cast_template(self, kind: dtypes.Kind) -> str:
        return f"$v = ({self.type_name(kind)})($0);"

    def function(self, name: str, params: Sequence[Parameter], body: str, outputs: Sequence[Output]) -> str:
        args = [f"{self.type_name(kind)} {param}" for param, kind in params]
        args += [f"{self.type_name(kind)}& {out}" for out, kind, _ in outputs]
        assignments = "".join(f"{out} = {expr};\n" for out, _, expr in outputs)
        return f"void {name}({', '.join(args)}) {{\n{body}{assignments}}}\n"


### Python + numpy ###
class PythonDialect(TemplateDialect):
    name = "python"
    prelude = "import numpy as np\n"

    __TYPE_NAMES__ = {
        dtypes.Kind.BOOL: "np.bool_",
        dtypes.Kind.INT8: "np.int8",
        dtypes.Kind.INT32: "np.int32",
        dtypes.Kind.UINT32: "np.uint32",
        dtypes.Kind.FLOAT32: "np.float32",
        dtypes.Kind.FLOAT64: "np.float64",
    }
    __FORWARD__ = {
        llops.Ops.NEG: "$v = -$0",
        llops.Ops.SIN: "$v = np.sin($0)",
        llops.Ops.COS: "$v = np.cos($0)",
        llops.Ops.LOG: "$v = np.log($0)",
        llops.Ops.EXP: "$v = np.exp($0)",
        llops.Ops.SQRT: "$v = np.sqrt($0)",
        llops.Ops.ADD: "$v = $0 + $1",
        llops.Ops.SUB: "$v = $0 - $1",
        llops.Ops.MUL: "$v = $0 * $1",
        llops.Ops.DIV: "$v = $0 / $1",
        llops.Ops.EQ: "$v = $0 == $1",
        llops.Ops.NE: "$v = $0 != $1",
        llops.Ops.LE: "$v = $0 <= $1",
        llops.Ops.GE: "$v = $0 >= $1",
        llops.Ops.LT: "$v = $0 < $1",
        llops.Ops.GT: "$v = $0 > $1",
        llops.Ops.SELECT: "$v = $1 if $0 else $2",
    }
    __BACKWARD__ = {
        llops.Ops.CAST: "d$0 += d$v",
        llops.Ops.NEG: "d$0 += -d$v",
        llops.Ops.SIN: "d$0 += d$v * np.cos($0)",
        llops.Ops.COS: "d$0 -= d$v * np.sin($0)",
        llops.Ops.LOG: "d$0 += d$v / $0",
        llops.Ops.EXP: "d$0 += d$v * $v",
        llops.Ops.SQRT: "d$0 += d$v * 0.5 / $v",
        llops.Ops.ADD: "d$0 += d$v\nd$1 += d$v",
        llops.Ops.SUB: "d$0 += d$v\nd$1 -= d$v",
        llops.Ops.MUL: "d$0 += d$v * $1\nd$1 += d$v * $0",
        llops.Ops.DIV: "d$0 += d$v / $1\nd$1 -= d$v * $0 / ($1 * $1)",
        llops.Ops.SELECT: "if $0:\n    d$1 += d$v\nelse:\n    d$2 += d$v",
    }

    def type_name(self, kind: dtypes.Kind) -> str:
        if kind not in self.__TYPE_NAMES__:
            raise dtypes.UnsupportedKindError(f"{kind} has no value representation in {self}")
        return self.__TYPE_NAMES__[kind]

    def literal(self, value: np.generic) -> str:
        match value:
            case np.bool_():
                return str(bool(value))
            case np.integer():
                return str(int(value))
            case _:
                return str(value)

    def declaration(self, kind: dtypes.Kind, name: str) -> str:
        return f"{name} = {self.type_name(kind)}(0)"

    def seed(self, name: str, expression: str) -> str:
        return f"{name} += {expression}"

    def load_template(self, kind: dtypes.Kind, source: str) -> str:
        return f"$v = {self.type_name(kind)}({source})"

    def cast_template(self, kind: dtypes.Kind) -> str:
        return f"$v = {self.type_name(kind)}($0)"

    def forward_template(self, operation: llops.Operation) -> str:
        if operation.op == llops.Ops.DIV and operation.kind.is_int:  # NOTE: truncate like C integer division
            return f"$v = {self.type_name(operation.kind)}($0 / $1)"
        return super().forward_template(operation)

    def function(self, name: str, params: Sequence[Parameter], body: str, outputs: Sequence[Output]) -> str:
        returns = f"return {', '.join(expr for *_, expr in outputs)},\n" if outputs else ""
        return f"def {name}({', '.join(param for param, _ in params)}):\n" + textwrap.indent(
            body + returns or "pass\n", " " * 4
        )


DIALECTS: dict[str, type[Dialect]] = {dialect.name: dialect for dialect in (CppDialect, PythonDialect)}


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown dialect {name=}, expected one of {sorted(DIALECTS)}") from None
