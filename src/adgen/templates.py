"""
Placeholder substitution for instruction templates

A template is a code fragment that refers to its own result as `$v` and to its
dependencies positionally as `$0`..`$3`. Adjoints are spelled by prefixing a
`d`, so `d$v` renders to `dv<id>` once `$v` is replaced by `v<id>`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adgen import llops

SELF_PLACEHOLDER = "$v"
MAX_DEPS = 4


def dep_placeholder(i: int) -> str:
    assert 0 <= i < MAX_DEPS, f"{i=} out of range for {MAX_DEPS=}"
    return f"${i}"


def var_name(op_id: int) -> str:
    return f"v{op_id}"


def grad_name(op_id: int) -> str:
    return f"d{var_name(op_id)}"


def substitute(text: str, token: str, replacement: str) -> str:
    """Replace every occurrence of `token`, including repeated uses, with `replacement`"""
    assert token, "empty token"
    assert token not in replacement, f"{replacement=} reintroduces {token=}"
    while token in text:
        text = text.replace(token, replacement)
    return text


def render(template: str, operation: llops.Operation) -> str:
    text = substitute(template, SELF_PLACEHOLDER, var_name(operation.id))
    for i, dep in enumerate(operation.deps):
        text = substitute(text, dep_placeholder(i), var_name(dep))
    return text
