"""
Symbolic scalars with operator overloading
"""

from __future__ import annotations

from adgen import autograd


class Scalar(autograd.Traceable):
    __slots__ = ()

    # arithmetic
    __neg__ = autograd.neg
    __add__ = autograd.add
    __radd__ = autograd.reflected(autograd.add)
    __sub__ = autograd.sub
    __rsub__ = autograd.reflected(autograd.sub)
    __mul__ = autograd.mul
    __rmul__ = autograd.reflected(autograd.mul)
    __truediv__ = autograd.div
    __rtruediv__ = autograd.reflected(autograd.div)
    # comparisons (reflected forms are resolved by python through the mirrored operator)
    __eq__ = autograd.eq  # type: ignore[assignment]
    __ne__ = autograd.ne  # type: ignore[assignment]
    __le__ = autograd.le
    __ge__ = autograd.ge
    __lt__ = autograd.lt
    __gt__ = autograd.gt
    __hash__ = None  # type: ignore[assignment]
    # math
    sin = autograd.sin
    cos = autograd.cos
    log = autograd.log
    exp = autograd.exp
    sqrt = autograd.sqrt
    # conversion
    cast = autograd.cast
