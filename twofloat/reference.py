"""
高精度参考实现 (mpmath)

用于验证 double-word 运算：把 DoubleWord 精确转换为 mpf，
在 200 位精度下计算参考值，并以 u² 为单位度量相对误差。
各函数在 mp.workprec 内计算，不修改调用方的 mpmath 精度。
"""

import mpmath
from mpmath import mp, mpf

from .config import FloatFormat, DEFAULT_FORMAT
from .value import DoubleWord

REFERENCE_PREC = 200


def to_mpf(x) -> mpf:
    """DoubleWord 或原生数 → mpf (精确)"""
    with mp.workprec(REFERENCE_PREC):
        if isinstance(x, DoubleWord):
            return mpf(float(x.hi)) + mpf(float(x.lo))
        return mpf(float(x))


def from_mpf(value, fmt: FloatFormat = DEFAULT_FORMAT) -> DoubleWord:
    """mpf → 最接近的 DoubleWord (hi 为就近舍入，lo 为余量的就近舍入)"""
    with mp.workprec(REFERENCE_PREC):
        value = mpf(value)
        hi = fmt.cast(float(mpmath.fadd(value, 0, prec=fmt.precision, rounding="n")))
        lo = fmt.cast(float(mpmath.fadd(value - mpf(float(hi)), 0, prec=fmt.precision, rounding="n")))
    return DoubleWord(hi, lo)


def rel_error(x, ref) -> float:
    """|x - ref| / |ref|；ref 为 0 时返回绝对误差"""
    with mp.workprec(REFERENCE_PREC):
        ref = mpf(ref)
        err = abs(to_mpf(x) - ref)
        if ref == 0:
            return float(err)
        return float(err / abs(ref))


def error_in_u2(x, ref, fmt: FloatFormat = DEFAULT_FORMAT) -> float:
    """相对误差，以 u² 为单位"""
    return rel_error(x, ref) / fmt.unit_roundoff ** 2


def sin_reference(x):
    with mp.workprec(REFERENCE_PREC):
        return mpmath.sin(to_mpf(x))


def cos_reference(x):
    with mp.workprec(REFERENCE_PREC):
        return mpmath.cos(to_mpf(x))


def sqrt_reference(x):
    with mp.workprec(REFERENCE_PREC):
        return mpmath.sqrt(to_mpf(x))
