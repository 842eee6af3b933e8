"""
无误差变换 (Error-Free Transformations)

所有函数返回 (结果, 误差) 二元组，满足 结果 + 误差 == 精确值。
参数应为同一 numpy 浮点类型 (float32 或 float64) 的标量，
运算按该类型逐次舍入。

参考:
  Dekker (1971), Knuth TAOCP Vol.2, Joldeş et al. (2017) 算法 1-4
"""

import mpmath

from .config import format_of


# ─────────────────────────────────────────────
# 加减法
# ─────────────────────────────────────────────

def two_sum(a, b):
    """
    2Sum (Knuth)：对任意 a, b 成立，6 次运算。
    """
    s = a + b
    bb = s - a
    err = (a - (s - bb)) + (b - bb)
    return s, err


def two_diff(a, b):
    """2Sum 的减法形式：a - b = s + err"""
    s = a - b
    bb = s - a
    err = (a - (s - bb)) - (b + bb)
    return s, err


def fast_two_sum(a, b):
    """
    Fast2Sum (Dekker)：要求 |a| >= |b| 或 a == 0，3 次运算。
    不满足前提时 err 不正确，且不会报错。
    """
    s = a + b
    err = b - (s - a)
    return s, err


# ─────────────────────────────────────────────
# 乘法
# ─────────────────────────────────────────────

def split(a):
    """
    Veltkamp 拆分：a = hi + lo，hi 与 lo 各占约一半尾数位，
    使 hi*hi, hi*lo, lo*lo 均可精确表示。
    """
    t = format_of(a).split_factor * a
    hi = t - (t - a)
    lo = a - hi
    return hi, lo


def fma(a, b, c):
    """
    融合乘加：round(a*b + c)，只舍入一次。

    a*b 以 mpmath 精确计算，再按格式精度 (round-to-nearest-even)
    与 c 相加。NaN / Inf 按 IEEE 754 传播。
    """
    fmt = format_of(a)
    prod = mpmath.fmul(float(a), float(b), exact=True)
    res = mpmath.fadd(prod, float(c), prec=fmt.precision, rounding="n")
    return fmt.cast(float(res))


def two_prod(a, b):
    """Dekker 乘法 (基于 split，无需 FMA)"""
    p = a * b
    ah, al = split(a)
    bh, bl = split(b)
    err = ((ah * bh - p) + ah * bl + al * bh) + al * bl
    return p, err


def fast_two_prod(a, b):
    """基于 FMA 的精确乘法：err = fma(a, b, -p)"""
    p = a * b
    err = fma(a, b, -p)
    return p, err


def exact_product(a, b, use_fma: bool):
    """按 use_fma 选择 fast_two_prod 或 two_prod"""
    if use_fma:
        return fast_two_prod(a, b)
    return two_prod(a, b)


def two_sqr(a):
    """精确平方 (基于 split)：a*a = q + err"""
    q = a * a
    hi, lo = split(a)
    err = ((hi * hi - q) + format_of(a).two * hi * lo) + lo * lo
    return q, err
