"""
double-word 超越函数：sqrt, sin, cos

sin/cos 的求值分三步 (与 QD 库 dd_real.cpp 相同)：
  1. 参数归约：x = z·2π + j·π/2 + k·π/16 + t，|j| <= 2，|k| <= 4，|t| <= π/32
  2. 在 t 处用 Taylor 级数求 sin(t)、cos(t)
  3. 用预存的 sin(k·π/16)、cos(k·π/16) 做角度加法重构

所有运算使用 accurate 模式 + FMA。
错误 (负数开方、归约失败) 以 (NaN, NaN) 返回，不抛异常。
"""

import numpy as np

from .arithmetic import (add_accurate, sub_accurate, mul_accurate_fma, mul_fp_fma,
                         div_accurate_fma, fp_sub, fp_add, add_fp_fp, sqr, sqr_fp,
                         mul_pwr2, nint)
from .constants import get_tables, N_INV_FACT
from .value import DoubleWord


# ─────────────────────────────────────────────
# 平方根
# ─────────────────────────────────────────────

def sqrt(a: DoubleWord) -> DoubleWord:
    """
    Karp 技巧：若 x ≈ 1/sqrt(a)，则

        sqrt(a) ≈ a·x + [a - (a·x)²] · x / 2

    精度是 x 的两倍。a·x 与 [-]·x 只需原生精度。
    负数返回 (NaN, NaN)。
    """
    fmt = a.fmt

    if a.eval() == fmt.zero:
        return DoubleWord.zero(fmt)

    if a.hi < fmt.zero:
        return DoubleWord.nan(fmt)

    x = fmt.one / np.sqrt(a.hi)
    ax = a.hi * x
    residual = sub_accurate(a, sqr_fp(ax))
    return add_fp_fp(ax, residual.hi * x * fmt.half)


# ─────────────────────────────────────────────
# Taylor 级数 (|a| <= π/32)
# ─────────────────────────────────────────────

def sin_taylor(a: DoubleWord) -> DoubleWord:
    """
    sin(a) 的 Taylor 级数，要求 |a| <= π/32。
    项的绝对值低于 0.5·|a|·eps² 或用完 15 个倒数阶乘时停止。
    """
    fmt = a.fmt
    inv_fact = get_tables(fmt).inv_fact
    thresh = fmt.half * abs(a.eval()) * fmt.eps2

    if a.eval() == fmt.zero:
        return DoubleWord.zero(fmt)

    x = -sqr(a)
    s = a
    r = a
    i = 0
    while True:
        r = mul_accurate_fma(r, x)
        t = mul_accurate_fma(r, inv_fact[i])
        s = add_accurate(s, t)
        i += 2
        if i >= N_INV_FACT or abs(t.eval()) <= thresh:
            break
    return s


def cos_taylor(a: DoubleWord) -> DoubleWord:
    """cos(a) 的 Taylor 级数，要求 |a| <= π/32，阈值 0.5·eps²"""
    fmt = a.fmt
    inv_fact = get_tables(fmt).inv_fact
    thresh = fmt.half * fmt.eps2

    if a.eval() == fmt.zero:
        return DoubleWord(fmt.one, fmt.zero)

    x = -sqr(a)
    r = x
    s = fp_add(fmt.one, mul_pwr2(r, fmt.half))
    i = 1
    while True:
        r = mul_accurate_fma(r, x)
        t = mul_accurate_fma(r, inv_fact[i])
        s = add_accurate(s, t)
        i += 2
        if i >= N_INV_FACT or abs(t.eval()) <= thresh:
            break
    return s


def sincos_taylor(a: DoubleWord):
    """
    同时求 sin(a) 和 cos(a)，|a| <= π/32。
    cos 由 sqrt(1 - sin²) 得到 (此区间内 cos > 0)。

    Returns:
        (sin_a, cos_a)
    """
    fmt = a.fmt

    if a.eval() == fmt.zero:
        return DoubleWord.zero(fmt), DoubleWord(fmt.one, fmt.zero)

    sin_a = sin_taylor(a)
    cos_a = sqrt(fp_sub(fmt.one, sqr(sin_a)))
    return sin_a, cos_a


# ─────────────────────────────────────────────
# 参数归约
# ─────────────────────────────────────────────

class Reduction:
    """参数归约输出"""
    __slots__ = [
        'z',    # round(a / 2π) (double-word)
        'r',    # a - 2π·z
        'j',    # π/2 的倍数，∈ [-2, 2]
        'k',    # π/16 的倍数，∈ [-4, 4]
        't',    # 余数，|t| <= π/32
    ]

    def __init__(self, z, r, j, k, t):
        self.z = z
        self.r = r
        self.j = j
        self.k = k
        self.t = t

    def __repr__(self):
        return (f"Reduction(z={float(self.z.eval())}, r={float(self.r.eval())}, "
                f"j={self.j}, k={self.k}, t={float(self.t.eval())})")


def reduce_argument(a: DoubleWord, verbose: bool = False):
    """
    a = z·2π + j·π/2 + k·π/16 + t

    j、k 由原生精度近似得到，不是精确的。
    |z| >= 1/eps、j 超出 [-2, 2] 或 |k| > 4 (超大或非有限输入) 时归约失败，
    返回 None。
    """
    fmt = a.fmt
    tables = get_tables(fmt)

    # 模 2π (近似)
    z = nint(div_accurate_fma(a, tables.two_pi))
    r = sub_accurate(a, mul_accurate_fma(tables.two_pi, z))

    # 模 π/2，再模 π/16
    q = np.floor(r.hi / tables.pi2.hi + fmt.half)
    t = sub_accurate(r, mul_fp_fma(tables.pi2, q))
    q_j = q
    q = np.floor(t.hi / tables.pi16.hi + fmt.half)
    t = sub_accurate(t, mul_fp_fma(tables.pi16, q))
    q_k = q

    if verbose:
        print(f"[归约] a = {float(a.eval())!r}")
        print(f"  z = {float(z.eval())!r}, r = {float(r.eval())!r}")
        print(f"  j = {q_j}, k = {q_k}, t = {float(t.eval())!r}")

    if not (np.isfinite(q_j) and np.isfinite(q_k)):
        return None

    # |z| >= 1/eps 时 z 的两个字都是整数，2π·z 精确重建 a，r 失去意义
    if not abs(z.hi) < fmt.one / fmt.eps:
        return None

    j = int(q_j)
    k = int(q_k)

    # 无法模 π/2 归约
    if j < -2 or j > 2:
        return None

    # 无法模 π/16 归约
    if abs(k) > 4:
        return None

    return Reduction(z, r, j, k, t)


# ─────────────────────────────────────────────
# 角度加法重构
# ─────────────────────────────────────────────

def _sin_reduced(j: int, k: int, t: DoubleWord) -> DoubleWord:
    """sin(j·π/2 + k·π/16 + t)"""
    if k == 0:
        if j == 0:
            return sin_taylor(t)
        if j == 1:
            return cos_taylor(t)
        if j == -1:
            return -cos_taylor(t)
        return -sin_taylor(t)

    tables = get_tables(t.fmt)
    u = tables.cos_table[abs(k) - 1]
    v = tables.sin_table[abs(k) - 1]
    sin_t, cos_t = sincos_taylor(t)
    mul = mul_accurate_fma

    if j == 0:
        if k > 0:
            return add_accurate(mul(u, sin_t), mul(v, cos_t))
        return sub_accurate(mul(u, sin_t), mul(v, cos_t))
    if j == 1:
        if k > 0:
            return sub_accurate(mul(u, cos_t), mul(v, sin_t))
        return add_accurate(mul(u, cos_t), mul(v, sin_t))
    if j == -1:
        if k > 0:
            return sub_accurate(mul(v, sin_t), mul(u, cos_t))
        return sub_accurate(-mul(u, cos_t), mul(v, sin_t))
    if k > 0:
        return sub_accurate(-mul(u, sin_t), mul(v, cos_t))
    return sub_accurate(mul(v, cos_t), mul(u, sin_t))


def _cos_reduced(j: int, k: int, t: DoubleWord) -> DoubleWord:
    """cos(j·π/2 + k·π/16 + t)"""
    if k == 0:
        if j == 0:
            return cos_taylor(t)
        if j == 1:
            return -sin_taylor(t)
        if j == -1:
            return sin_taylor(t)
        return -cos_taylor(t)

    tables = get_tables(t.fmt)
    u = tables.cos_table[abs(k) - 1]
    v = tables.sin_table[abs(k) - 1]
    sin_t, cos_t = sincos_taylor(t)
    mul = mul_accurate_fma

    if j == 0:
        if k > 0:
            return sub_accurate(mul(u, cos_t), mul(v, sin_t))
        return add_accurate(mul(u, cos_t), mul(v, sin_t))
    if j == 1:
        if k > 0:
            return sub_accurate(-mul(u, sin_t), mul(v, cos_t))
        return sub_accurate(mul(v, cos_t), mul(u, sin_t))
    if j == -1:
        if k > 0:
            return add_accurate(mul(u, sin_t), mul(v, cos_t))
        return sub_accurate(mul(u, sin_t), mul(v, cos_t))
    if k > 0:
        return sub_accurate(mul(v, sin_t), mul(u, cos_t))
    return sub_accurate(-mul(u, cos_t), mul(v, sin_t))


# ─────────────────────────────────────────────
# 入口
# ─────────────────────────────────────────────

def sin(a: DoubleWord, verbose: bool = False) -> DoubleWord:
    """
    sin(a)。归约失败 (例如 |a| ~ 1e300 或非有限输入) 时返回 (NaN, NaN)。
    """
    fmt = a.fmt

    if a.eval() == fmt.zero:
        return DoubleWord.zero(fmt)

    red = reduce_argument(a, verbose=verbose)
    if red is None:
        return DoubleWord.nan(fmt)

    return _sin_reduced(red.j, red.k, red.t)


def cos(a: DoubleWord, verbose: bool = False) -> DoubleWord:
    """cos(a)，失败规则同 sin"""
    fmt = a.fmt

    if a.eval() == fmt.zero:
        return DoubleWord(fmt.one, fmt.zero)

    red = reduce_argument(a, verbose=verbose)
    if red is None:
        return DoubleWord.nan(fmt)

    return _cos_reduced(red.j, red.k, red.t)


def sincos(a: DoubleWord, verbose: bool = False):
    """
    一次归约同时求 sin(a)、cos(a)。

    Returns:
        (sin_a, cos_a)
    """
    fmt = a.fmt

    if a.eval() == fmt.zero:
        return DoubleWord.zero(fmt), DoubleWord(fmt.one, fmt.zero)

    red = reduce_argument(a, verbose=verbose)
    if red is None:
        return DoubleWord.nan(fmt), DoubleWord.nan(fmt)

    return _sin_reduced(red.j, red.k, red.t), _cos_reduced(red.j, red.k, red.t)
