"""
double-word 四则运算

算法出自 Joldeş, Muller, Popescu, "Tight and rigorous error bounds for
basic building blocks of double-word arithmetic" (2017)，误差界以
u = 2^{-p} 表示。

每种 (运算, 模式, FMA) 组合都是一个独立函数；Kernel 在构造时选定
一组组合，不支持的组合 (例如不用 FMA 的 accurate dw×dw 乘法或除法) 在构造时
报 ConfigurationError。
"""

from dataclasses import dataclass

import numpy as np

from .config import Mode, ConfigurationError
from .eft import (two_sum, two_diff, fast_two_sum, two_prod, fast_two_prod,
                  exact_product, two_sqr, fma)
from .value import DoubleWord


# ─────────────────────────────────────────────
# 加减法
# ─────────────────────────────────────────────

def add_fp(x: DoubleWord, y) -> DoubleWord:
    """DWPlusFP：x + y，相对误差 <= 2u²"""
    sh, sl = two_sum(x.hi, y)
    v = x.lo + sl
    return DoubleWord(*fast_two_sum(sh, v))


def fp_add(x, y: DoubleWord) -> DoubleWord:
    return add_fp(y, x)


def sub_fp(x: DoubleWord, y) -> DoubleWord:
    """x - y (DWPlusFP 的减法形式)"""
    sh, sl = two_diff(x.hi, y)
    v = x.lo + sl
    return DoubleWord(*fast_two_sum(sh, v))


def fp_sub(x, y: DoubleWord) -> DoubleWord:
    """原生数减 double-word"""
    sh, sl = two_diff(x, y.hi)
    v = sl - y.lo
    return DoubleWord(*fast_two_sum(sh, v))


def add_fp_fp(a, b) -> DoubleWord:
    """两个原生数的精确和"""
    return DoubleWord(*two_sum(a, b))


def add_sloppy(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """
    SloppyDWPlusDW：只有 x.hi 与 y.hi 同号时相对误差才有界 (3u²)，
    由调用方保证。
    """
    sh, sl = two_sum(x.hi, y.hi)
    v = x.lo + y.lo
    w = sl + v
    return DoubleWord(*fast_two_sum(sh, w))


def sub_sloppy(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    sh, sl = two_diff(x.hi, y.hi)
    v = x.lo - y.lo
    w = sl + v
    return DoubleWord(*fast_two_sum(sh, w))


def add_accurate(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """AccurateDWPlusDW：相对误差 <= 3u² + 13u³，与符号无关"""
    sh, sl = two_sum(x.hi, y.hi)
    th, tl = two_sum(x.lo, y.lo)
    c = sl + th
    vh, vl = fast_two_sum(sh, c)
    w = tl + vl
    return DoubleWord(*fast_two_sum(vh, w))


def sub_accurate(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    sh, sl = two_diff(x.hi, y.hi)
    th, tl = two_diff(x.lo, y.lo)
    c = sl + th
    vh, vl = fast_two_sum(sh, c)
    w = tl + vl
    return DoubleWord(*fast_two_sum(vh, w))


# ─────────────────────────────────────────────
# 乘法
# ─────────────────────────────────────────────

def mul_fp_fast(x: DoubleWord, y) -> DoubleWord:
    """DWTimesFP2 (Higgs 1988)：相对误差 <= 3u²"""
    ch, cl1 = two_prod(x.hi, y)
    cl2 = x.lo * y
    cl3 = cl1 + cl2
    return DoubleWord(*fast_two_sum(ch, cl3))


def mul_fp_accurate(x: DoubleWord, y) -> DoubleWord:
    """DWTimesFP1 (Li et al. 2000)：相对误差 <= 1.5u² + 4u³"""
    ch, cl1 = two_prod(x.hi, y)
    cl2 = x.lo * y
    th, tl1 = fast_two_sum(ch, cl2)
    tl2 = tl1 + cl1
    return DoubleWord(*fast_two_sum(th, tl2))


def mul_fp_fma(x: DoubleWord, y) -> DoubleWord:
    """DWTimesFP3：相对误差 <= 2u²"""
    ch, cl1 = fast_two_prod(x.hi, y)
    cl3 = fma(x.lo, y, cl1)
    return DoubleWord(*fast_two_sum(ch, cl3))


def mul_fast(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """DWTimesDW1 (Dekker 1971)：相对误差 <= 7u²"""
    ch, cl1 = two_prod(x.hi, y.hi)
    tl1 = x.hi * y.lo
    tl2 = x.lo * y.hi
    cl2 = tl1 + tl2
    cl3 = cl1 + cl2
    return DoubleWord(*fast_two_sum(ch, cl3))


def mul_fast_fma(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """DWTimesDW2：相对误差 <= 6u²"""
    ch, cl1 = fast_two_prod(x.hi, y.hi)
    tl = x.hi * y.lo
    cl2 = fma(x.lo, y.hi, tl)
    cl3 = cl1 + cl2
    return DoubleWord(*fast_two_sum(ch, cl3))


def mul_accurate_fma(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """DWTimesDW3：相对误差 <= 5u²，额外计入 x.lo·y.lo"""
    ch, cl1 = fast_two_prod(x.hi, y.hi)
    tl0 = x.lo * y.lo
    tl1 = fma(x.hi, y.lo, tl0)
    cl2 = fma(x.lo, y.hi, tl1)
    cl3 = cl1 + cl2
    return DoubleWord(*fast_two_sum(ch, cl3))


# ─────────────────────────────────────────────
# 除法
# ─────────────────────────────────────────────

def _div_fp(x: DoubleWord, y, use_fma: bool) -> DoubleWord:
    # DWDivFP3：相对误差 <= 3u²
    th = x.hi / y
    ph, pl = exact_product(th, y, use_fma)
    deltah = x.hi - ph
    deltat = deltah - pl
    delta = deltat + x.lo
    tl = delta / y
    return DoubleWord(*fast_two_sum(th, tl))


def div_fp(x: DoubleWord, y) -> DoubleWord:
    return _div_fp(x, y, use_fma=False)


def div_fp_fma(x: DoubleWord, y) -> DoubleWord:
    return _div_fp(x, y, use_fma=True)


def _div_fast(x: DoubleWord, y: DoubleWord, mul_fp) -> DoubleWord:
    # DWDivDW2：相对误差 <= 15u² + 56u³
    th = x.hi / y.hi
    r = mul_fp(y, th)
    pih = x.hi - r.hi
    deltal = x.lo - r.lo
    delta = pih + deltal
    tl = delta / y.hi
    return DoubleWord(*fast_two_sum(th, tl))


def div_fast(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    return _div_fast(x, y, mul_fp_accurate)


def div_fast_fma(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    return _div_fast(x, y, mul_fp_fma)


def div_accurate_fma(x: DoubleWord, y: DoubleWord) -> DoubleWord:
    """
    DWDivDW3：先求 1/y 的 double-word 近似 (一步 Newton 迭代)，
    再与 x 相乘。相对误差 <= 9.8u²，运算量约为 div_fast 的两倍。
    """
    one = y.fmt.one
    th = one / y.hi
    rh = fma(-y.hi, th, one)
    rl = -(y.lo * th)
    e = DoubleWord(*fast_two_sum(rh, rl))
    delta = mul_fp_fma(e, th)
    m = add_fp(delta, th)
    return mul_fast_fma(x, m)


# ─────────────────────────────────────────────
# 平方、2 的幂缩放、取整
# ─────────────────────────────────────────────

def sqr_fp(a) -> DoubleWord:
    """原生数的精确平方"""
    return DoubleWord(*two_sqr(a))


def sqr(x: DoubleWord) -> DoubleWord:
    """double-word 平方 (QD sqr)"""
    two = x.fmt.two
    p1, p2 = two_sqr(x.hi)
    p2 += two * x.hi * x.lo
    p2 += x.lo * x.lo
    return DoubleWord(*fast_two_sum(p1, p2))


def mul_pwr2(x: DoubleWord, b) -> DoubleWord:
    """乘以 2 的幂 (精确)"""
    return DoubleWord(x.hi * b, x.lo * b)


def nint_fp(a):
    """就近取整；已是整数时原样返回"""
    if a == np.floor(a):
        return a
    return np.floor(a + type(a)(0.5))


def nint(x: DoubleWord) -> DoubleWord:
    """
    double-word 就近取整。
    hi 已是整数时对 lo 取整再归一化 (hi 为整数、lo = 1/2 的情形)；
    否则 hi 出现 .5 平局时由 lo 的符号决定方向。
    """
    fmt = x.fmt
    hi = nint_fp(x.hi)

    if hi == x.hi:
        lo = nint_fp(x.lo)
        return DoubleWord(*fast_two_sum(hi, lo))

    lo = fmt.zero
    if abs(hi - x.hi) == fmt.half and x.lo < fmt.zero:
        hi -= fmt.one
    return DoubleWord(hi, lo)


# ─────────────────────────────────────────────
# 运算组合选择
# ─────────────────────────────────────────────

_ADD_DW = {
    Mode.SLOPPY: (add_sloppy, sub_sloppy),
    Mode.ACCURATE: (add_accurate, sub_accurate),
}

# 使用 FMA 时忽略模式
_MUL_FP = {
    (Mode.FAST, False): mul_fp_fast,
    (Mode.ACCURATE, False): mul_fp_accurate,
    (Mode.FAST, True): mul_fp_fma,
    (Mode.ACCURATE, True): mul_fp_fma,
}

_MUL_DW = {
    (Mode.FAST, False): mul_fast,
    (Mode.FAST, True): mul_fast_fma,
    (Mode.ACCURATE, True): mul_accurate_fma,
}

_DIV_DW = {
    (Mode.FAST, False): div_fast,
    (Mode.FAST, True): div_fast_fma,
    (Mode.ACCURATE, True): div_accurate_fma,
}


@dataclass(frozen=True)
class Kernel:
    """
    一组固定的运算实现。

    Args:
        add_mode:    double-word 加减法模式 (SLOPPY / ACCURATE)
        mul_fp_mode: dw×原生数 乘法模式 (FAST / ACCURATE)，使用 FMA 时忽略
        mul_dw_mode: dw×dw 乘法模式 (FAST / ACCURATE)，ACCURATE 需要 FMA
        div_mode:    dw÷dw 模式 (FAST / ACCURATE)，ACCURATE 需要 FMA
        fma:         是否使用融合乘加
    """
    add_mode: Mode = Mode.ACCURATE
    mul_fp_mode: Mode = Mode.FAST
    mul_dw_mode: Mode = Mode.FAST
    div_mode: Mode = Mode.FAST
    fma: bool = False

    def __post_init__(self):
        if self.add_mode not in _ADD_DW:
            raise ConfigurationError(
                f"加减法只支持 sloppy / accurate 模式, 得到 {self.add_mode}")
        if (self.mul_fp_mode, self.fma) not in _MUL_FP:
            raise ConfigurationError(
                f"不支持的 dw×fp 乘法组合: mode={self.mul_fp_mode}, fma={self.fma}")
        if (self.mul_dw_mode, self.fma) not in _MUL_DW:
            raise ConfigurationError(
                f"不支持的 dw×dw 乘法组合: mode={self.mul_dw_mode}, fma={self.fma} "
                f"(不用 FMA 时只支持 fast 模式)")
        if (self.div_mode, self.fma) not in _DIV_DW:
            raise ConfigurationError(
                f"不支持的除法组合: mode={self.div_mode}, fma={self.fma} "
                f"(accurate 模式需要 FMA)")

        add_dw, sub_dw = _ADD_DW[self.add_mode]
        object.__setattr__(self, "_add_dw", add_dw)
        object.__setattr__(self, "_sub_dw", sub_dw)
        object.__setattr__(self, "_mul_fp", _MUL_FP[(self.mul_fp_mode, self.fma)])
        object.__setattr__(self, "_mul_dw", _MUL_DW[(self.mul_dw_mode, self.fma)])
        object.__setattr__(self, "_div_fp", div_fp_fma if self.fma else div_fp)
        object.__setattr__(self, "_div_dw", _DIV_DW[(self.div_mode, self.fma)])

    def add(self, x, y) -> DoubleWord:
        if isinstance(x, DoubleWord):
            if isinstance(y, DoubleWord):
                return self._add_dw(x, y)
            return add_fp(x, y)
        if isinstance(y, DoubleWord):
            return fp_add(x, y)
        return add_fp_fp(x, y)

    def sub(self, x, y) -> DoubleWord:
        if isinstance(x, DoubleWord):
            if isinstance(y, DoubleWord):
                return self._sub_dw(x, y)
            return sub_fp(x, y)
        if isinstance(y, DoubleWord):
            return fp_sub(x, y)
        return DoubleWord(*two_diff(x, y))

    def mul(self, x, y) -> DoubleWord:
        if isinstance(x, DoubleWord):
            if isinstance(y, DoubleWord):
                return self._mul_dw(x, y)
            return self._mul_fp(x, y)
        if isinstance(y, DoubleWord):
            return self._mul_fp(y, x)
        return DoubleWord(*exact_product(x, y, self.fma))

    def div(self, x, y) -> DoubleWord:
        if not isinstance(x, DoubleWord):
            x = DoubleWord.of(x)
        if isinstance(y, DoubleWord):
            return self._div_dw(x, y)
        return self._div_fp(x, y)


# 预定义组合
# 最便宜：sloppy 加法，不用 FMA
SLOPPY_KERNEL = Kernel(add_mode=Mode.SLOPPY, mul_fp_mode=Mode.FAST, mul_dw_mode=Mode.FAST, div_mode=Mode.FAST, fma=False)

# 不用 FMA 时的最好组合
FAST_KERNEL = Kernel(add_mode=Mode.ACCURATE, mul_fp_mode=Mode.FAST, mul_dw_mode=Mode.FAST, div_mode=Mode.FAST, fma=False)

FAST_FMA_KERNEL = Kernel(add_mode=Mode.ACCURATE, mul_fp_mode=Mode.FAST, mul_dw_mode=Mode.FAST, div_mode=Mode.FAST, fma=True)

# 误差界最紧，超越函数使用此组合
ACCURATE_KERNEL = Kernel(add_mode=Mode.ACCURATE, mul_fp_mode=Mode.ACCURATE, mul_dw_mode=Mode.ACCURATE, div_mode=Mode.ACCURATE, fma=True)

DEFAULT_KERNEL = ACCURATE_KERNEL
