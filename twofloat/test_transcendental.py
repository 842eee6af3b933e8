"""
sqrt / sin / cos 测试

测试策略:
  1. sqrt 与 mpmath 参考值比较，及 0 / 负数边界
  2. Taylor 级数在 |a| = π/32 边界处的精度
  3. 参数归约覆盖所有 (j, k 符号) 分支
  4. sin / cos 端到端：特殊点、随机输入、无法归约的大数
  5. binary32 格式
"""

import os
import sys

import numpy as np
import pytest
from mpmath import mp, mpf

# 让 import 能找到 twofloat 包
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from twofloat.config import FP32, FP64
from twofloat.value import DoubleWord
from twofloat.eft import fast_two_sum
from twofloat.arithmetic import sqr
from twofloat.constants import get_tables
from twofloat.transcendental import (sqrt, sin_taylor, cos_taylor, sincos_taylor,
                                     reduce_argument, sin, cos, sincos)
from twofloat.reference import (to_mpf, from_mpf, rel_error, error_in_u2,
                                sin_reference, cos_reference, sqrt_reference,
                                REFERENCE_PREC)

mp.prec = REFERENCE_PREC

U2 = FP64.unit_roundoff ** 2


def random_positive_dw(fmt, min_exp=-20, max_exp=20) -> DoubleWord:
    hi = fmt.cast(np.random.uniform(0.5, 1.0) * 2.0 ** np.random.randint(min_exp, max_exp))
    lo = fmt.cast(np.random.uniform(-0.5, 0.5) * float(np.spacing(hi)))
    return DoubleWord(*fast_two_sum(hi, lo))


def abs_error(x: DoubleWord, ref) -> float:
    return float(abs(to_mpf(x) - ref))


# ═══════════════════════════════════════════════
# 测试 1: 平方根
# ═══════════════════════════════════════════════

def test_sqrt_random():
    np.random.seed(100)
    worst = 0.0
    for _ in range(200):
        x = random_positive_dw(FP64)
        r = sqrt(x)
        worst = max(worst, error_in_u2(r, sqrt_reference(x)))
        # 平方回去
        assert rel_error(sqr(r), to_mpf(x)) <= 64.0 * U2
    print(f"  sqrt 最大误差: {worst:.3f} u²")
    assert worst <= 32.0


def test_sqrt_exact_square():
    assert sqrt(DoubleWord.of(4.0)) == (2.0, 0.0)
    assert sqrt(DoubleWord.of(0.25)) == (0.5, 0.0)


def test_sqrt_zero():
    assert sqrt(DoubleWord.zero()) == (0.0, 0.0)
    assert sqrt(DoubleWord.of(-0.0)) == (0.0, 0.0)


def test_sqrt_negative_is_nan_pair():
    r = sqrt(DoubleWord.of(-2.0, 1e-17))
    assert np.isnan(r.hi) and np.isnan(r.lo)
    assert type(r.hi) is np.float64


def test_sqrt_two():
    mp.prec = 200
    r = sqrt(DoubleWord.of(2.0))
    assert error_in_u2(r, mp.sqrt(2)) <= 32.0


# ═══════════════════════════════════════════════
# 测试 2: Taylor 级数
# ═══════════════════════════════════════════════

def test_taylor_zero():
    zero = DoubleWord.zero()
    assert sin_taylor(zero) == (0.0, 0.0)
    assert cos_taylor(zero) == (1.0, 0.0)
    s, c = sincos_taylor(zero)
    assert s == (0.0, 0.0) and c == (1.0, 0.0)


@pytest.mark.parametrize("sign", [1, -1])
def test_taylor_at_boundary(sign):
    """|a| = π/32 时仍在 15 项内收敛到双倍精度"""
    mp.prec = 200
    arg = sign * mp.pi / 32
    a = from_mpf(arg)
    assert rel_error(sin_taylor(a), mp.sin(to_mpf(a))) <= 2.0 ** -100
    assert rel_error(cos_taylor(a), mp.cos(to_mpf(a))) <= 2.0 ** -100


def test_taylor_small_arguments():
    mp.prec = 200
    for v in [1e-3, 1e-8, 3e-20, -0.05]:
        a = from_mpf(mpf(v))
        assert rel_error(sin_taylor(a), mp.sin(to_mpf(a))) <= 2.0 ** -100
        assert rel_error(cos_taylor(a), mp.cos(to_mpf(a))) <= 2.0 ** -100


def test_sincos_taylor_consistent():
    mp.prec = 200
    np.random.seed(101)
    for v in np.random.uniform(-0.098, 0.098, 50):
        a = DoubleWord.of(float(v))
        s, c = sincos_taylor(a)
        assert s == sin_taylor(a)
        assert abs_error(c, mp.cos(to_mpf(a))) <= 2.0 ** -100


# ═══════════════════════════════════════════════
# 测试 3: 参数归约
# ═══════════════════════════════════════════════

def test_reduction_covers_all_branches():
    seen = set()
    for v in np.linspace(-3.14, 3.14, 401):
        red = reduce_argument(DoubleWord.of(float(v)))
        assert red is not None
        assert -2 <= red.j <= 2 and abs(red.k) <= 4
        assert abs(float(red.t.eval())) <= float(np.pi) / 32 + 1e-12
        j = red.j if abs(red.j) < 2 else 2
        seen.add((j, int(np.sign(red.k))))
    for j in (-1, 0, 1, 2):
        for ks in (-1, 0, 1):
            assert (j, ks) in seen


def test_reduction_identity():
    """a = 2π·z + j·π/2 + k·π/16 + t"""
    mp.prec = 200
    tables = get_tables(FP64)
    for v in [0.3, 1.9, -2.7, 10.0, 123.456, -987.6]:
        a = DoubleWord.of(v)
        red = reduce_argument(a)
        rebuilt = (to_mpf(tables.two_pi) * to_mpf(red.z) + red.j * to_mpf(tables.pi2)
                   + red.k * to_mpf(tables.pi16) + to_mpf(red.t))
        assert abs(rebuilt - to_mpf(a)) <= 1e-27


def test_reduction_fails_for_huge_argument():
    assert reduce_argument(DoubleWord.of(1e300)) is None
    # z 的两个字都是整数时 2π·z 精确重建 a，余数恒为 0
    for v in [1.7e40, 1e49, 3.3e200, -2.0 ** 60]:
        assert reduce_argument(DoubleWord.of(v)) is None
    assert reduce_argument(DoubleWord.of(np.float32(1e30))) is None


def test_reduction_limit_in_z():
    """|z| 刚低于 1/eps 时仍可归约，达到 1/eps 时失败"""
    mp.prec = 200
    below = from_mpf(2 * mp.pi * (2 ** 52 - 3) + mpf("0.3"))
    red = reduce_argument(below)
    assert red is not None
    assert abs(red.z.hi) < 2.0 ** 52
    above = from_mpf(2 * mp.pi * 2 ** 53 + mpf("0.3"))
    assert reduce_argument(above) is None


def test_reduction_verbose(capsys):
    reduce_argument(DoubleWord.of(2.0), verbose=True)
    out = capsys.readouterr().out
    assert "[归约]" in out and "j = " in out


# ═══════════════════════════════════════════════
# 测试 4: sin / cos 端到端
# ═══════════════════════════════════════════════

def test_sin_zero():
    assert sin(DoubleWord.zero()) == (0.0, 0.0)
    assert cos(DoubleWord.zero()) == (1.0, 0.0)


def test_sin_half_pi():
    mp.prec = 200
    r = sin(from_mpf(mp.pi / 2))
    assert abs(to_mpf(r) - 1) <= 1e-30
    assert r.hi == 1.0


def test_sin_pi():
    mp.prec = 200
    r = sin(from_mpf(mp.pi))
    assert abs(to_mpf(r)) <= 1e-30


def test_cos_pi():
    mp.prec = 200
    r = cos(from_mpf(mp.pi))
    assert abs(to_mpf(r) + 1) <= 1e-30


def test_sin_huge_argument_is_nan_pair():
    r = sin(DoubleWord.of(1e300))
    assert np.isnan(r.hi) and np.isnan(r.lo)
    assert cos(DoubleWord.of(-1e300)).is_nan()
    for v in [1.7e40, 1e49, -5.5e100]:
        assert sin(DoubleWord.of(v)).is_nan()
        assert cos(DoubleWord.of(v)).is_nan()
        s, c = sincos(DoubleWord.of(v))
        assert s.is_nan() and c.is_nan()


def test_sin_non_finite_is_nan_pair():
    with np.errstate(all="ignore"):
        assert sin(DoubleWord.of(np.inf)).is_nan()
        assert sin(DoubleWord.of(np.nan)).is_nan()
        assert cos(DoubleWord.of(-np.inf)).is_nan()


def test_sin_cos_grid():
    """j·π/2 + k·π/16 附近的网格，覆盖全部重构分支"""
    mp.prec = 200
    worst = 0.0
    for v in np.linspace(-3.14, 3.14, 401):
        a = DoubleWord.of(float(v))
        s, c = sin(a), cos(a)
        err_s = abs_error(s, sin_reference(a))
        err_c = abs_error(c, cos_reference(a))
        worst = max(worst, err_s, err_c)
        assert err_s <= 4e-30 and err_c <= 4e-30
    print(f"  [-π, π] 最大绝对误差: {worst:.3e}")


def test_sin_cos_random():
    mp.prec = 200
    np.random.seed(102)
    for v in np.random.uniform(-100.0, 100.0, 100):
        hi = FP64.cast(v)
        a = DoubleWord(*fast_two_sum(hi, FP64.cast(np.random.uniform(-0.5, 0.5) * float(np.spacing(hi)))))
        assert abs_error(sin(a), sin_reference(a)) <= 4e-29
        assert abs_error(cos(a), cos_reference(a)) <= 4e-29


def test_sin_relative_accuracy():
    mp.prec = 200
    for v in [0.5, 1.0, 2.0, 0.1, -0.7, 1.2]:
        a = DoubleWord.of(v)
        assert error_in_u2(sin(a), sin_reference(a)) <= 64.0
        assert error_in_u2(cos(a), cos_reference(a)) <= 64.0


def test_sin_odd_cos_even():
    np.random.seed(103)
    for v in np.random.uniform(0.0, 6.0, 30):
        a = DoubleWord.of(float(v))
        assert sin(-a) == -sin(a)
        assert cos(-a) == cos(a)


def test_sincos_matches_separate_calls():
    for v in [0.2, 1.3, -2.2, 40.0]:
        a = DoubleWord.of(v)
        s, c = sincos(a)
        assert s == sin(a)
        assert c == cos(a)
    s, c = sincos(DoubleWord.of(1e300))
    assert s.is_nan() and c.is_nan()


def test_reference_keeps_caller_precision():
    a = DoubleWord.of(0.7, 1e-18)
    with mp.workprec(64):
        exact = to_mpf(a)
        sin_reference(a)
        cos_reference(a)
        sqrt_reference(a)
        rel_error(a, exact)
        from_mpf(exact)
        assert mp.prec == 64
    # 转换本身仍在参考精度下完成
    assert exact == mpf(0.7) + mpf(1e-18)


def test_sin_verbose(capsys):
    sin(DoubleWord.of(12.5), verbose=True)
    out = capsys.readouterr().out
    assert "k = " in out


# ═══════════════════════════════════════════════
# 测试 5: binary32
# ═══════════════════════════════════════════════

def test_binary32_sqrt():
    mp.prec = 200
    np.random.seed(104)
    for _ in range(100):
        x = random_positive_dw(FP32, -10, 10)
        r = sqrt(x)
        assert type(r.hi) is np.float32 and type(r.lo) is np.float32
        assert rel_error(r, sqrt_reference(x)) <= 32.0 * FP32.unit_roundoff ** 2


def test_binary32_sin_cos():
    mp.prec = 200
    for v in np.linspace(-3.0, 3.0, 61):
        a = DoubleWord.of(np.float32(v))
        s = sin(a)
        c = cos(a)
        assert type(s.hi) is np.float32
        assert abs_error(s, sin_reference(a)) <= 1e-12
        assert abs_error(c, cos_reference(a)) <= 1e-12


def test_binary32_edge_cases():
    assert sin(DoubleWord.zero(FP32)) == (0.0, 0.0)
    assert sqrt(DoubleWord.of(np.float32(-1.0))).is_nan()
    assert sin(DoubleWord.of(np.float32(1e30))).is_nan()


# ═══════════════════════════════════════════════
# 主函数
# ═══════════════════════════════════════════════

def main():
    sys.exit(pytest.main([__file__, "-v", "-s"]))


if __name__ == "__main__":
    main()
