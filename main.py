"""
double-word 运算误差统计

对每个 Kernel 的加减乘除以及 sqrt / sin / cos，随机采样操作数，
与 mpmath 200 位参考值比较，按 u² 报告平均 / 最大 / P99 相对误差。

用法:
    python main.py            # binary64, N=2000
    python main.py 500 fp32   # binary32, N=500
"""

import sys

import numpy as np
from mpmath import mp, mpf

from twofloat.config import FP32, FP64
from twofloat.value import DoubleWord
from twofloat.eft import fast_two_sum
from twofloat.arithmetic import (SLOPPY_KERNEL, FAST_KERNEL, FAST_FMA_KERNEL,
                                 ACCURATE_KERNEL)
from twofloat.transcendental import sqrt, sin, cos
from twofloat.reference import (REFERENCE_PREC, to_mpf, error_in_u2, sin_reference,
                                cos_reference, sqrt_reference)

KERNELS = [
    ("sloppy", SLOPPY_KERNEL),
    ("fast", FAST_KERNEL),
    ("fast+fma", FAST_FMA_KERNEL),
    ("accurate+fma", ACCURATE_KERNEL),
]


def random_dw(fmt, lo=-1.0, hi=1.0, min_exp=-10, max_exp=10) -> DoubleWord:
    """hi 随机符号与指数，lo 在半个 ulp 内随机"""
    h = fmt.cast(np.random.uniform(lo, hi) * 2.0 ** np.random.randint(min_exp, max_exp))
    l = fmt.cast(np.random.uniform(-0.5, 0.5) * float(np.spacing(h)))
    return DoubleWord(*fast_two_sum(h, l))


def report(name, errors):
    errors = np.array(errors)
    print(f"    {name:<14s} 平均: {errors.mean():7.3f}, 最大: {errors.max():7.3f}, "
          f"P99: {np.percentile(errors, 99):7.3f}  (u²)")


def arithmetic_stats(fmt, n):
    print("=" * 60)
    print(f"四则运算 ({fmt.name}, N={n})")
    print("=" * 60)

    np.random.seed(42)
    pairs = [(random_dw(fmt), random_dw(fmt)) for _ in range(n)]
    # 同号操作数，sloppy 加法只在此条件下有界
    same_sign = [(x, y if (x.hi < 0) == (y.hi < 0) else -y) for x, y in pairs]

    for name, kernel in KERNELS:
        print(f"  {name}:")
        add_ops = same_sign if name == "sloppy" else pairs
        report("dw + dw", [error_in_u2(kernel.add(x, y), to_mpf(x) + to_mpf(y), fmt)
                           for x, y in add_ops])
        report("dw + fp", [error_in_u2(kernel.add(x, y.hi), to_mpf(x) + mpf(float(y.hi)), fmt)
                           for x, y in pairs])
        report("dw × fp", [error_in_u2(kernel.mul(x, y.hi), to_mpf(x) * mpf(float(y.hi)), fmt)
                           for x, y in pairs])
        report("dw × dw", [error_in_u2(kernel.mul(x, y), to_mpf(x) * to_mpf(y), fmt)
                           for x, y in pairs])
        report("dw ÷ fp", [error_in_u2(kernel.div(x, y.hi), to_mpf(x) / mpf(float(y.hi)), fmt)
                           for x, y in pairs])
        report("dw ÷ dw", [error_in_u2(kernel.div(x, y), to_mpf(x) / to_mpf(y), fmt)
                           for x, y in pairs])
    print()


def transcendental_stats(fmt, n):
    print("=" * 60)
    print(f"sqrt / sin / cos ({fmt.name}, N={n})")
    print("=" * 60)

    np.random.seed(43)
    positives = [random_dw(fmt, 0.5, 1.0, -20, 20) for _ in range(n)]
    report("sqrt", [error_in_u2(sqrt(x), sqrt_reference(x), fmt) for x in positives])

    ranges = [
        ("[-π, π]", -3.14, 3.14),
        ("[-100, 100]", -100.0, 100.0),
    ]
    for name, lo, hi in ranges:
        xs = [random_dw(fmt, lo, hi, 0, 1) for _ in range(n)]
        # 绝对误差，结果接近 0 时相对误差没有意义
        sin_abs = [float(abs(to_mpf(sin(x)) - sin_reference(x))) for x in xs]
        cos_abs = [float(abs(to_mpf(cos(x)) - cos_reference(x))) for x in xs]
        u2 = fmt.unit_roundoff ** 2
        print(f"  {name}:")
        report("sin (abs)", np.array(sin_abs) / u2)
        report("cos (abs)", np.array(cos_abs) / u2)
    print()


def main():
    mp.prec = REFERENCE_PREC
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 2000
    fmt = FP32 if len(sys.argv) > 2 and sys.argv[2] == "fp32" else FP64

    arithmetic_stats(fmt, n)
    transcendental_stats(fmt, n)

    # 完整归约流程示例
    print("=" * 60)
    print("示例: sin(12.5)")
    print("=" * 60)
    x = DoubleWord.of(fmt.cast(12.5))
    r = sin(x, verbose=True)
    print(f"  sin(12.5) = {float(r.hi)!r} + {float(r.lo)!r}")
    print(f"  参考值    = {sin_reference(x)}")


if __name__ == "__main__":
    main()
