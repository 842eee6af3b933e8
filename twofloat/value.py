"""
double-word 数值类型

值 = hi + lo (未求值的和)。运算产生的结果满足 |lo| <= ulp(hi)/2。
"""

from typing import NamedTuple

from .config import FloatFormat, DEFAULT_FORMAT, format_of


class DoubleWord(NamedTuple):
    hi: object
    lo: object

    @classmethod
    def of(cls, hi, lo=0.0, fmt: FloatFormat = None) -> "DoubleWord":
        """
        由两个数构造 (不做归一化)。
        fmt 缺省时取 hi 的格式，Python float 视为 binary64。
        """
        if fmt is None:
            fmt = format_of(hi)
        return cls(fmt.cast(hi), fmt.cast(lo))

    @classmethod
    def from_pair(cls, hi: float, lo: float, fmt: FloatFormat = DEFAULT_FORMAT) -> "DoubleWord":
        """
        由 binary64 double-double 字面量构造本格式的值。
        窄格式下重新分配高低位，使 lo 吸收 hi 的舍入误差。
        """
        h = fmt.cast(hi)
        l = fmt.cast((hi - float(h)) + lo)
        return cls(h, l)

    @classmethod
    def zero(cls, fmt: FloatFormat = DEFAULT_FORMAT) -> "DoubleWord":
        return cls(fmt.zero, fmt.zero)

    @classmethod
    def nan(cls, fmt: FloatFormat = DEFAULT_FORMAT) -> "DoubleWord":
        """错误结果 (定义域错误 / 归约失败)"""
        return cls(fmt.nan, fmt.nan)

    @property
    def fmt(self) -> FloatFormat:
        return format_of(self.hi)

    def eval(self):
        """折叠为原生近似值，仅用于阈值比较"""
        return self.hi + self.lo

    def is_nan(self) -> bool:
        return self.hi != self.hi or self.lo != self.lo

    def __neg__(self) -> "DoubleWord":
        return DoubleWord(-self.hi, -self.lo)

    # tuple 的拼接与重复对数值没有意义，运算须经 Kernel 或 arithmetic 选定算法
    def _no_tuple_arithmetic(self, other):
        raise TypeError("DoubleWord 不支持 + / * 运算符，请使用 Kernel.add / Kernel.mul "
                        "或 arithmetic 中的具体函数")

    __add__ = __radd__ = __mul__ = __rmul__ = _no_tuple_arithmetic

    def __repr__(self):
        return f"DoubleWord(hi={float(self.hi)!r}, lo={float(self.lo)!r}, fmt={self.fmt.name})"
