"""
浮点格式与运算模式配置

double-word 算法对底层浮点格式只依赖少量常量 (0, 1/2, 1, 2, ε, NaN,
split 因子)。这些常量集中在 FloatFormat 中，算法本体对 binary32 与
binary64 共用一份实现。
"""

import enum
from dataclasses import dataclass

import numpy as np


class ConfigurationError(ValueError):
    """不支持的 模式/FMA 组合 (在构造时报错，而不是调用时)"""


class Mode(enum.Enum):
    """运算精度模式"""
    FAST = "fast"
    ACCURATE = "accurate"
    SLOPPY = "sloppy"


@dataclass(frozen=True)
class FloatFormat:
    """原生浮点格式参数"""
    name: str
    dtype: type         # numpy 标量类型
    precision: int      # 尾数位数 p (含隐含位)

    def cast(self, value):
        """转换为本格式的标量 (按本格式舍入)"""
        return self.dtype(value)

    @property
    def zero(self):
        return self.dtype(0.0)

    @property
    def half(self):
        return self.dtype(0.5)

    @property
    def one(self):
        return self.dtype(1.0)

    @property
    def two(self):
        return self.dtype(2.0)

    @property
    def nan(self):
        return self.dtype(np.nan)

    @property
    def eps(self):
        """机器精度 2^{1-p}"""
        return self.dtype(2.0 ** (1 - self.precision))

    @property
    def eps2(self):
        """eps 的平方，Taylor 级数截断阈值使用"""
        return self.dtype(2.0 ** (2 - 2 * self.precision))

    @property
    def unit_roundoff(self) -> float:
        """u = 2^{-p}，误差界以 u² 为单位"""
        return 2.0 ** -self.precision

    @property
    def split_factor(self):
        """Veltkamp 拆分因子 2^{ceil(p/2)} + 1"""
        return self.dtype(2.0 ** ((self.precision + 1) // 2) + 1.0)


# 预定义格式
# 双精度 (float64)
FP64 = FloatFormat(name="binary64", dtype=np.float64, precision=53)

# 单精度 (float32)
FP32 = FloatFormat(name="binary32", dtype=np.float32, precision=24)

# 默认使用双精度
DEFAULT_FORMAT = FP64

_FORMATS_BY_DTYPE = {
    np.dtype(np.float64): FP64,
    np.dtype(np.float32): FP32,
}


def format_of(value) -> FloatFormat:
    """
    根据标量类型查找格式。
    Python float / int 视为 binary64。
    """
    if isinstance(value, (float, int)) and not isinstance(value, np.generic):
        return FP64
    try:
        return _FORMATS_BY_DTYPE[np.dtype(type(value))]
    except (KeyError, TypeError):
        raise ValueError(f"不支持的浮点类型: {type(value).__name__}") from None


def ulp(value) -> float:
    """value 处的 ULP (按其自身格式)"""
    return float(np.spacing(abs(format_of(value).cast(value))))
