"""
三角函数常量表

数据取自 QD 库 (dd_const.cpp / dd_real.cpp) 的 double-double 字面量。
窄格式 (binary32) 的表由同一组字面量重新分配高低位得到，按格式缓存。
"""

from .config import FloatFormat, DEFAULT_FORMAT
from .value import DoubleWord


# (hi, lo) 字面量
_2PI = (6.283185307179586232e+00, 2.449293598294706414e-16)
_PI2 = (1.570796326794896558e+00, 6.123233995736766036e-17)
_PI16 = (1.963495408493620697e-01, 7.654042494670957545e-18)

# 1/3!, 1/4!, ..., 1/17!
N_INV_FACT = 15

_INV_FACT = [
    (1.66666666666666657e-01, 9.25185853854297066e-18),
    (4.16666666666666644e-02, 2.31296463463574266e-18),
    (8.33333333333333322e-03, 1.15648231731787138e-19),
    (1.38888888888888894e-03, -5.30054395437357706e-20),
    (1.98412698412698413e-04, 1.72095582934207053e-22),
    (2.48015873015873016e-05, 2.15119478667758816e-23),
    (2.75573192239858925e-06, -1.85839327404647208e-22),
    (2.75573192239858883e-07, 2.37677146222502973e-23),
    (2.50521083854417202e-08, -1.44881407093591197e-24),
    (2.08767569878681002e-09, -1.20734505911325997e-25),
    (1.60590438368216133e-10, 1.25852945887520981e-26),
    (1.14707455977297245e-11, 2.06555127528307454e-28),
    (7.64716373181981641e-13, 7.03872877733453001e-30),
    (4.77947733238738525e-14, 4.39920548583408126e-31),
    (2.81145725434552060e-15, 1.65088427308614326e-31),
]

# cos(k·π/16), sin(k·π/16)，k = 1..4
_COS_TABLE = [
    (9.807852804032304306e-01, 1.854693999782500573e-17),
    (9.238795325112867385e-01, 1.764504708433667706e-17),
    (8.314696123025452357e-01, 1.407385698472802389e-18),
    (7.071067811865475727e-01, -4.833646656726456726e-17),
]

_SIN_TABLE = [
    (1.950903220161282758e-01, -7.991079068461731263e-18),
    (3.826834323650897818e-01, -1.005077269646158761e-17),
    (5.555702330196021776e-01, 4.709410940561676821e-17),
    (7.071067811865475727e-01, -4.833646656726456726e-17),
]


class TrigTables:
    """某一格式下的全部常量 (只读)"""
    __slots__ = [
        'two_pi',     # 2π
        'pi2',        # π/2
        'pi16',       # π/16
        'inv_fact',   # 1/n!, n = 3..17
        'cos_table',  # cos(k·π/16), k = 1..4
        'sin_table',  # sin(k·π/16), k = 1..4
    ]

    def __init__(self, fmt: FloatFormat):
        self.two_pi = DoubleWord.from_pair(*_2PI, fmt=fmt)
        self.pi2 = DoubleWord.from_pair(*_PI2, fmt=fmt)
        self.pi16 = DoubleWord.from_pair(*_PI16, fmt=fmt)
        self.inv_fact = tuple(DoubleWord.from_pair(h, l, fmt=fmt) for h, l in _INV_FACT)
        self.cos_table = tuple(DoubleWord.from_pair(h, l, fmt=fmt) for h, l in _COS_TABLE)
        self.sin_table = tuple(DoubleWord.from_pair(h, l, fmt=fmt) for h, l in _SIN_TABLE)


# 全局表缓存
_tables_cache = {}


def get_tables(fmt: FloatFormat = DEFAULT_FORMAT) -> TrigTables:
    """获取或构建常量表 (带缓存)"""
    if fmt.name not in _tables_cache:
        _tables_cache[fmt.name] = TrigTables(fmt)
    return _tables_cache[fmt.name]
