"""
ASCII 大小写折叠与比较.

所有相等判断与哈希计算都基于本模块的同一个折叠函数:
- 仅将 `A`-`Z` 映射为 `a`-`z`, 其余字节(包括多字节 UTF-8 序列)原样保留;
- 相等: 字节长度相同, 且折叠后逐字节相等;
- 哈希: 对折叠后的字节计算内置 `hash`.

因为哈希与相等使用同一个折叠规则, 所以 `a == b` 必然推出 `hash(a) == hash(b)`.
"""

from __future__ import annotations

from typing import Any

_UPPER = b"ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = b"abcdefghijklmnopqrstuvwxyz"
_FOLD_TABLE = bytes.maketrans(_UPPER, _LOWER)


def fold(data: bytes) -> bytes:
    """返回 ASCII 小写化后的字节副本, 非 ASCII 字节保持不变."""
    return data.translate(_FOLD_TABLE)


def eq_ignore_ascii_case(a: bytes, b: bytes) -> bool:
    """
    忽略 ASCII 大小写比较两段字节.

    参数:
        a: 左操作数字节.
        b: 右操作数字节.

    返回:
        长度相同且逐字节折叠后相等时返回 True.
    """
    if len(a) != len(b):
        return False
    return fold(a) == fold(b)


def folded_hash(data: bytes) -> int:
    return hash(fold(data))


def coerce_operand(value: Any) -> bytes | None:
    """
    将比较运算的另一侧操作数转换为字节.

    支持:
        - 具备 `as_bytes()` 方法的对象(键字符串与存储后端)
        - str: 按 UTF-8 编码; 含孤立代理项的字符串无法表示为合法文本, 返回 None
        - bytes / bytearray / memoryview: 原样取字节

    返回:
        可比较的字节; 不支持的类型返回 None.
    """
    if isinstance(value, str):
        try:
            return value.encode("utf-8")
        except UnicodeEncodeError:
            return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    as_bytes = getattr(value, "as_bytes", None)
    if callable(as_bytes):
        return as_bytes()
    return None
