"""
定义大小写不敏感键字符串使用的异常体系.

异常层级结构如下:
    - KeyStringError: 所有异常的统一基类, 支持嵌套链式追踪.
        - CharBoundaryError: 按字节偏移删除字符时越界或未落在字符边界上.
        - StorageConfigError: 存储后端名称未知或配置校验失败.

说明:
    - 非法 UTF-8 字节序列在构造时被替换为 U+FFFD, 不属于错误;
    - CharBoundaryError 同时继承 IndexError, 可按标准库习惯捕获;
    - StorageConfigError 同时继承 ValueError.
"""

from __future__ import annotations

from typing import Any


class KeyStringError(Exception):
    """
    所有 cikey 异常的基类, 具备错误链追踪能力.

    参数:
    - `*args`: 异常消息内容;
    - `cause`: 可选的原始异常, 用于记录异常链(自动赋值给 `__cause__`).
    """

    def __init__(self, *args: Any, cause: Exception | None = None) -> None:
        super().__init__(*args)
        self.cause: Exception | None = cause
        self.__cause__ = cause


class CharBoundaryError(KeyStringError, IndexError):
    """
    字符边界错误.

    在以下情况下由 `remove()` 抛出:
    - 偏移量小于 0 或不小于字节长度;
    - 偏移量落在多字节字符的内部(续字节)上.

    属于调用方逻辑错误, 而非可预期的运行时状态.
    """

    def __init__(self, index: int, length: int, reason: str) -> None:
        super().__init__(f"byte index {index} {reason} (length {length})")
        self.index = index
        self.length = length


class StorageConfigError(KeyStringError, ValueError):
    """
    存储后端配置错误.

    包括未注册的后端名称, 以及配置模型校验失败(原始 ValidationError 记录在 `cause`).
    """
