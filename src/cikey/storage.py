"""
键字符串的底层存储策略.

提供:
- KeyStorage: 存储接口(追加/字节视图/长度/按字节偏移删除/复制)
- StringStorage: 通用可增长缓冲区, 基于 bytearray
- CompactStorage: 短字符串内联存储, 超出容量后溢出到堆缓冲区
- 后端注册表: 按名称注册与查找存储工厂

存储层只保存合法的 UTF-8 字节, 不做大小写折叠; 比较与哈希由上层完成,
因此两种后端对外的行为完全一致, 只有性能特征不同.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from cikey.errors import CharBoundaryError, StorageConfigError
from cikey.log.helpers import get_logger_adapter

logger = get_logger_adapter(__name__)

INLINE_CAPACITY_DEFAULT = 24


@runtime_checkable
class KeyStorage(Protocol):
    def push_bytes(self, data: bytes) -> None: ...
    def as_bytes(self) -> bytes: ...
    def remove(self, idx: int) -> str: ...
    def copy(self) -> KeyStorage: ...
    def __len__(self) -> int: ...


StorageFactory = Callable[[bytes], KeyStorage]


def _is_continuation(byte: int) -> bool:
    return 0x80 <= byte < 0xC0


def char_width(lead: int) -> int:
    """根据首字节计算 UTF-8 字符占用的字节数."""
    if lead < 0x80:
        return 1
    if lead < 0xE0:
        return 2
    if lead < 0xF0:
        return 3
    return 4


def is_char_boundary(data: bytes | bytearray, idx: int) -> bool:
    """
    判断字节偏移是否位于字符边界.

    0 与 len(data) 总是边界; 越界或落在续字节上的偏移不是边界.
    """
    if idx == 0 or idx == len(data):
        return True
    if idx < 0 or idx > len(data):
        return False
    return not _is_continuation(data[idx])


def locate_char(data: bytes | bytearray, idx: int) -> tuple[str, int]:
    """
    定位从 idx 开始的字符.

    参数:
        data: 合法的 UTF-8 字节.
        idx: 字符起始的字节偏移.

    返回:
        (字符, 字符结束的字节偏移).

    异常:
        CharBoundaryError: 偏移越界或不在字符边界上.
    """
    length = len(data)
    if idx < 0 or idx >= length:
        raise CharBoundaryError(idx, length, "is out of bounds")
    if _is_continuation(data[idx]):
        raise CharBoundaryError(idx, length, "is not a char boundary")
    end = idx + char_width(data[idx])
    return bytes(data[idx:end]).decode("utf-8"), end


class StringStorage:
    """通用可增长缓冲区."""

    __slots__ = ("_buf",)

    def __init__(self, data: bytes = b"") -> None:
        self._buf = bytearray(data)

    def push_bytes(self, data: bytes) -> None:
        self._buf += data

    def as_bytes(self) -> bytes:
        return bytes(self._buf)

    def remove(self, idx: int) -> str:
        char, end = locate_char(self._buf, idx)
        del self._buf[idx:end]
        return char

    def copy(self) -> StringStorage:
        return StringStorage(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({bytes(self._buf)!r})"


class CompactStorage:
    """
    短字符串优化的缓冲区.

    内部结构:
    - 长度不超过 `inline_capacity` 时, 内容以不可变 bytes 内联保存,
      每次修改整体替换;
    - 追加后超过容量时, 溢出为堆上的 bytearray, 之后原地修改,
      即使内容再次变短也不会回到内联状态.
    """

    __slots__ = ("_data", "_heap", "inline_capacity")

    def __init__(
        self, data: bytes = b"", inline_capacity: int = INLINE_CAPACITY_DEFAULT
    ) -> None:
        self.inline_capacity = inline_capacity
        self._heap: bytearray | None = None
        self._data = b""
        self.push_bytes(bytes(data))

    @property
    def is_inline(self) -> bool:
        return self._heap is None

    def push_bytes(self, data: bytes) -> None:
        if self._heap is not None:
            self._heap += data
            return
        if len(self._data) + len(data) <= self.inline_capacity:
            self._data += data
            return
        self._heap = bytearray(self._data)
        self._heap += data
        self._data = b""
        logger.debugf(
            "compact storage spilled to heap at {spill_size} bytes",
            spill_size=len(self._heap),
            inline_capacity=self.inline_capacity,
        )

    def as_bytes(self) -> bytes:
        if self._heap is not None:
            return bytes(self._heap)
        return self._data

    def remove(self, idx: int) -> str:
        if self._heap is not None:
            char, end = locate_char(self._heap, idx)
            del self._heap[idx:end]
            return char
        char, end = locate_char(self._data, idx)
        self._data = self._data[:idx] + self._data[end:]
        return char

    def copy(self) -> CompactStorage:
        return CompactStorage(self.as_bytes(), self.inline_capacity)

    def __len__(self) -> int:
        if self._heap is not None:
            return len(self._heap)
        return len(self._data)

    def __repr__(self) -> str:
        state = "inline" if self.is_inline else "heap"
        return f"{self.__class__.__name__}({self.as_bytes()!r}, {state})"


_REGISTRY: dict[str, StorageFactory] = {
    "string": StringStorage,
    "compact": CompactStorage,
}


def register_storage(name: str, factory: StorageFactory) -> None:
    """
    注册存储后端.

    参数:
        name: 后端名称(不区分大小写).
        factory: 接收初始字节, 返回 KeyStorage 实例的可调用对象.
    """
    _REGISTRY[name.lower()] = factory


def get_storage(name: str) -> StorageFactory:
    """
    按名称查找存储后端.

    异常:
        StorageConfigError: 名称未注册.
    """
    try:
        return _REGISTRY[name.lower()]
    except KeyError as ex:
        known = ", ".join(sorted(_REGISTRY))
        raise StorageConfigError(
            f"Unknown storage backend: {name!r} (known: {known})", cause=ex
        )


def storage_names() -> list[str]:
    return sorted(_REGISTRY)
