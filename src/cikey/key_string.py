"""
提供一个大小写不敏感的键字符串实现.

设计目标:
- 相等与哈希只对 ASCII 字母做大小写折叠, 其余字节(包括多字节字符)逐字节比较;
- 哈希由与相等判断相同的折叠函数导出, 保证 `a == b` 推出 `hash(a) == hash(b)`;
- 构造与修改从不改变原始大小写, 折叠只在比较/哈希时临时进行;
- 内部缓冲区始终是合法的 UTF-8, 从非法字节构造时以 U+FFFD 替换;
- 可与 str / bytes 直接比较, 无需显式转换;
- 只定义相等, 不定义大小顺序.

主要组件:
- CaseInsensitiveKeyString: 大小写不敏感的键字符串类

示例:
    >>> from cikey.key_string import CaseInsensitiveKeyString
    >>> key = CaseInsensitiveKeyString("Content-Type")
    >>> key == "content-type"
    True
    >>> str(key)
    'Content-Type'
    >>> {key: 1}[CaseInsensitiveKeyString("CONTENT-TYPE")]
    1
    >>> len(CaseInsensitiveKeyString("👱"))
    4
"""

from __future__ import annotations

from typing import Any, Iterator

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from cikey import config, folding
from cikey.errors import CharBoundaryError
from cikey.log.helpers import get_logger_adapter
from cikey.storage import KeyStorage, StorageFactory, get_storage, is_char_boundary

logger = get_logger_adapter(__name__)

ByteSource = str | bytes | bytearray | memoryview


def _resolve_factory(storage: str | StorageFactory | None) -> StorageFactory:
    if storage is None:
        return config.default_storage()
    if isinstance(storage, str):
        return get_storage(storage)
    return storage


def _decode_lossy(data: bytes) -> bytes:
    try:
        data.decode("utf-8")
        return data
    except UnicodeDecodeError:
        repaired = data.decode("utf-8", "replace")
        logger.debugf(
            "invalid utf-8 replaced in {byte_count} byte input",
            byte_count=len(data),
            replacements=repaired.count("\ufffd"),
        )
        return repaired.encode("utf-8")


class CaseInsensitiveKeyString:
    """
    大小写不敏感的键字符串.

    内部结构:
    - self._storage: 存储后端实例(StringStorage / CompactStorage / 自定义后端),
      在构造时选定, 生命周期内不变.

    构造来源:
    - str: 直接按 UTF-8 采纳;
    - bytes / bytearray / memoryview: 非法序列替换为 U+FFFD, 永不失败;
    - CaseInsensitiveKeyString: 深拷贝其字节;
    - KeyStorage: 拷贝其字节, 与 bytes 来源一样修复非法序列.

    特性:
    - **长度按字节计**: `len()` 返回 UTF-8 字节数, 字符数使用 `char_count()`;
    - **相等/哈希一致**: 两者都基于 `folding` 模块的同一个折叠函数;
    - **保留原始大小写**: `str()`/`repr()`/`as_bytes()` 均返回原样内容;
    - **不可排序**: 不定义 `<`/`>` 等比较运算.
    """

    __slots__ = ("_storage",)

    def __init__(
        self,
        value: ByteSource | CaseInsensitiveKeyString | KeyStorage = "",
        *,
        storage: str | StorageFactory | None = None,
    ) -> None:
        factory = _resolve_factory(storage)
        if isinstance(value, str):
            data = value.encode("utf-8")
        elif isinstance(value, (bytes, bytearray, memoryview)):
            data = _decode_lossy(bytes(value))
        elif isinstance(value, CaseInsensitiveKeyString):
            data = value.as_bytes()
        elif isinstance(value, KeyStorage):
            data = _decode_lossy(value.as_bytes())
        else:
            raise TypeError(
                f"Cannot build {self.__class__.__name__} from {type(value).__name__}"
            )
        self._storage: KeyStorage = factory(data)

    @classmethod
    def new(
        cls, source: ByteSource, *, storage: str | StorageFactory | None = None
    ) -> CaseInsensitiveKeyString:
        """
        从任意字节类或文本来源构造.

        `new(b"abc") == new("abc")`; 非法 UTF-8 以 U+FFFD 替换.
        """
        return cls(source, storage=storage)

    @classmethod
    def from_str(
        cls, text: str, *, storage: str | StorageFactory | None = None
    ) -> CaseInsensitiveKeyString:
        if not isinstance(text, str):
            raise TypeError(f"Expected str, got {type(text).__name__}")
        return cls(text, storage=storage)

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray | memoryview,
        *,
        storage: str | StorageFactory | None = None,
    ) -> CaseInsensitiveKeyString:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Expected bytes-like, got {type(data).__name__}")
        return cls(data, storage=storage)

    # 查询

    @property
    def inner(self) -> KeyStorage:
        """底层存储后端实例."""
        return self._storage

    def as_bytes(self) -> bytes:
        return self._storage.as_bytes()

    def as_str(self) -> str:
        return self._storage.as_bytes().decode("utf-8")

    def into_string(self) -> str:
        return self.as_str()

    def len(self) -> int:
        """返回字节长度(而非字符数)."""
        return len(self._storage)

    def is_empty(self) -> bool:
        return len(self._storage) == 0

    def char_count(self) -> int:
        return len(self.as_str())

    def is_char_boundary(self, idx: int) -> bool:
        return is_char_boundary(self._storage.as_bytes(), idx)

    def chars(self) -> Iterator[str]:
        return iter(self)

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_str())

    def __contains__(self, item: object) -> bool:
        """子串判断, 与相等一样忽略 ASCII 大小写."""
        needle = folding.coerce_operand(item)
        if needle is None:
            raise TypeError(
                f"'in <{self.__class__.__name__}>' requires str or bytes-like operand"
            )
        return folding.fold(needle) in folding.fold(self.as_bytes())

    # 修改

    def push(self, ch: str) -> None:
        """
        在末尾追加一个字符.

        异常:
            TypeError: ch 不是 str.
            ValueError: ch 的长度不为 1.
        """
        if not isinstance(ch, str):
            raise TypeError(f"Expected a character, got {type(ch).__name__}")
        if len(ch) != 1:
            raise ValueError(f"Expected a single character, got {len(ch)}")
        self._storage.push_bytes(ch.encode("utf-8"))

    def push_str(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError(f"Expected str, got {type(text).__name__}")
        self._storage.push_bytes(text.encode("utf-8"))

    def remove(self, idx: int) -> str:
        """
        删除并返回从字节偏移 idx 开始的字符, 之后的字节整体前移.

        这是一个 O(n) 操作.

        参数:
            idx: 字符起始的字节偏移.

        返回:
            被删除的字符.

        异常:
            CharBoundaryError: idx 越界(不小于字节长度或为负数),
                或落在多字节字符内部.
        """
        try:
            return self._storage.remove(idx)
        except CharBoundaryError as ex:
            logger.debugf(
                "remove rejected: {reason}",
                reason=str(ex),
                index=ex.index,
                length=ex.length,
            )
            raise

    def try_remove(self, idx: int) -> str | None:
        """`remove()` 的非致命版本, 偏移非法时返回 None."""
        if not 0 <= idx < len(self._storage) or not self.is_char_boundary(idx):
            return None
        return self._storage.remove(idx)

    def copy(self) -> CaseInsensitiveKeyString:
        clone = self.__class__.__new__(self.__class__)
        clone._storage = self._storage.copy()
        return clone

    __copy__ = copy

    def __deepcopy__(self, memo: dict[int, Any]) -> CaseInsensitiveKeyString:
        return self.copy()

    def __reduce__(self) -> tuple[Any, ...]:
        return (self.__class__, (self.as_bytes(),))

    # 比较与哈希

    def __eq__(self, other: object) -> bool:
        other_bytes = folding.coerce_operand(other)
        if other_bytes is None:
            return NotImplemented
        return folding.eq_ignore_ascii_case(self.as_bytes(), other_bytes)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return folding.folded_hash(self.as_bytes())

    # 其他协议

    def __len__(self) -> int:
        return len(self._storage)

    def __bytes__(self) -> bytes:
        return self.as_bytes()

    def __str__(self) -> str:
        return self.as_str()

    def __format__(self, format_spec: str) -> str:
        return format(self.as_str(), format_spec)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.as_str()!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """
        Pydantic 集成: 以原始大小写的字符串形式序列化.

        - JSON 模式: 从字符串构造;
        - Python 模式: 接受已有实例/字符串/字节(非法 UTF-8 以 U+FFFD 替换);
        - 序列化: 输出 `str(value)`.
        """
        from_text = core_schema.no_info_after_validator_function(
            cls, core_schema.str_schema()
        )
        from_bytes = core_schema.no_info_after_validator_function(
            cls, core_schema.bytes_schema(strict=True)
        )
        return core_schema.json_or_python_schema(
            json_schema=from_text,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_bytes, from_text]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )
