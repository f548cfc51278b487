"""
键字符串的结构化数据序列化.

键字符串以原始大小写的纯字符串形式出现在序列化结果中,
反序列化得到的值与原值相等, 且字节内容(包括大小写)完全一致.

在 Pydantic 模型中可直接使用 `CaseInsensitiveKeyString` 作为字段类型;
本模块另外提供独立的 TypeAdapter 入口.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from cikey.key_string import CaseInsensitiveKeyString

KeyStringAdapter: TypeAdapter[CaseInsensitiveKeyString] = TypeAdapter(
    CaseInsensitiveKeyString
)
KeyStringListAdapter: TypeAdapter[list[CaseInsensitiveKeyString]] = TypeAdapter(
    list[CaseInsensitiveKeyString]
)


def dump_python(value: CaseInsensitiveKeyString) -> str:
    return KeyStringAdapter.dump_python(value)


def dump_json(value: CaseInsensitiveKeyString) -> bytes:
    return KeyStringAdapter.dump_json(value)


def load_json(data: str | bytes | bytearray) -> CaseInsensitiveKeyString:
    return KeyStringAdapter.validate_json(data)


def load_python(data: Any) -> CaseInsensitiveKeyString:
    """
    从 Python 对象构造键字符串.

    接受键字符串实例/str/bytes; bytes 中的非法 UTF-8 以 U+FFFD 替换.
    """
    return KeyStringAdapter.validate_python(data)


def json_schema() -> dict[str, Any]:
    return KeyStringAdapter.json_schema()
