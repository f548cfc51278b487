"""
存储后端与日志的配置.

配置来源:
- 显式构造 `Settings` 并调用 `configure()`;
- 环境变量(首次使用时自动读取):
    CIKEY_STORAGE          存储后端名称, 默认 "string"
    CIKEY_INLINE_CAPACITY  compact 后端的内联容量(字节), 默认 24
    CIKEY_LOG_LEVEL        `cikey` 日志记录器级别
    CIKEY_LOG_OUTPUT       日志输出(std / stdout / stderr / rich / 文件路径)

后端在键字符串构造时选定, 之后在该值的整个生命周期内保持不变;
修改全局默认后端只影响之后构造的值.
"""

from __future__ import annotations

import os
from functools import partial
from typing import Annotated, Any, Mapping

from pydantic import Field, ValidationError

from cikey import storage
from cikey.errors import StorageConfigError
from cikey.log.config import Log, get_logger
from cikey.log.helpers import get_logger_adapter
from cikey.pydantic_utils import BaseModelEx, check, convert, format_validation_error
from cikey.singleton_meta import SingletonMeta

logger = get_logger_adapter(__name__)

ENV_STORAGE = "CIKEY_STORAGE"
ENV_INLINE_CAPACITY = "CIKEY_INLINE_CAPACITY"
ENV_LOG_LEVEL = "CIKEY_LOG_LEVEL"
ENV_LOG_OUTPUT = "CIKEY_LOG_OUTPUT"

BACKEND_DEFAULT = "string"


class StorageSettings(BaseModelEx):
    backend: Annotated[
        str,
        convert(str.lower),
        check(storage.get_storage),
    ] = BACKEND_DEFAULT
    inline_capacity: Annotated[
        int,
        check(lambda v: v > 0, check_result=True, description="must be positive"),
    ] = storage.INLINE_CAPACITY_DEFAULT


class Settings(BaseModelEx):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    log: Log | None = None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    从环境变量读取配置.

    参数:
        environ: 环境变量映射, 默认为 `os.environ`.

    返回:
        Settings: 校验后的配置; 未设置或为空的变量使用字段默认值.

    异常:
        StorageConfigError: 配置校验失败.
    """
    return validate_settings(environ_sections(environ))


def environ_sections(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """按 storage / log 两个配置段收集环境变量, 尚未校验."""
    environ = os.environ if environ is None else environ
    log_level = environ.get(ENV_LOG_LEVEL)
    log_output = environ.get(ENV_LOG_OUTPUT)

    sections: dict[str, Any] = {
        "storage": {
            "backend": environ.get(ENV_STORAGE),
            "inline_capacity": environ.get(ENV_INLINE_CAPACITY),
        },
        "log": None,
    }
    if log_level or log_output:
        sections["log"] = {
            "level": log_level,
            "handlers": [{"output": log_output}] if log_output else None,
        }
    return sections


def validate_settings(data: Mapping[str, object]) -> Settings:
    try:
        return Settings.model_validate(data)
    except ValidationError as ex:
        details = "; ".join(
            f"{error['field']}: {error['message']}"
            for error in format_validation_error(ex)
        )
        raise StorageConfigError(f"Invalid settings: {details}", cause=ex)


def build_factory(settings: StorageSettings) -> storage.StorageFactory:
    """根据存储配置返回存储工厂, compact 后端绑定内联容量."""
    factory = storage.get_storage(settings.backend)
    if factory is storage.CompactStorage:
        return partial(storage.CompactStorage, inline_capacity=settings.inline_capacity)
    return factory


class StorageSelector(metaclass=SingletonMeta):
    """
    进程级的默认存储后端.

    首次访问时从环境变量初始化, 之后可通过 `configure()` 替换.
    storage 与 log 两段分别校验: 日志变量非法时只记录警告并忽略,
    不影响后端选择.
    """

    def __init__(self) -> None:
        sections = environ_sections()
        self.settings = validate_settings({"storage": sections["storage"]})
        self.factory = build_factory(self.settings.storage)
        if sections["log"] is None:
            return
        try:
            log = validate_settings({"log": sections["log"]}).log
        except StorageConfigError as ex:
            logger.warningf(
                "ignoring log settings from environment: {reason}", reason=str(ex)
            )
            return
        get_logger(log)
        self.settings = self.settings.model_copy(update={"log": log})

    def apply(self, settings: Settings) -> None:
        self.factory = build_factory(settings.storage)
        self.settings = settings


def configure(settings: Settings | None = None) -> Settings:
    """
    安装新的全局配置.

    参数:
        settings: 新配置; 省略时重新读取环境变量.

    返回:
        Settings: 实际生效的配置.
    """
    settings = load_settings() if settings is None else settings
    if settings.log is not None:
        get_logger(settings.log)
    StorageSelector.instance().apply(settings)
    logger.infof(
        "default storage backend set to {backend}",
        backend=settings.storage.backend,
        inline_capacity=settings.storage.inline_capacity,
    )
    return settings


def default_storage() -> storage.StorageFactory:
    return StorageSelector.instance().factory
