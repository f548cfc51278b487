"""
配置模块测试套件

覆盖环境变量读取/配置校验/全局默认后端/日志配置.
"""

import logging

import pytest
from pydantic import ValidationError

from cikey import storage
from cikey.config import (
    Settings,
    StorageSelector,
    StorageSettings,
    configure,
    default_storage,
    load_settings,
    validate_settings,
)
from cikey.errors import StorageConfigError
from cikey.key_string import CaseInsensitiveKeyString
from cikey.log.config import Handler, Log
from cikey.log.helpers import StandardHandler
from cikey.storage import CompactStorage, StringStorage


class TestLoadSettings:
    """测试从环境变量读取配置"""

    def test_defaults(self):
        settings = load_settings({})
        assert settings.storage.backend == "string"
        assert settings.storage.inline_capacity == 24
        assert settings.log is None

    def test_storage_from_environ(self):
        settings = load_settings(
            {"CIKEY_STORAGE": "COMPACT", "CIKEY_INLINE_CAPACITY": "8"}
        )
        assert settings.storage.backend == "compact"
        assert settings.storage.inline_capacity == 8

    def test_empty_values_use_defaults(self):
        settings = load_settings({"CIKEY_STORAGE": "", "CIKEY_INLINE_CAPACITY": ""})
        assert settings.storage.backend == "string"
        assert settings.storage.inline_capacity == 24

    def test_log_from_environ(self):
        settings = load_settings(
            {"CIKEY_LOG_LEVEL": "debug", "CIKEY_LOG_OUTPUT": "STDERR"}
        )
        assert settings.log is not None
        assert settings.log.level == "DEBUG"
        assert settings.log.handlers[0].output == "stderr"

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("CIKEY_STORAGE", "compact")
        assert load_settings().storage.backend == "compact"

    @pytest.mark.parametrize(
        "environ",
        [
            {"CIKEY_STORAGE": "rope"},
            {"CIKEY_INLINE_CAPACITY": "0"},
            {"CIKEY_INLINE_CAPACITY": "many"},
            {"CIKEY_LOG_LEVEL": "chatty"},
        ],
    )
    def test_invalid(self, environ):
        with pytest.raises(StorageConfigError) as exc_info:
            load_settings(environ)
        assert isinstance(exc_info.value, ValueError)
        assert isinstance(exc_info.value.cause, ValidationError)
        assert str(exc_info.value).startswith("Invalid settings: ")

    def test_validate_settings_mapping(self):
        settings = validate_settings({"storage": {"backend": "Compact"}})
        assert settings.storage.backend == "compact"


class TestStorageSelection:
    """测试全局默认后端"""

    def test_default_backend(self):
        assert default_storage() is StringStorage
        assert isinstance(CaseInsensitiveKeyString("a").inner, StringStorage)

    def test_environment_selects_backend(self, monkeypatch):
        monkeypatch.setenv("CIKEY_STORAGE", "compact")
        monkeypatch.setenv("CIKEY_INLINE_CAPACITY", "4")
        StorageSelector.reset()
        key = CaseInsensitiveKeyString("abc")
        assert isinstance(key.inner, CompactStorage)
        assert key.inner.inline_capacity == 4

    def test_selector_is_singleton(self):
        assert StorageSelector() is StorageSelector.instance()

    def test_registered_backend_is_accepted(self, monkeypatch):
        class TracingStorage(StringStorage):
            __slots__ = ()

        monkeypatch.setitem(storage._REGISTRY, "tracing", TracingStorage)
        monkeypatch.setenv("CIKEY_STORAGE", "Tracing")
        assert load_settings().storage.backend == "tracing"
        assert isinstance(CaseInsensitiveKeyString("a").inner, TracingStorage)

    def test_invalid_log_environ_keeps_backend_selection(self, monkeypatch, caplog):
        caplog.set_level(logging.WARNING, logger="cikey")
        monkeypatch.setenv("CIKEY_STORAGE", "compact")
        monkeypatch.setenv("CIKEY_LOG_LEVEL", "chatty")
        key = CaseInsensitiveKeyString("Accept")
        assert isinstance(key.inner, CompactStorage)
        assert StorageSelector.instance().settings.log is None
        records = [r for r in caplog.records if r.name == "cikey.config"]
        assert records[-1].levelno == logging.WARNING
        assert "log.level" in records[-1].reason

    def test_invalid_storage_environ_still_raises(self, monkeypatch):
        monkeypatch.setenv("CIKEY_STORAGE", "rope")
        with pytest.raises(StorageConfigError):
            CaseInsensitiveKeyString("a")

    def test_configure(self):
        before = CaseInsensitiveKeyString("Host")
        settings = configure(
            Settings(storage=StorageSettings(backend="compact", inline_capacity=2))
        )
        after = CaseInsensitiveKeyString("Host")
        assert settings.storage.backend == "compact"
        assert isinstance(before.inner, StringStorage)
        assert isinstance(after.inner, CompactStorage)
        assert not after.inner.is_inline
        assert before == after
        assert hash(before) == hash(after)

    def test_configure_without_settings_reads_environ(self, monkeypatch):
        configure(Settings(storage=StorageSettings(backend="compact")))
        monkeypatch.setenv("CIKEY_STORAGE", "string")
        configure()
        assert default_storage() is StringStorage

    def test_configure_logs(self, caplog):
        caplog.set_level(logging.INFO, logger="cikey")
        configure(Settings())
        records = [r for r in caplog.records if r.name == "cikey.config"]
        assert records[-1].backend == "string"


class TestLogConfiguration:
    """测试日志配置"""

    def test_configure_installs_handlers(self):
        configure(Settings(log=Log(level="debug", handlers=[Handler(output="std")])))
        logger = logging.getLogger("cikey")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], StandardHandler)

    def test_configure_replaces_handlers(self):
        log = Log(handlers=[Handler(output="stdout"), Handler(output="stderr")])
        configure(Settings(log=log))
        configure(Settings(log=Log(handlers=[Handler()])))
        assert len(logging.getLogger("cikey").handlers) == 1

    def test_without_log_section_logging_is_untouched(self):
        logger = logging.getLogger("cikey")
        configure(Settings())
        assert logger.handlers == []
        assert logger.level == logging.NOTSET

    def test_environ_log_applied_on_first_use(self, monkeypatch):
        monkeypatch.setenv("CIKEY_LOG_LEVEL", "debug")
        monkeypatch.setenv("CIKEY_LOG_OUTPUT", "stderr")
        CaseInsensitiveKeyString("Host")
        logger = logging.getLogger("cikey")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert StorageSelector.instance().settings.log.level == "DEBUG"

    def test_environ_log_level_only(self, monkeypatch):
        monkeypatch.setenv("CIKEY_LOG_LEVEL", "debug")
        CaseInsensitiveKeyString("Host")
        logger = logging.getLogger("cikey")
        assert logger.level == logging.DEBUG
        assert logger.handlers == []
