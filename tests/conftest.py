import logging

import pytest

from cikey.config import StorageSelector

ENV_NAMES = (
    "CIKEY_STORAGE",
    "CIKEY_INLINE_CAPACITY",
    "CIKEY_LOG_LEVEL",
    "CIKEY_LOG_OUTPUT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """每个用例使用干净的环境变量/默认后端/日志记录器"""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    StorageSelector.reset()
    yield
    StorageSelector.reset()
    logger = logging.getLogger("cikey")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(params=["string", "compact"])
def backend(request):
    """两种存储后端参数化"""
    return request.param
