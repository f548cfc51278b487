from __future__ import annotations

import json
import logging
import sys
import traceback
from typing import Any, Literal

ROOT_LOGGER = "cikey"


def get_logger_adapter(name: str | None = None, **extra: Any) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), **extra)


class StandardHandler(logging.Handler):
    """
    标准日志处理器, WARNING 以下输出到标准输出流, 其余输出到标准错误流.
    """

    def __init__(self):
        super().__init__()
        self.stdout = sys.stdout
        self.stderr = sys.stderr

    def flush(self):
        with self.lock:  # type: ignore
            self.stdout.flush()
            self.stderr.flush()

    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stdout if record.levelno < logging.WARNING else self.stderr
            stream.write(msg + "\n")
            stream.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def __repr__(self):
        level = logging.getLevelName(self.level)
        cls = type(self).__name__
        return f"<{cls} <stdout> <stderr> ({level})>"


class EnhancedFormatter(logging.Formatter):
    """
    扩展的日志格式化器, 支持 text 与 json 两种输出.

    json 输出会附带通过 `extra` 传入的扩展字段, 无法直接序列化的值(例如键字符串)
    以 `str()` 形式输出, 即保留原始大小写.
    """

    # fmt: off
    RESERVED_FIELDS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
        'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName', 'created', 'msecs',
        'relativeCreated', 'thread', 'threadName', 'processName', 'process', 'taskName',
        'message', 'asctime', 'stacklevel', 'logger'
    }
    # fmt: on

    def __init__(
        self,
        textfmt: str | None = "{asctime} {levelname}: {message}",
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "{",
        validate: bool = True,
        *,
        output_format: Literal["text", "json"] = "text",
    ) -> None:
        super().__init__(textfmt, datefmt, style, validate)
        self.output_format = output_format

    def format(self, record: logging.LogRecord) -> str:
        record.message = self.getMessage(record)
        record.asctime = self.formatTime(record, self.datefmt)

        if self.output_format == "text":
            return self.formatMessage(record)
        return self.formatJson(record)

    def getMessage(self, record: logging.LogRecord) -> str:
        msg = str(record.msg)
        args = record.args or ()
        style = getattr(record, "_style", "%")

        try:
            if style == "{":
                return msg.format(*args, **vars(record))
            return record.getMessage()
        except Exception:
            return msg

    def formatJson(self, record: logging.LogRecord) -> str:
        json_dict: dict[str, Any] = {
            "timestamp": record.asctime,
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "location": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        }
        if record.exc_info:
            typ, value, tb = record.exc_info
            json_dict["exception"] = {
                "$type": f"{typ.__module__}.{typ.__name__}" if typ else None,
                "message": str(value) if value else None,
                "traceback": traceback.format_exception(typ, value, tb),
            }
        for key, value in vars(record).items():
            if key not in self.RESERVED_FIELDS and not key.startswith("_"):
                json_dict[key] = value

        return json.dumps(json_dict, ensure_ascii=False, default=str)


class LoggerAdapter:
    """
    日志适配器, 封装标准库 `logging.Logger`

    消息使用 `{}` 格式化(`str.format` 风格), 关键字参数作为格式化字段写入 `extra`.

    通过构造函数传入的 `extra` 字段会自动合并到每条日志记录的 `extra` 中.
    """

    def __init__(self, logger: logging.Logger, **extra: Any) -> None:
        self.logger = logger
        self.extra = extra

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """
        预处理日志调用参数: 原本的 `kwargs` 整体作为 `extra` 写入日志记录,
        并注入 `_style` 字段指示格式化方式.
        """
        extra = kwargs.pop("extra", {})
        return msg, {"extra": {**self.extra, **extra, **kwargs, "_style": "{"}}

    def debugf(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logf(logging.DEBUG, msg, *args, **kwargs)

    def infof(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logf(logging.INFO, msg, *args, **kwargs)

    def warningf(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logf(logging.WARNING, msg, *args, **kwargs)

    def logf(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        msg, kwargs = self.process(msg, kwargs)
        self.logger.log(level, msg, *args, **kwargs)
