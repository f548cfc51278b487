from __future__ import annotations

import logging
import sys

from rich.console import ConsoleRenderable
from rich.logging import RichHandler
from rich.text import Text

# 键字符串相关日志中需要高亮的关键词
KEYWORDS_DEFAULT = ["spilled", "boundary", "replaced", "backend"]


class StyledStandardHandler(RichHandler):
    """
    基于 rich 的控制台日志处理器.

    - WARNING 以下输出到标准输出流, 其余输出到标准错误流;
    - 不显示级别列时, 按级别为消息着色.
    """

    def __init__(
        self,
        show_time: bool = False,
        show_level: bool = False,
        keywords: list[str] | None = None,
    ) -> None:
        super().__init__(
            show_time=show_time,
            show_level=show_level,
            show_path=False,
            markup=False,
            rich_tracebacks=False,
            log_time_format="%Y-%m-%d %H:%M:%S",
            keywords=KEYWORDS_DEFAULT if keywords is None else keywords,
        )
        self.show_level = show_level

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < logging.WARNING:
            self.console.file = sys.stdout
        else:
            self.console.file = sys.stderr
        super().emit(record)

    def render_message(
        self, record: logging.LogRecord, message: str
    ) -> ConsoleRenderable:
        text = super().render_message(record, message)

        if not self.show_level and isinstance(text, Text):
            if record.levelno == logging.DEBUG:
                text.stylize("dim")
            elif record.levelno == logging.WARNING:
                text.stylize("yellow")
            elif record.levelno == logging.ERROR:
                text.stylize("red")
            elif record.levelno == logging.CRITICAL:
                text.stylize("bold white on red")

        return text
