"""
Logging setup for SafeRoute.

Every component logs through a loguru logger bound with a
``saferoute.<area>`` name and keyword context (user_id, hazard_id, ...).
Records from stdlib loggers such as uvicorn and aiosqlite are routed
into the same sink.
"""

from __future__ import annotations
import inspect
import logging
import sys
from loguru import logger

SERVICE_LOGGER = "saferoute"

# loguru로 옮겨 받는 stdlib 로거
STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "aiosqlite", "asyncio")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)

class InterceptHandler(logging.Handler):
    """stdlib 로그 레코드를 loguru로 넘기는 핸들러"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # logging 내부 프레임을 건너뛰어 실제 호출 위치를 남김
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )

def _route_stdlib_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in STDLIB_LOGGERS:
        std = logging.getLogger(name)
        std.handlers = [InterceptHandler()]
        std.propagate = False

def _console_format(record) -> str:
    """
    콘솔 포맷을 만듭니다. name 외의 바인딩 필드는 key=value로 뒤에 붙입니다.

    Args:
        record: loguru 레코드

    Returns:
        loguru 포맷 문자열
    """
    fields = " ".join(f"{k}={v}" for k, v in record["extra"].items() if k != "name")
    if not fields:
        return CONSOLE_FORMAT + "\n{exception}"
    record["extra"]["_fields"] = fields
    return CONSOLE_FORMAT + " <dim>{extra[_fields]}</dim>\n{exception}"

def setup_logger(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    서비스 로깅을 초기화합니다.

    Args:
        log_level: 최소 로그 레벨
        json_logs: True면 한 줄 JSON 레코드로 stderr에 출력 (로그 수집기용)
    """
    logger.remove()
    logger.configure(extra={"name": SERVICE_LOGGER})
    if json_logs:
        logger.add(sys.stderr, serialize=True, level=log_level.upper(),
                   backtrace=False, diagnose=False)
    else:
        logger.add(sys.stderr, format=_console_format, colorize=True, level=log_level.upper(),
                   backtrace=False, diagnose=False)
    _route_stdlib_logging()
    logger.bind(name=SERVICE_LOGGER).debug("로깅 초기화 완료", json_logs=json_logs)

def get_logger(name: str = SERVICE_LOGGER, **ctx):
    """이름과 컨텍스트를 바인딩한 logger를 반환합니다."""
    return logger.bind(name=name, **ctx)

def with_context(**ctx):
    """블록 안의 모든 로그에 컨텍스트를 붙입니다 (예: 요청 단위 user_id)."""
    return logger.contextualize(**ctx)
