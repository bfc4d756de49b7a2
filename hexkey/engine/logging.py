"""
日志配置

控制台 + 轮转文件（错误单独成文件），可选 JSON 行格式；
会话相关的日志通过 SessionLogger 带上 session_id
"""

import logging
import os
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import orjson


# 日志目录（HEXKEY_LOG_DIR）；HEXKEY_LOG_TO_FILE=0 时只输出到控制台
LOG_DIR = Path(os.getenv('HEXKEY_LOG_DIR', 'logs'))

DETAILED_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s'
SIMPLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'

# JsonFormatter 会原样带出的 extra 字段
EXTRA_FIELDS = ('session_id', 'event', 'request_id', 'duration_ms')


def _file_logging_enabled() -> bool:
    return os.getenv('HEXKEY_LOG_TO_FILE', '1').lower() not in ('0', 'false', 'no')


class JsonFormatter(logging.Formatter):
    """每条记录一行 JSON"""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }
        for name in EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                data[name] = value
        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)
        return orjson.dumps(data).decode('utf-8')


class ColorFormatter(logging.Formatter):
    """终端下按级别着色"""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, '')
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


class SessionLogger(logging.LoggerAdapter):
    """给每条记录带上 session_id"""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        extra.setdefault('session_id', self.extra['session_id'])
        kwargs['extra'] = extra
        return f"[{self.extra['session_id']}] {msg}", kwargs


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int, backup_count: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    name: str = 'hexkey',
    level: str = 'INFO',
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True,
    json_format: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    配置一个命名 logger（重复调用会替换原有 handler）

    Args:
        name: logger 名称，同时是日志文件名
        level: 日志级别
        log_to_file: 是否写文件（None 时看 HEXKEY_LOG_TO_FILE）
        log_to_console: 是否输出到 stderr
        json_format: 控制台和主日志文件用 JSON 行格式
        max_bytes: 单个文件大小上限
        backup_count: 轮转保留的文件数

    Returns:
        配置好的 logger
    """
    if log_to_file is None:
        log_to_file = _file_logging_enabled()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        console = logging.StreamHandler(sys.stderr)
        if json_format:
            console.setFormatter(JsonFormatter())
        elif sys.stderr.isatty():
            console.setFormatter(ColorFormatter(SIMPLE_FORMAT))
        else:
            console.setFormatter(logging.Formatter(SIMPLE_FORMAT))
        logger.addHandler(console)

    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        main_formatter = JsonFormatter() if json_format else logging.Formatter(DETAILED_FORMAT)
        logger.addHandler(_rotating_handler(
            LOG_DIR / f'{name}.log', logging.DEBUG, main_formatter, max_bytes, backup_count))
        logger.addHandler(_rotating_handler(
            LOG_DIR / f'{name}_error.log', logging.ERROR, logging.Formatter(DETAILED_FORMAT),
            max_bytes, backup_count))

    # 已有自己的 handler，不再交给上级
    logger.propagate = False
    return logger


def get_logger(name: str = 'hexkey') -> logging.Logger:
    """取 logger，首次使用时按默认参数配置"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name, level=os.getenv('LOG_LEVEL', 'INFO'))
    return logger


_named: Dict[str, logging.Logger] = {}


def _named_logger(name: str) -> logging.Logger:
    if name not in _named:
        _named[name] = setup_logging(name, level=os.getenv('LOG_LEVEL', 'INFO'))
    return _named[name]


def get_api_logger() -> logging.Logger:
    return _named_logger('hexkey.api')


def get_engine_logger() -> logging.Logger:
    return _named_logger('hexkey.engine')


def session_logger(session_id: str) -> SessionLogger:
    """API 会话日志"""
    return SessionLogger(get_api_logger(), {'session_id': session_id})


def log_execution_time(logger: Optional[logging.Logger] = None):
    """装饰器：以 DEBUG 记录耗时，异常时以 ERROR 记录后继续抛出"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            log = logger or get_engine_logger()
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = round((time.perf_counter() - start) * 1000, 2)
                log.error(f"{func.__qualname__} 失败 ({elapsed}ms): {e}", extra={'duration_ms': elapsed})
                raise
            elapsed = round((time.perf_counter() - start) * 1000, 2)
            log.debug(f"{func.__qualname__} 完成 ({elapsed}ms)", extra={'duration_ms': elapsed})
            return result
        return wrapper
    return decorator
