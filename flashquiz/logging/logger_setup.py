# flashquiz/logging/logger_setup.py

import asyncio
import inspect
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any

from .log_models import StructuredLogEntry, LogLevel, LogSection
from .rabbitmq_handler import get_rabbitmq_publisher, close_rabbitmq_publisher, rabbitmq_logging_enabled


class StructuredFormatter(logging.Formatter):
    """Форматтер, который выводит каждую запись одной JSON-строкой"""

    def format(self, record):
        if hasattr(record, "structured_data"):
            return record.structured_data.to_json_string()

        # Записи сторонних логгеров (uvicorn, motor) оборачиваем в ту же структуру
        # Нестандартные уровни (например, TRACE у uvicorn) пишутся как INFO
        entry = StructuredLogEntry(
            level=LogLevel.__members__.get(record.levelname, LogLevel.INFO),
            section=LogSection.SYSTEM,
            subsection="general",
            message=record.getMessage(),
            extra_data={"module": record.name}
        )
        return entry.to_json_string()


class StructuredLogger:
    """Обертка для создания структурированных логов"""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)
        self._rabbitmq_tasks = set()

    def _get_caller_info(self) -> Dict[str, Any]:
        """
        Определяет файл, функцию и строку, откуда был вызван лог.

        Стек: [0] _get_caller_info, [1] _log, [2] info/warning/..., [3] вызывающий код
        """
        try:
            caller_frame = inspect.currentframe().f_back.f_back.f_back
            if caller_frame:
                filename = caller_frame.f_code.co_filename
                return {
                    "source_file": os.path.basename(filename),
                    "source_function": caller_frame.f_code.co_name,
                    "source_line": caller_frame.f_lineno
                }
        except AttributeError:
            pass
        return {"source_file": "unknown", "source_function": "unknown", "source_line": 0}

    def _log(
        self,
        level: LogLevel,
        section: LogSection,
        subsection: str,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ):
        levelno = getattr(logging, level.value)
        if not self.logger.isEnabledFor(levelno):
            return

        entry = StructuredLogEntry(
            level=level,
            section=section,
            subsection=subsection,
            message=message,
            extra_data={**(extra_data or {}), **self._get_caller_info()},
            user_id=str(user_id) if user_id is not None else None,
            ip_address=ip_address,
            user_agent=user_agent
        )

        log_record = self.logger.makeRecord(
            name=self.logger.name,
            level=levelno,
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None
        )
        log_record.structured_data = entry
        self.logger.handle(log_record)

        if level in (LogLevel.WARNING, LogLevel.ERROR, LogLevel.CRITICAL) and rabbitmq_logging_enabled():
            self._schedule_rabbitmq_send(entry)

    def _schedule_rabbitmq_send(self, entry: StructuredLogEntry):
        """Планирует отправку лога в RabbitMQ, если есть активный event loop"""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return

        task = asyncio.create_task(get_rabbitmq_publisher().publish_log(entry))
        self._rabbitmq_tasks.add(task)
        task.add_done_callback(self._rabbitmq_tasks.discard)

    async def wait_for_rabbitmq_tasks(self):
        """Ждет завершения всех задач RabbitMQ"""
        if self._rabbitmq_tasks:
            await asyncio.gather(*self._rabbitmq_tasks, return_exceptions=True)
            self._rabbitmq_tasks.clear()

    def debug(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.DEBUG, section, subsection, message, **kwargs)

    def info(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.INFO, section, subsection, message, **kwargs)

    def warning(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.WARNING, section, subsection, message, **kwargs)

    def error(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.ERROR, section, subsection, message, **kwargs)

    def critical(self, section: LogSection, subsection: str, message: str, **kwargs):
        self._log(LogLevel.CRITICAL, section, subsection, message, **kwargs)


def _ensure_dir(path: str):
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)


def setup_application_logging():
    """
    Настройка централизованного логирования приложения

    - структурированные JSON логи (одна запись на строку)
    - консоль + файл с ротацией
    - отдельный файл для событий безопасности
    - WARNING и выше уходят в RabbitMQ, если RABBITMQ_LOGGING=true
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file = os.getenv("LOG_FILE", "logs/application.log")
    console_logging = os.getenv("CONSOLE_LOGGING", "true").lower() == "true"
    max_bytes = int(os.getenv("LOG_MAX_BYTES", "10485760"))  # 10 MB
    backup_count = int(os.getenv("LOG_BACKUP_COUNT", "20"))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Повторный вызов не должен дублировать хендлеры
    while root_logger.hasHandlers() and root_logger.handlers:
        root_logger.removeHandler(root_logger.handlers[0])

    formatter = StructuredFormatter()

    console_handler = None
    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

    _ensure_dir(log_file)
    file_handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)
    root_logger.addHandler(file_handler)

    # ===== ОТДЕЛЬНЫЙ ФАЙЛ ДЛЯ БЕЗОПАСНОСТИ =====
    security_log_file = os.getenv("SECURITY_LOG_FILE", "logs/security.log")
    _ensure_dir(security_log_file)
    security_handler = RotatingFileHandler(
        filename=security_log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8"
    )
    security_handler.setFormatter(formatter)
    security_handler.setLevel("WARNING")

    security_logger = logging.getLogger("security_events")
    security_logger.setLevel("WARNING")
    security_logger.handlers = [security_handler]
    security_logger.propagate = False

    # ===== UVICORN =====
    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.handlers = [console_handler or file_handler]
    uvicorn_logger.setLevel(log_level)
    uvicorn_logger.propagate = False

    get_structured_logger("system.init").info(
        section=LogSection.SYSTEM,
        subsection="startup",
        message="Система структурированного логирования инициализирована",
        extra_data={
            "log_level": log_level,
            "log_file": log_file,
            "console_logging": console_logging,
            "rabbitmq_enabled": rabbitmq_logging_enabled()
        }
    )


def get_structured_logger(name: str) -> StructuredLogger:
    """
    Получить структурированный логгер для модуля

    Args:
        name: Имя модуля/компонента (например: "flashquiz.quiz.service")
    """
    return StructuredLogger(name)


def get_security_logger() -> StructuredLogger:
    """Логгер для событий безопасности (пишет в отдельный файл)"""
    return StructuredLogger("security_events")


async def close_all_rabbitmq_connections():
    """Закрывает соединение издателя логов"""
    await close_rabbitmq_publisher()
