import json
import os
import uuid
from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime

import pytz


class LogLevel(Enum):
    """Уровни серьезности логов"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSection(Enum):
    """Основные разделы системы"""
    AUTH = "auth"
    USER = "user"
    ADMIN = "admin"
    QUIZ = "quiz"
    CATEGORY = "category"
    NOTIFICATION = "notification"
    SECURITY = "security"
    DATABASE = "database"
    SYSTEM = "system"
    API = "api"
    REDIS = "redis"


class LogSubsection:
    """Подразделы для каждого раздела"""

    class AUTH:
        REGISTER_ATTEMPT = "register_attempt"
        REGISTER_SUCCESS = "register_success"
        REGISTER_FAILED = "register_failed"
        LOGIN_ATTEMPT = "login_attempt"
        LOGIN_SUCCESS = "login_success"
        LOGIN_FAILED = "login_failed"
        LOGOUT = "logout"
        TOKEN_CREATE = "token_create"
        TOKEN_MISSING = "token_missing"
        TOKEN_INVALID = "token_invalid"
        TOKEN_EXPIRED = "token_expired"
        TOKEN_REVOKED = "token_revoked"
        USER_NOT_FOUND = "user_not_found"
        USER_VALIDATED = "user_validated"
        ACCESS_DENIED = "access_denied"

    class USER:
        PROFILE = "profile"
        NOTIFICATIONS = "notifications"
        UPDATE = "update"
        DELETE = "delete"

    class ADMIN:
        USER_MANAGEMENT = "user_management"
        LIST_ACCESS = "list_access"
        CREATE_ADMIN = "create_admin"
        BROADCAST = "broadcast"

    class QUIZ:
        QUESTION_LOAD = "question_load"
        ANSWER_SUBMIT = "answer_submit"
        ANSWER_DUPLICATE = "answer_duplicate"
        PROGRESS = "progress"
        EXHAUSTED = "exhausted"
        ACCESS = "access"

    class CATEGORY:
        CREATE = "create"
        LIST = "list"
        DELETE = "delete"
        QUESTION_CREATE = "question_create"
        QUESTION_UPDATE = "question_update"
        QUESTION_DELETE = "question_delete"
        ACCESS = "access"

    class NOTIFICATION:
        SWEEP = "sweep"
        CREATE = "create"
        READ = "read"

    class SECURITY:
        UNAUTHORIZED_ACCESS = "unauthorized_access"
        ACCESS_DENIED = "access_denied"
        BACKGROUND_TASK = "background_task"

    class DATABASE:
        QUERY = "query"
        ERROR = "error"
        INDEXES_CREATE = "indexes_create"
        INDEXES_SUCCESS = "indexes_success"
        INDEXES_ERROR = "indexes_error"

    class SYSTEM:
        INITIALIZATION = "initialization"
        STARTUP = "startup"
        SHUTDOWN = "shutdown"
        MAINTENANCE = "maintenance"
        ERROR = "error"

    class API:
        REQUEST = "request"
        ERROR = "error"
        VALIDATION = "validation"

    class REDIS:
        CONNECTION = "connection"
        DISCONNECTION = "disconnection"
        ERROR = "error"


class StructuredLogEntry:
    """Модель структурированного лог-сообщения"""

    def __init__(
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
        # Часовой пояс задаётся через LOG_TIMEZONE, по умолчанию UTC
        timezone = pytz.timezone(os.getenv("LOG_TIMEZONE", "UTC"))

        self.timestamp = datetime.now(timezone).strftime('%Y-%m-%d %H:%M:%S %Z')
        self.log_id = str(uuid.uuid4())[:8]  # Короткий уникальный ID
        self.level = level.value
        self.section = section.value
        self.subsection = subsection
        self.message = message
        self.extra_data = extra_data or {}
        self.user_id = user_id
        self.ip_address = ip_address
        self.user_agent = user_agent

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь для логирования"""
        log_dict = {
            "timestamp": self.timestamp,
            "log_id": self.log_id,
            "level": self.level,
            "section": self.section,
            "subsection": self.subsection,
            "message": self.message
        }

        # Опциональные поля добавляем только если они заданы
        if self.user_id:
            log_dict["user_id"] = self.user_id
        if self.ip_address:
            log_dict["ip_address"] = self.ip_address
        if self.user_agent:
            log_dict["user_agent"] = self.user_agent
        if self.extra_data:
            log_dict["extra_data"] = self.extra_data

        return log_dict

    def to_json_string(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
