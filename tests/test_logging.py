import json
import logging
from unittest.mock import AsyncMock, patch

from flashquiz.logging import LogLevel, LogSection, LogSubsection, get_structured_logger
from flashquiz.logging.log_models import StructuredLogEntry
from flashquiz.logging.logger_setup import StructuredFormatter
from flashquiz.logging.rabbitmq_handler import RabbitMQLogPublisher


def test_entry_omits_empty_optional_fields():
    entry = StructuredLogEntry(
        level=LogLevel.INFO,
        section=LogSection.QUIZ,
        subsection=LogSubsection.QUIZ.ANSWER_SUBMIT,
        message="Ответ записан"
    )

    data = entry.to_dict()

    assert data["level"] == "INFO"
    assert data["section"] == "quiz"
    assert data["subsection"] == "answer_submit"
    assert "user_id" not in data
    assert len(data["log_id"]) == 8
    assert json.loads(entry.to_json_string())["message"] == "Ответ записан"


def test_structured_logger_records_caller(caplog):
    logger = get_structured_logger("flashquiz.tests")

    with caplog.at_level(logging.INFO, logger="flashquiz.tests"):
        logger.info(
            section=LogSection.QUIZ,
            subsection=LogSubsection.QUIZ.PROGRESS,
            message="Прогресс 50.00%",
            user_id="u1"
        )

    [record] = [r for r in caplog.records if r.name == "flashquiz.tests"]
    entry = record.structured_data.to_dict()
    assert entry["user_id"] == "u1"
    assert entry["extra_data"]["source_function"] == "test_structured_logger_records_caller"
    assert entry["extra_data"]["source_file"] == "test_logging.py"
    assert json.loads(StructuredFormatter().format(record))["message"] == "Прогресс 50.00%"


def test_formatter_wraps_plain_records():
    record = logging.LogRecord("uvicorn", logging.WARNING, __file__, 1, "plain %s", ("text",), None)
    data = json.loads(StructuredFormatter().format(record))
    assert data["message"] == "plain text"
    assert data["section"] == "system"
    assert data["extra_data"]["module"] == "uvicorn"


async def test_publisher_skips_info_entries():
    publisher = RabbitMQLogPublisher()
    entry = StructuredLogEntry(LogLevel.INFO, LogSection.SYSTEM, "startup", "ok")

    with patch.object(publisher, "initialize", AsyncMock()) as initialize:
        assert await publisher.publish_log(entry) is False
    initialize.assert_not_awaited()


async def test_publisher_sends_warning_entries():
    publisher = RabbitMQLogPublisher(exchange_name="logs", routing_key="flashquiz.logs")
    publisher.broker = AsyncMock()
    publisher._initialized = True
    entry = StructuredLogEntry(LogLevel.ERROR, LogSection.DATABASE, "error", "boom")

    assert await publisher.publish_log(entry) is True

    kwargs = publisher.broker.publish.call_args.kwargs
    assert kwargs["exchange"] == "logs"
    assert kwargs["routing_key"] == "flashquiz.logs"
    assert kwargs["message"]["source"] == "flashquiz"
    assert kwargs["message"]["message"] == "boom"


def test_formatter_accepts_unknown_level_names():
    record = logging.LogRecord("uvicorn.error", 5, __file__, 1, "trace message", (), None)
    record.levelname = "TRACE"

    data = json.loads(StructuredFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["message"] == "trace message"
