# flashquiz/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_422_UNPROCESSABLE_ENTITY,
)

from flashquiz.logging import (
    setup_application_logging,
    get_logger,
    LogSection,
    LogSubsection,
    close_all_rabbitmq_connections,
)
from flashquiz.core.config import settings
from flashquiz.core.errors import QuizError
from flashquiz.core.redis_client import auth_redis_client
from flashquiz.core.response import error
from flashquiz.routers import (
    authentication,
    quiz_router,
    category_router,
    question_router,
    admin_router,
    user_router,
)
from flashquiz.db.database import db
from flashquiz.db.indexes import create_database_indexes
from flashquiz.notifications.inactivity import inactivity_sweep

# Инициализация структурированной системы логирования
setup_application_logging()
logger = get_logger("main")

app = FastAPI(
    title="FlashQuiz API",
    description="Викторины по категориям: вопросы, проверка ответов, прогресс",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept",
    ],
)

# Подключаем роутеры
app.include_router(authentication.router, prefix="/auth", tags=["Authentication"])
app.include_router(quiz_router.router, prefix="/quiz", tags=["Quiz"])
app.include_router(category_router.router, prefix="/categories", tags=["Categories"])
app.include_router(question_router.router, prefix="/questions", tags=["Questions"])
app.include_router(admin_router.router, prefix="/admin", tags=["Admin"])
app.include_router(user_router.router, prefix="/users", tags=["Users"])

# Дискриминатор для ошибок, поднятых через HTTPException
HTTP_ERROR_KINDS = {
    HTTP_401_UNAUTHORIZED: "unauthorized",
    HTTP_403_FORBIDDEN: "forbidden",
    HTTP_404_NOT_FOUND: "not_found",
    HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    log_message = (
        f"{type(exc).__name__} ({exc.kind}) для пути {request.url.path} "
        f"(метод: {request.method}) - {exc.message}"
    )
    if exc.status_code >= 500:
        logger.error(section=LogSection.API, subsection=LogSubsection.API.ERROR, message=log_message)
    else:
        logger.info(section=LogSection.API, subsection=LogSubsection.API.REQUEST, message=log_message)

    return error(code=exc.status_code, message=exc.message, details=exc.to_details())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    path = request.url.path
    code = exc.status_code

    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.ERROR,
        message=f"HTTP исключение {code} для пути {path} (метод: {request.method}) - {exc.detail}"
    )

    kind = HTTP_ERROR_KINDS.get(code, "http_error")

    # detail - словарь с кастомным message
    if isinstance(exc.detail, dict):
        details = {"kind": kind, **exc.detail}
        details.setdefault("path", path)
        return error(code=code, message=details.get("message", "Ошибка запроса"), details=details)

    # Стандартные коды
    if code == HTTP_405_METHOD_NOT_ALLOWED:
        return error(code, "Метод не разрешён", details={"kind": kind, "method": request.method, "path": path})
    if code == HTTP_404_NOT_FOUND and exc.detail in (None, "Not Found"):
        return error(code, "Страница не найдена", details={"kind": kind, "path": path})

    return error(code=code, message=str(exc.detail or "Ошибка запроса"), details={"kind": kind, "path": path})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_list = []
    for err in exc.errors():
        field = err.get("loc", ["неизвестное поле"])[-1]
        message = err.get("msg", "Некорректное значение")
        # Удаляем префикс "Value error, " если он присутствует
        prefix = "Value error, "
        if message.startswith(prefix):
            message = message[len(prefix):]
        error_list.append({"field": str(field), "message": message})

    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.VALIDATION,
        message=f"Ошибка валидации запроса для пути {request.url.path} (метод: {request.method})"
    )

    formatted = "; ".join(f"Поле «{item['field']}»: {item['message']}" for item in error_list)
    return error(
        code=HTTP_422_UNPROCESSABLE_ENTITY,
        message=formatted,
        details={"kind": "request_validation", "errors": error_list}
    )


@app.on_event("startup")
async def startup_event():
    """Запускается при старте приложения"""
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.STARTUP,
        message="Запуск приложения FlashQuiz API"
    )

    try:
        await create_database_indexes(db)
    except Exception as e:
        # Ошибку уже записал create_database_indexes, приложение продолжает работу
        logger.error(
            section=LogSection.SYSTEM,
            subsection=LogSubsection.SYSTEM.STARTUP,
            message=f"Ошибка при создании индексов базы данных: {str(e)}"
        )

    try:
        await auth_redis_client.connect()
    except Exception as e:
        logger.error(
            section=LogSection.SYSTEM,
            subsection=LogSubsection.SYSTEM.STARTUP,
            message=f"Redis недоступен, отзыв токенов не будет работать до восстановления: {str(e)}"
        )

    if settings.INACTIVITY_SWEEP_ENABLED:
        inactivity_sweep.start(db, settings.INACTIVITY_SWEEP_SECONDS, settings.INACTIVITY_DAYS)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.SHUTDOWN,
        message="Завершение работы приложения FlashQuiz API"
    )

    await inactivity_sweep.stop()

    await auth_redis_client.disconnect()

    try:
        await close_all_rabbitmq_connections()
    except Exception as e:
        logger.error(
            section=LogSection.SYSTEM,
            subsection=LogSubsection.SYSTEM.SHUTDOWN,
            message=f"Ошибка закрытия RabbitMQ соединений: {str(e)}"
        )

    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.SHUTDOWN,
        message="Приложение FlashQuiz API успешно завершено"
    )
