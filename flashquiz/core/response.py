# flashquiz/core/response.py

from fastapi.responses import JSONResponse
from datetime import datetime
import uuid


def make_meta(pagination=None):
    return {
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "trace_id": str(uuid.uuid4()),
        "pagination": pagination
    }


def make_pagination(page: int, limit: int, total: int) -> dict:
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages
    }


def success(data=None, message="Операция выполнена успешно", pagination=None, status_code=200):
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok",
            "message": message,
            "data": data,
            "meta": make_meta(pagination)
        }
    )


def error(code=400, message="Ошибка", details=None):
    return JSONResponse(
        status_code=code,
        content={
            "status": "error",
            "code": code,
            "message": message,
            "details": details,
            "meta": make_meta()
        }
    )
