from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class QuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1, max_length=2000)
    answer_text: str = Field(..., min_length=1, max_length=500)


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(None, min_length=1, max_length=2000)
    answer_text: Optional[str] = Field(None, min_length=1, max_length=500)


def serialize_category(category: dict) -> dict:
    data = {
        "id": str(category["_id"]),
        "name": category["name"],
        "created_by": str(category.get("created_by")) if category.get("created_by") else None,
        "created_at": category["created_at"].isoformat() if category.get("created_at") else None,
    }
    if "question_count" in category:
        data["question_count"] = category["question_count"]
    return data


def serialize_question(question: dict) -> dict:
    data = {
        "id": str(question.get("id") or question["_id"]),
        "question_text": question["question_text"],
        "created_at": question["created_at"].isoformat() if question.get("created_at") else None,
    }
    if "answer_text" in question:
        data["answer_text"] = question["answer_text"]
    return data
