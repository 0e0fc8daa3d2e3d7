# flashquiz/quiz/progress.py

from dataclasses import dataclass


@dataclass(frozen=True)
class Progress:
    answered: int
    total: int
    value: float

    @property
    def display(self) -> str:
        return f"{self.value:.2f}%"


def calculate_progress(answered: int, total: int) -> Progress:
    """Процент пройденных вопросов категории; при total == 0 прогресс 0"""
    if answered < 0 or total < 0:
        raise ValueError("answered и total не могут быть отрицательными")

    value = answered / total * 100 if total > 0 else 0.0
    return Progress(answered=answered, total=total, value=value)
