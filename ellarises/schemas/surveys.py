# ellarises/schemas/surveys.py
from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

from pydantic import Field

from ellarises.schemas.forms import FormModel

MAX_QUESTIONS = 20


class SurveyForm(FormModel):
    survey_satisfaction_score: int = Field(..., ge=1, le=5)
    survey_usefulness_score: int = Field(..., ge=1, le=5)
    survey_instructor_score: int = Field(..., ge=1, le=5)
    survey_recommendation_score: int = Field(..., ge=0, le=10)
    survey_comments: Optional[str] = Field(None, max_length=5000)


def question_pairs(data: Mapping[str, str]) -> List[Tuple[str, Optional[str]]]:
    """Collect question_N / answer_N pairs; questions left blank are skipped."""
    pairs: List[Tuple[str, Optional[str]]] = []
    for n in range(1, MAX_QUESTIONS + 1):
        question = (data.get(f"question_{n}") or "").strip()
        if not question:
            continue
        answer = (data.get(f"answer_{n}") or "").strip() or None
        pairs.append((question[:500], answer))
    return pairs
