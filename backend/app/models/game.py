# game models — interactive question catalog and submitted answer sets
# a game result is written once per completed session and never edited

from typing import Optional
from pydantic import BaseModel, Field


class GameQuestion(BaseModel):
    game_title: str = Field(..., alias="gameTitle")
    description: str = ""
    game_type: str = Field("multiple", alias="type")
    text: str
    options: list[str]
    category: str

    model_config = {"populate_by_name": True}


class GameAnswer(BaseModel):
    game_title: Optional[str] = Field(None, alias="gameTitle")
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    timestamp: str = Field(..., min_length=1)

    model_config = {"populate_by_name": True}


class GameResultCreate(BaseModel):
    child_id: str = Field(..., alias="childId", min_length=1)
    answers: list[GameAnswer]

    model_config = {"populate_by_name": True}


class GameResultResponse(BaseModel):
    id: str
    child_id: str = Field(..., alias="childId")
    request_id: str = Field("", alias="requestId")
    psychologist_id: Optional[str] = Field(None, alias="psychologistId")
    child_name: str = Field("", alias="childName")
    answers: list[GameAnswer] = Field(default_factory=list)
    completed_at: str = Field("", alias="completedAt")

    model_config = {"populate_by_name": True}


def doc_to_game_result(doc: dict) -> GameResultResponse:
    """convert a game_results document to response model"""
    return GameResultResponse(
        id=doc.get("result_id", ""),
        childId=doc.get("child_id", ""),
        requestId=doc.get("request_id", ""),
        psychologistId=doc.get("psychologist_id"),
        childName=doc.get("child_name", ""),
        answers=[
            GameAnswer(
                gameTitle=a.get("game_title"),
                question=a.get("question", ""),
                answer=a.get("answer", ""),
                category=a.get("category", ""),
                timestamp=a.get("timestamp", ""),
            )
            for a in doc.get("answers", [])
        ],
        completedAt=doc.get("completed_at", ""),
    )
