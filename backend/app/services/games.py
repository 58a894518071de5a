# interactive game catalog and per-session progress
# a GameSession holds one child's in-progress answers; nothing here is module-level mutable state

import logging
from datetime import datetime, timezone
from typing import Optional

from app.errors import PreconditionFailedError, ValidationError

logger = logging.getLogger(__name__)

GAME_CATALOG: tuple[dict, ...] = (
    {
        "game_title": "Color Preferences",
        "description": "Which colors do you like the most?",
        "type": "multiple",
        "text": "Which color makes you feel happiest?",
        "options": ["Red", "Blue", "Green", "Yellow", "Purple"],
        "category": "emotional",
    },
    {
        "game_title": "Activity Choices",
        "description": "What activities do you enjoy?",
        "type": "multiple",
        "text": "What would you prefer to do in your free time?",
        "options": ["Read books", "Play sports", "Draw/Paint", "Build things", "Play music"],
        "category": "interests",
    },
    {
        "game_title": "Problem Solving",
        "description": "Let's see how you think!",
        "type": "logic",
        "text": "If you have 5 apples and give away 2, how many do you have left?",
        "options": ["2", "3", "4", "5"],
        "category": "logical",
    },
    {
        "game_title": "Social Situations",
        "description": "How do you interact with others?",
        "type": "social",
        "text": "When meeting new people, you prefer to:",
        "options": [
            "Talk to them right away",
            "Wait for them to talk first",
            "Observe them quietly",
            "Ask a friend to introduce you",
        ],
        "category": "social",
    },
    {
        "game_title": "Learning Styles",
        "description": "How do you like to learn new things?",
        "type": "learning",
        "text": "When learning something new, what helps you most?",
        "options": [
            "Seeing pictures or videos",
            "Listening to explanations",
            "Doing hands-on activities",
            "Reading about it",
        ],
        "category": "learning",
    },
)


def validate_answers(answers: list[dict]) -> list[dict]:
    """check a submitted answer set covers the whole catalog; returns normalized copies"""
    if not answers:
        raise ValidationError("At least one answer is required")

    if len(answers) != len(GAME_CATALOG):
        raise ValidationError(f"All {len(GAME_CATALOG)} questions must be answered")

    normalized = []
    for i, raw in enumerate(answers):
        entry = {
            "game_title": raw.get("game_title"),
            "question": (raw.get("question") or "").strip(),
            "answer": (raw.get("answer") or "").strip(),
            "category": (raw.get("category") or "").strip(),
            "timestamp": raw.get("timestamp") or "",
        }
        for field in ("question", "answer", "category", "timestamp"):
            if not entry[field]:
                raise ValidationError(f"Answer {i + 1} is missing '{field}'")
        normalized.append(entry)
    return normalized


class GameSession:
    """one child's run through the catalog, with the current position and chosen answers"""

    def __init__(self, child_id: str, catalog: tuple[dict, ...] = GAME_CATALOG):
        self.child_id = child_id
        self.catalog = catalog
        self.current = 0
        self._answers: list[Optional[dict]] = [None] * len(catalog)
        self.finished = False

    @property
    def question(self) -> dict:
        return self.catalog[self.current]

    @property
    def progress(self) -> float:
        """percentage of the catalog reached, counting the current question"""
        return round((self.current + 1) / len(self.catalog) * 100, 1)

    @property
    def is_last(self) -> bool:
        return self.current == len(self.catalog) - 1

    def select_answer(self, option: str) -> dict:
        if self.finished:
            raise PreconditionFailedError("This session is already finished")
        game = self.question
        if option not in game["options"]:
            raise ValidationError(f"'{option}' is not an option for '{game['game_title']}'")
        answer = {
            "game_title": game["game_title"],
            "question": game["text"],
            "answer": option,
            "category": game["category"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self._answers[self.current] = answer
        return answer

    def next(self) -> bool:
        """advance; returns true once the final question has been answered"""
        if self._answers[self.current] is None:
            raise ValidationError("Please select an answer first.")
        if self.is_last:
            self.finished = True
            return True
        self.current += 1
        return False

    def previous(self):
        if self.current > 0:
            self.current -= 1

    def answers(self) -> list[dict]:
        if not self.finished:
            raise PreconditionFailedError("Finish every question before submitting")
        return [a for a in self._answers if a is not None]
