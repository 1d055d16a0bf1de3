"""
Quiz grading and XP / badge rules
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from upcora.errors import ValidationError

DEFAULT_QUESTION_POINTS = 10
XP_PER_LEVEL = 100
XP_PER_POINT = 10
SPEED_LEARNER_SECONDS = 60

# (minimum percentage, badge, bonus xp); first match wins
SCORE_BADGES = (
    (100, "Perfect Score", 50),
    (90, "Excellence", 20),
    (75, "Great Job", 10),
)
SPEED_BADGE = ("Speed Learner", 15)


@dataclass
class ScoreResult:
    score: int
    max_score: int
    correct_answers: int
    total_questions: int

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "correctAnswers": self.correct_answers,
            "totalQuestions": self.total_questions,
        }


@dataclass
class Rewards:
    xp_earned: int
    percentage: float
    badges: List[str] = field(default_factory=list)


def _points(question: Mapping[str, Any]) -> int:
    return int(question.get("points") or DEFAULT_QUESTION_POINTS)


def normalize_mapping(answer: Any) -> Dict[str, str]:
    """Accept ``{item: category}`` or the drop-zone shape ``{category: [items]}``."""
    if answer is None:
        return {}
    if not isinstance(answer, Mapping):
        raise ValidationError("Drag-and-drop answers must be an object")
    mapping: Dict[str, str] = {}
    for key, value in answer.items():
        if isinstance(value, (list, tuple)):
            for item in value:
                mapping[str(item)] = str(key)
        else:
            mapping[str(key)] = str(value)
    return mapping


def score_multiple_choice(question: Mapping[str, Any], answer: Any) -> int:
    # Only an exact integer index counts; bool is an int subclass
    if not isinstance(answer, int) or isinstance(answer, bool):
        return 0
    return _points(question) if answer == question.get("answerIndex") else 0


def score_drag_drop(question: Mapping[str, Any], answer: Any) -> int:
    correct = question.get("correctMapping") or {}
    if not correct:
        return 0
    points = _points(question)
    given = normalize_mapping(answer)
    if given == correct:
        return points
    placed = sum(1 for item, category in correct.items() if given.get(item) == category)
    return math.floor(placed / len(correct) * points)


def score_sequencing(question: Mapping[str, Any], answer: Any) -> int:
    order = list(question.get("correctOrder") or [])
    if not order:
        return 0
    if answer is None:
        return 0
    if not isinstance(answer, (list, tuple)):
        raise ValidationError("Sequencing answers must be a list")
    points = _points(question)
    given = [str(a) for a in answer]
    if given == order:
        return points
    in_place = sum(1 for i, item in enumerate(order) if i < len(given) and given[i] == item)
    return math.floor(in_place / len(order) * points)


SCORERS = {
    "multiple-choice": score_multiple_choice,
    "drag-drop": score_drag_drop,
    "sequencing": score_sequencing,
}


def score_answers(questions: Iterable[Mapping[str, Any]], answers: Mapping[str, Any]) -> ScoreResult:
    """Grade answers keyed by question id against the generated quiz."""
    score = max_score = correct = total = 0
    for question in questions:
        total += 1
        points = _points(question)
        max_score += points
        scorer = SCORERS.get(question.get("type") or "multiple-choice", score_multiple_choice)
        earned = scorer(question, answers.get(str(question.get("id"))))
        score += earned
        if earned == points:
            correct += 1
    return ScoreResult(score=score, max_score=max_score, correct_answers=correct, total_questions=total)


def compute_rewards(score: float, max_score: float, time_spent: float) -> Rewards:
    percentage = (score / max_score) * 100
    xp = math.floor(score * XP_PER_POINT)
    badges: List[str] = []

    for threshold, badge, bonus in SCORE_BADGES:
        if percentage >= threshold:
            badges.append(badge)
            xp += bonus
            break

    if time_spent < SPEED_LEARNER_SECONDS:
        badge, bonus = SPEED_BADGE
        badges.append(badge)
        xp += bonus

    return Rewards(xp_earned=xp, percentage=percentage, badges=badges)


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def merge_badges(existing: Optional[Iterable[str]], new: Iterable[str]) -> List[str]:
    merged: List[str] = []
    for badge in list(existing or []) + list(new):
        if badge and badge not in merged:
            merged.append(badge)
    return merged


def round_half_up(value: float) -> int:
    """Round .5 upwards, so 82.5 reports as 83"""
    return math.floor(value + 0.5)
