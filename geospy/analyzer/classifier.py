"""
Answer Format Classifier

Tags an AI answer as step_by_step, bullet_list, definition or paragraph.
Rules are checked in order and the first match wins, so list structure
always beats the length heuristic (a short bulleted list is a bullet_list).
"""

import re

from geospy.database.models import AnswerFormat

STEP_PATTERN = re.compile(r"^(?:\d+[.)]|Step \d+)", re.MULTILINE)
BULLET_PATTERN = re.compile(r"^[*\-•]", re.MULTILINE)

DEFINITION_MAX_CHARS = 200


def classify_answer_format(answer: str) -> AnswerFormat:
    """
    Classify the shape of an answer.

    Args:
        answer: Raw answer text

    Returns:
        Exactly one AnswerFormat
    """
    answer = answer or ""

    if STEP_PATTERN.search(answer):
        return AnswerFormat.STEP_BY_STEP

    if BULLET_PATTERN.search(answer):
        return AnswerFormat.BULLET_LIST

    if len(answer) < DEFINITION_MAX_CHARS:
        return AnswerFormat.DEFINITION

    return AnswerFormat.PARAGRAPH
