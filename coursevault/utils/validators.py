"""Input validation for authoring operations.

Every check raises ValidationError before anything is written.
"""
from typing import Sequence

from coursevault.core.config import settings
from coursevault.core.exceptions import ValidationError
from coursevault.models import BlockType
from coursevault.schemas import BlockInput, QuestionInput


def _require_text(value, what: str, limit: int) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{what} is required")
    if len(value) > limit:
        raise ValidationError(f"{what} exceeds {limit} characters")


def _single_line(value: str, what: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValidationError(f"{what} must be a single line")


def validate_title(title: str) -> None:
    _require_text(title, "Title", settings.MAX_TITLE_LENGTH)
    _single_line(title, "Title")


def validate_description(description: str) -> None:
    _require_text(description, "Description", settings.MAX_DESCRIPTION_LENGTH)
    _single_line(description, "Description")


def validate_metadata(title: str, description: str) -> None:
    validate_title(title)
    validate_description(description)


def validate_blocks(blocks: Sequence[BlockInput]) -> None:
    if len(blocks) > settings.MAX_BLOCKS:
        raise ValidationError(f"A module may have at most {settings.MAX_BLOCKS} blocks")
    for idx, block in enumerate(blocks):
        if block.type == BlockType.CONTENT:
            _require_text(block.text, f"Content of block {idx}", settings.MAX_CONTENT_LENGTH)
        elif block.type == BlockType.KNOWLEDGE_POINT:
            if block.knowledge_point_id is None:
                raise ValidationError(f"Block {idx} is missing a knowledge point")
        else:
            raise ValidationError(f"Block {idx} has unknown type {block.type!r}")


def validate_question(question: QuestionInput, position: int = 0) -> None:
    _require_text(question.text, f"Question {position}", settings.MAX_QUESTION_LENGTH)
    if not question.choices:
        raise ValidationError(f"Question {position} needs at least one choice")
    if len(question.choices) > settings.MAX_CHOICES:
        raise ValidationError(f"Question {position} may have at most {settings.MAX_CHOICES} choices")
    for choice in question.choices:
        _require_text(choice, f"Choice of question {position}", settings.MAX_CHOICE_LENGTH)
    if not 0 <= question.correct_choice_index < len(question.choices):
        raise ValidationError(f"Question {position} has no valid correct choice")
    if question.explanation and len(question.explanation) > settings.MAX_CONTENT_LENGTH:
        raise ValidationError(f"Explanation of question {position} exceeds {settings.MAX_CONTENT_LENGTH} characters")


def validate_knowledge_point(name: str, questions: Sequence[QuestionInput]) -> None:
    _require_text(name, "Knowledge point name", settings.MAX_TITLE_LENGTH)
    if not questions:
        raise ValidationError("A knowledge point needs at least one question")
    if len(questions) > settings.MAX_QUESTIONS:
        raise ValidationError(f"A knowledge point may have at most {settings.MAX_QUESTIONS} questions")
    for position, question in enumerate(questions):
        validate_question(question, position)


def validate_course(title: str, description: str, module_titles: Sequence[str], module_descriptions: Sequence[str]) -> None:
    validate_metadata(title, description)
    if len(module_titles) != len(module_descriptions):
        raise ValidationError("Module titles and descriptions must have the same length")
    for module_title, module_description in zip(module_titles, module_descriptions):
        validate_metadata(module_title, module_description)
