"""Plain-text module export/import.

A module is written as front matter followed by marked sections:

    ---
    title: Intro
    description: First steps
    ---

    [//]: # (content)
    Some text.

    [//]: # (question)
    What is 2 + 2?

    [//]: # (choice correct)
    4

    [//]: # (choice)
    5

    [//]: # (explanation)
    Basic arithmetic.

The markers are markdown comments, so an export still renders as markdown.
"""
import re
from typing import List, Optional, Tuple, Union

from coursevault.core.exceptions import ValidationError
from coursevault.schemas import ModuleDraft, QuestionInput

Piece = Union[str, QuestionInput]


class ModuleFormat:
    """Render and parse the module text format."""

    MARKER_RE = re.compile(r"^\[//\]: # \((content|question|choice correct|choice|explanation)\)\s*$")
    FRONT_MATTER = "---"

    @staticmethod
    def _marker(kind: str) -> str:
        return f"[//]: # ({kind})"

    @staticmethod
    def export(title: str, description: str, pieces: List[Piece]) -> str:
        """Render a module; `pieces` holds content strings and questions in block order."""
        parts = [f"---\ntitle: {title}\ndescription: {description}\n---\n"]
        for piece in pieces:
            if isinstance(piece, QuestionInput):
                parts.append(f"{ModuleFormat._marker('question')}\n{piece.text}\n")
                for idx, choice in enumerate(piece.choices):
                    kind = "choice correct" if idx == piece.correct_choice_index else "choice"
                    parts.append(f"{ModuleFormat._marker(kind)}\n{choice}\n")
                if piece.explanation:
                    parts.append(f"{ModuleFormat._marker('explanation')}\n{piece.explanation}\n")
            else:
                parts.append(f"{ModuleFormat._marker('content')}\n{piece}\n")
        return "\n".join(parts)

    @staticmethod
    def _split_front_matter(lines: List[str]) -> Tuple[str, str, List[str]]:
        idx = 0
        while idx < len(lines) and not lines[idx].strip():
            idx += 1
        if idx >= len(lines) or lines[idx].strip() != ModuleFormat.FRONT_MATTER:
            raise ValidationError("Module text must start with front matter")
        fields = {}
        idx += 1
        while idx < len(lines) and lines[idx].strip() != ModuleFormat.FRONT_MATTER:
            key, sep, value = lines[idx].partition(":")
            if sep:
                fields[key.strip().lower()] = value.strip()
            idx += 1
        if idx >= len(lines):
            raise ValidationError("Front matter is not closed")
        title = fields.get("title", "")
        description = fields.get("description", "")
        if not title or not description:
            raise ValidationError("Front matter needs a title and a description")
        return title, description, lines[idx + 1:]

    @staticmethod
    def _sections(lines: List[str]) -> List[Tuple[str, str]]:
        sections: List[Tuple[str, List[str]]] = []
        for line in lines:
            m = ModuleFormat.MARKER_RE.match(line.strip())
            if m:
                sections.append((m.group(1), []))
            elif sections:
                sections[-1][1].append(line)
            elif line.strip():
                raise ValidationError("Text found before the first section marker")
        return [(kind, "\n".join(body).strip("\n")) for kind, body in sections]

    @staticmethod
    def parse(text: str) -> ModuleDraft:
        """Parse module text into a draft; malformed input raises ValidationError."""
        if not text or not text.strip():
            raise ValidationError("Module text is empty")
        title, description, rest = ModuleFormat._split_front_matter(text.splitlines())

        pieces: List[Piece] = []
        current: Optional[dict] = None

        def close_question():
            if current is None:
                return
            if not current["choices"]:
                raise ValidationError("Each question must be followed by a choice")
            if current["correct"] is None:
                raise ValidationError("Each question needs a correct choice")
            pieces.append(QuestionInput(
                text=current["text"],
                choices=current["choices"],
                correct_choice_index=current["correct"],
                explanation=current["explanation"],
            ))

        for kind, body in ModuleFormat._sections(rest):
            if kind == "content":
                close_question()
                current = None
                pieces.append(body)
            elif kind == "question":
                close_question()
                current = {"text": body, "choices": [], "correct": None, "explanation": ""}
            elif kind in ("choice", "choice correct"):
                if current is None or current["explanation"]:
                    raise ValidationError("Choice found outside a question")
                if kind == "choice correct":
                    if current["correct"] is not None:
                        raise ValidationError("A question can only have one correct choice")
                    current["correct"] = len(current["choices"])
                current["choices"].append(body)
            else:
                if current is None or not current["choices"]:
                    raise ValidationError("Explanation found outside a question")
                current["explanation"] = body
        close_question()
        return ModuleDraft(title=title, description=description, pieces=pieces)
