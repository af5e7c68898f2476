"""Input shapes shared by the authoring services and the HTTP layer."""
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from coursevault.models import BlockType


class BlockInput(BaseModel):
    """One block of a module edit: either content text or a knowledge point."""

    type: BlockType
    text: Optional[str] = None
    knowledge_point_id: Optional[int] = None


class QuestionInput(BaseModel):
    text: str
    choices: List[str] = Field(default_factory=list)
    correct_choice_index: int = 0
    explanation: Optional[str] = ""


class ModuleDraft(BaseModel):
    """A parsed module export: metadata plus an ordered list of pieces.

    Each piece is either a content string or a question.
    """

    title: str
    description: str
    pieces: List[Union[str, QuestionInput]] = Field(default_factory=list)
