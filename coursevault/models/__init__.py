"""Database models."""
from coursevault.models.user import User
from coursevault.models.course import Course, Enrollment
from coursevault.models.module import Module, ModuleVersion, Prereq
from coursevault.models.content import Content
from coursevault.models.block import Block, BlockType, ContentBlock, KnowledgePointBlock
from coursevault.models.knowledge_point import KnowledgePoint
from coursevault.models.question import Question, Choice, Explanation, Answer
from coursevault.models.visit import Visit, QuestionOrder
from coursevault.models.point import Point

__all__ = [
    "User",
    "Course",
    "Enrollment",
    "Module",
    "ModuleVersion",
    "Prereq",
    "Content",
    "Block",
    "BlockType",
    "ContentBlock",
    "KnowledgePointBlock",
    "KnowledgePoint",
    "Question",
    "Choice",
    "Explanation",
    "Answer",
    "Visit",
    "QuestionOrder",
    "Point",
]
