"""Factories shared by the test modules."""
from coursevault.models import BlockType, Content, User
from coursevault.schemas import BlockInput, QuestionInput


class FixedChoice:
    """Deterministic stand-in for the allocator's random source."""

    def __init__(self, index: int = 0):
        self.index = index
        self.calls = 0

    def choice(self, seq):
        self.calls += 1
        return seq[self.index % len(seq)]


def make_user(db, username: str) -> User:
    user = User(username=username)
    db.add(user)
    db.commit()
    return user


def content_block(text: str) -> BlockInput:
    return BlockInput(type=BlockType.CONTENT, text=text)


def kp_block(knowledge_point_id: int) -> BlockInput:
    return BlockInput(type=BlockType.KNOWLEDGE_POINT, knowledge_point_id=knowledge_point_id)


def question(text: str, choices=("right", "wrong"), correct: int = 0, explanation: str = "") -> QuestionInput:
    return QuestionInput(text=text, choices=list(choices), correct_choice_index=correct, explanation=explanation)


def content_texts(db) -> list:
    return sorted(c.text for c in db.query(Content).all())
