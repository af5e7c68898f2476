"""Content model."""
from sqlalchemy import Column, Integer, Text, LargeBinary
from coursevault.db.base import Base


class Content(Base):
    """Content-addressed text blob.

    Rows are never updated. `hash` is the 16-byte BLAKE2b digest of the
    UTF-8 encoded text and carries the uniqueness constraint.
    """

    __tablename__ = "content"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hash = Column(LargeBinary(16), unique=True, nullable=False)
    text = Column(Text, nullable=False)
