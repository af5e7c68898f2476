"""Authoring service.

Teacher-side operations: courses, module edits (new versions), knowledge
points, prerequisites and text import/export. Each public method is one
transaction; inputs are validated before anything is written.
"""
from typing import Any, Dict, List, Sequence
import logging

from sqlalchemy.orm import Session

from coursevault.core.config import settings
from coursevault.core.exceptions import IntegrityViolation, NotAuthorizedError, NotFoundError
from coursevault.db.sessions import transaction
from coursevault.models import BlockType, Course, KnowledgePoint, Module, ModuleVersion
from coursevault.schemas import BlockInput, QuestionInput
from coursevault.services.content_store import ContentStore
from coursevault.services.module_versions import ModuleVersionManager
from coursevault.services.prerequisites import PrerequisiteService
from coursevault.services.question_bank import QuestionBank
from coursevault.utils import validators
from coursevault.utils.module_format import ModuleFormat

logger = logging.getLogger(__name__)


class AuthoringService:
    """Course authoring for the owning teacher.

    Usage:
        authoring = AuthoringService(db)
        course = authoring.create_course(owner_id, "Algebra", "Basics", ["Intro"], ["Start here"])
    """

    def __init__(self, db: Session):
        self.db = db
        self.content = ContentStore(db)
        self.versions = ModuleVersionManager(db, self.content)
        self.bank = QuestionBank(db, self.content)
        self.prereqs = PrerequisiteService(db)

    # Ownership

    def get_owned_course(self, owner_id: int, course_id: int) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")
        if course.user_id != owner_id:
            logger.warning("User %s denied access to course %s", owner_id, course_id)
            raise NotAuthorizedError("You do not own this course")
        return course

    def get_owned_module(self, owner_id: int, module_id: int) -> Module:
        module = self.versions.get_module(module_id)
        self.get_owned_course(owner_id, module.course_id)
        return module

    def list_courses(self, owner_id: int) -> List[Course]:
        return self.db.query(Course).filter(Course.user_id == owner_id).order_by(Course.id).all()

    # Courses

    def create_course(
        self,
        owner_id: int,
        title: str,
        description: str,
        module_titles: Sequence[str] = (),
        module_descriptions: Sequence[str] = (),
        public: bool = True,
    ) -> Course:
        """Create a course and, per module, an empty version 1."""
        validators.validate_course(title, description, module_titles, module_descriptions)
        with transaction(self.db):
            course = Course(user_id=owner_id, title=title, description=description, public=public)
            self.db.add(course)
            self.db.flush()
            for module_title, module_description in zip(module_titles, module_descriptions):
                self.versions.create_module(course.id, module_title, module_description)
            logger.info("User %s created course %s with %d modules", owner_id, course.id, len(module_titles))
        return course

    def add_module(self, owner_id: int, course_id: int, title: str, description: str) -> Module:
        validators.validate_metadata(title, description)
        with transaction(self.db):
            course = self.get_owned_course(owner_id, course_id)
            module = self.versions.create_module(course.id, title, description)
        return module

    def delete_course(self, owner_id: int, course_id: int) -> List[int]:
        """Delete a course with all its modules and knowledge points.

        Content owned only by the course is reclaimed.
        """
        with transaction(self.db):
            course = self.get_owned_course(owner_id, course_id)
            modules = self.db.query(Module).filter(Module.course_id == course.id).all()
            reclaimed: List[int] = []
            for module in modules:
                reclaimed.extend(self.versions.delete_module(module))
            for knowledge_point in self.bank.knowledge_points_for_course(course.id):
                reclaimed.extend(self.bank.delete_knowledge_point(knowledge_point))
            self.db.delete(course)
            self.db.flush()
            logger.info("Deleted course %s", course_id)
        return reclaimed

    # Modules

    def _check_knowledge_points(self, course_id: int, blocks: Sequence[BlockInput]) -> None:
        for block in blocks:
            if block.type == BlockType.KNOWLEDGE_POINT:
                self.bank.get_knowledge_point(course_id, block.knowledge_point_id)

    def _edit_module(self, module: Module, title: str, description: str, blocks: Sequence[BlockInput]) -> ModuleVersion:
        self._check_knowledge_points(module.course_id, blocks)
        version = self.versions.create_version(module.id, title, description)
        self.versions.replace_blocks(version, blocks)
        # only the immediately preceding version is considered here
        self.versions.delete_version_if_unpinned(module.id, version.version_number - 1)
        return version

    def edit_module(
        self,
        owner_id: int,
        module_id: int,
        title: str,
        description: str,
        blocks: Sequence[BlockInput],
    ) -> ModuleVersion:
        """Write a new version with `blocks` and drop the previous one if unpinned."""
        validators.validate_metadata(title, description)
        validators.validate_blocks(blocks)
        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            version = self._edit_module(module, title, description, blocks)
        return version

    def update_module_metadata(self, owner_id: int, module_id: int, title: str, description: str) -> ModuleVersion:
        validators.validate_metadata(title, description)
        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            version = self.versions.update_metadata(module.id, title, description)
        return version

    def delete_module(self, owner_id: int, module_id: int) -> List[int]:
        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            reclaimed = self.versions.delete_module(module)
        return reclaimed

    def sweep_unpinned_versions(self, owner_id: int, module_id: int) -> List[int]:
        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            deleted = self.versions.sweep_unpinned_versions(module.id)
        return deleted

    def set_prereqs(self, owner_id: int, module_id: int, prereq_module_ids: Sequence[int]) -> List[int]:
        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            prereqs = self.prereqs.set_prereqs(module, prereq_module_ids)
        return prereqs

    def get_module_for_edit(self, owner_id: int, module_id: int) -> Dict[str, Any]:
        """Latest version of a module as the editor shows it."""
        module = self.get_owned_module(owner_id, module_id)
        version = self.versions.latest_version(module.id)
        blocks = []
        for block in version.blocks:
            if block.block_type == BlockType.CONTENT.value:
                blocks.append({"type": block.block_type, "text": block.content_block.content.text})
            else:
                knowledge_point = block.knowledge_point_block.knowledge_point
                blocks.append({
                    "type": block.block_type,
                    "knowledge_point_id": knowledge_point.id,
                    "knowledge_point_name": knowledge_point.name,
                })
        return {
            "module_id": module.id,
            "course_id": module.course_id,
            "version_number": version.version_number,
            "title": version.title,
            "description": version.description,
            "blocks": blocks,
            "prereq_module_ids": self.prereqs.prereq_ids(module.id),
        }

    # Import / export

    def export_module(self, owner_id: int, module_id: int) -> str:
        module = self.get_owned_module(owner_id, module_id)
        version = self.versions.latest_version(module.id)
        pieces: List[Any] = []
        for block in version.blocks:
            if block.block_type == BlockType.CONTENT.value:
                pieces.append(block.content_block.content.text)
                continue
            knowledge_point_id = block.knowledge_point_block.knowledge_point_id
            questions = self.bank.questions_for(knowledge_point_id, latest_only=True)
            if not questions:
                raise NotFoundError(f"Knowledge point {knowledge_point_id} has no questions")
            pieces.append(QuestionInput(**self.bank.question_input(questions[0])))
        return ModuleFormat.export(version.title, version.description, pieces)

    def import_module(self, owner_id: int, module_id: int, text: str) -> ModuleVersion:
        """Replace a module's blocks with parsed text.

        Every question becomes a new knowledge point named after its first line.
        """
        draft = ModuleFormat.parse(text)
        validators.validate_metadata(draft.title, draft.description)
        shapes = []
        for position, piece in enumerate(draft.pieces):
            if isinstance(piece, QuestionInput):
                validators.validate_question(piece, position)
                shapes.append(BlockInput(type=BlockType.KNOWLEDGE_POINT, knowledge_point_id=0))
            else:
                shapes.append(BlockInput(type=BlockType.CONTENT, text=piece))
        validators.validate_blocks(shapes)

        with transaction(self.db):
            module = self.get_owned_module(owner_id, module_id)
            blocks: List[BlockInput] = []
            for piece in draft.pieces:
                if isinstance(piece, QuestionInput):
                    name = piece.text.strip().splitlines()[0][:settings.MAX_TITLE_LENGTH]
                    knowledge_point = self.bank.create_knowledge_point(module.course_id, name)
                    self._insert_questions(knowledge_point, [piece])
                    blocks.append(BlockInput(type=BlockType.KNOWLEDGE_POINT, knowledge_point_id=knowledge_point.id))
                else:
                    blocks.append(BlockInput(type=BlockType.CONTENT, text=piece))
            version = self._edit_module(module, draft.title, draft.description, blocks)
            logger.info("Imported module %s as version %s", module.id, version.version_number)
        return version

    # Knowledge points

    def _insert_questions(self, knowledge_point: KnowledgePoint, questions: Sequence[QuestionInput]) -> None:
        for question in questions:
            self.bank.insert_question(
                knowledge_point.id,
                question.text,
                question.choices,
                question.correct_choice_index,
                question.explanation,
            )

    def create_knowledge_point(self, owner_id: int, course_id: int, name: str, questions: Sequence[QuestionInput]) -> KnowledgePoint:
        validators.validate_knowledge_point(name, questions)
        with transaction(self.db):
            course = self.get_owned_course(owner_id, course_id)
            knowledge_point = self.bank.create_knowledge_point(course.id, name)
            self._insert_questions(knowledge_point, questions)
            logger.info("Created knowledge point %s with %d questions", knowledge_point.id, len(questions))
        return knowledge_point

    def edit_knowledge_point(
        self,
        owner_id: int,
        course_id: int,
        knowledge_point_id: int,
        name: str,
        questions: Sequence[QuestionInput],
    ) -> KnowledgePoint:
        """Rename and replace the question generation.

        Unanswered, never-shown questions of the current generation are
        deleted; the rest are retired so existing orders and answers still
        resolve.
        """
        validators.validate_knowledge_point(name, questions)
        with transaction(self.db):
            course = self.get_owned_course(owner_id, course_id)
            knowledge_point = self.bank.get_knowledge_point(course.id, knowledge_point_id)
            knowledge_point.name = name
            self.bank.delete_unanswered_questions(knowledge_point.id)
            self.bank.mark_questions_old(knowledge_point.id)
            self._insert_questions(knowledge_point, questions)
        return knowledge_point

    def delete_knowledge_point(self, owner_id: int, course_id: int, knowledge_point_id: int) -> List[int]:
        with transaction(self.db):
            course = self.get_owned_course(owner_id, course_id)
            knowledge_point = self.bank.get_knowledge_point(course.id, knowledge_point_id)
            if self.bank.is_referenced_by_blocks(knowledge_point.id):
                raise IntegrityViolation("Knowledge point is used by a module")
            reclaimed = self.bank.delete_knowledge_point(knowledge_point)
        return reclaimed

    def get_knowledge_point_for_edit(self, owner_id: int, course_id: int, knowledge_point_id: int) -> Dict[str, Any]:
        course = self.get_owned_course(owner_id, course_id)
        knowledge_point = self.bank.get_knowledge_point(course.id, knowledge_point_id)
        return {
            "id": knowledge_point.id,
            "course_id": knowledge_point.course_id,
            "name": knowledge_point.name,
            "questions": [
                self.bank.question_input(q)
                for q in self.bank.questions_for(knowledge_point.id, latest_only=True)
            ],
        }

    def list_knowledge_points(self, owner_id: int, course_id: int) -> List[KnowledgePoint]:
        course = self.get_owned_course(owner_id, course_id)
        return self.bank.knowledge_points_for_course(course.id)
