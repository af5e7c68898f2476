"""Teacher routes: courses, modules, knowledge points."""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from coursevault.db.sessions import get_db
from coursevault.core.security import get_current_user_id
from coursevault.schemas import BlockInput, QuestionInput
from coursevault.services.authoring import AuthoringService


router = APIRouter(prefix="/teacher", tags=["Authoring"])


class CreateCourseRequest(BaseModel):
    title: str
    description: str
    module_titles: List[str] = Field(default_factory=list)
    module_descriptions: List[str] = Field(default_factory=list)
    public: bool = True


class CourseResponse(BaseModel):
    id: int
    title: str
    description: str
    public: bool
    module_ids: List[int]


class ModuleRequest(BaseModel):
    title: str
    description: str


class EditModuleRequest(BaseModel):
    title: str
    description: str
    blocks: List[BlockInput] = Field(default_factory=list)


class VersionResponse(BaseModel):
    module_id: int
    version_number: int
    title: str
    description: str


class KnowledgePointRequest(BaseModel):
    name: str
    questions: List[QuestionInput]


class KnowledgePointResponse(BaseModel):
    id: int
    course_id: int
    name: str


class PrereqRequest(BaseModel):
    prereq_module_ids: List[int] = Field(default_factory=list)


class ImportRequest(BaseModel):
    text: str


class ReclaimResponse(BaseModel):
    reclaimed_content_ids: List[int]


def _course_response(course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        public=course.public,
        module_ids=[m.id for m in course.modules],
    )


def _version_response(version) -> VersionResponse:
    return VersionResponse(
        module_id=version.module_id,
        version_number=version.version_number,
        title=version.title,
        description=version.description,
    )


# Courses

@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(request: CreateCourseRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    course = AuthoringService(db).create_course(
        user_id,
        request.title,
        request.description,
        request.module_titles,
        request.module_descriptions,
        public=request.public,
    )
    return _course_response(course)


@router.get("/courses", response_model=List[CourseResponse])
def list_courses(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return [_course_response(c) for c in AuthoringService(db).list_courses(user_id)]


@router.delete("/courses/{course_id}", response_model=ReclaimResponse)
def delete_course(course_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return ReclaimResponse(reclaimed_content_ids=AuthoringService(db).delete_course(user_id, course_id))


# Modules

@router.post("/courses/{course_id}/modules", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
def add_module(course_id: int, request: ModuleRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    service = AuthoringService(db)
    module = service.add_module(user_id, course_id, request.title, request.description)
    return _version_response(service.versions.latest_version(module.id))


@router.get("/modules/{module_id}")
def get_module(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> Dict[str, Any]:
    return AuthoringService(db).get_module_for_edit(user_id, module_id)


@router.put("/modules/{module_id}", response_model=VersionResponse)
def edit_module(module_id: int, request: EditModuleRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Save the module as a new version."""
    version = AuthoringService(db).edit_module(user_id, module_id, request.title, request.description, request.blocks)
    return _version_response(version)


@router.patch("/modules/{module_id}", response_model=VersionResponse)
def update_module_metadata(module_id: int, request: ModuleRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    version = AuthoringService(db).update_module_metadata(user_id, module_id, request.title, request.description)
    return _version_response(version)


@router.delete("/modules/{module_id}", response_model=ReclaimResponse)
def delete_module(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return ReclaimResponse(reclaimed_content_ids=AuthoringService(db).delete_module(user_id, module_id))


@router.put("/modules/{module_id}/prereqs")
def set_prereqs(module_id: int, request: PrereqRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    prereqs = AuthoringService(db).set_prereqs(user_id, module_id, request.prereq_module_ids)
    return {"module_id": module_id, "prereq_module_ids": prereqs}


@router.post("/modules/{module_id}/sweep")
def sweep_versions(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    deleted = AuthoringService(db).sweep_unpinned_versions(user_id, module_id)
    return {"module_id": module_id, "deleted_versions": deleted}


@router.get("/modules/{module_id}/export", response_class=PlainTextResponse)
def export_module(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return AuthoringService(db).export_module(user_id, module_id)


@router.post("/modules/{module_id}/import", response_model=VersionResponse)
def import_module(module_id: int, request: ImportRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    version = AuthoringService(db).import_module(user_id, module_id, request.text)
    return _version_response(version)


# Knowledge points

@router.get("/courses/{course_id}/knowledge-points", response_model=List[KnowledgePointResponse])
def list_knowledge_points(course_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return [
        KnowledgePointResponse(id=kp.id, course_id=kp.course_id, name=kp.name)
        for kp in AuthoringService(db).list_knowledge_points(user_id, course_id)
    ]


@router.post("/courses/{course_id}/knowledge-points", response_model=KnowledgePointResponse, status_code=status.HTTP_201_CREATED)
def create_knowledge_point(course_id: int, request: KnowledgePointRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    kp = AuthoringService(db).create_knowledge_point(user_id, course_id, request.name, request.questions)
    return KnowledgePointResponse(id=kp.id, course_id=kp.course_id, name=kp.name)


@router.get("/courses/{course_id}/knowledge-points/{kp_id}")
def get_knowledge_point(course_id: int, kp_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> Dict[str, Any]:
    return AuthoringService(db).get_knowledge_point_for_edit(user_id, course_id, kp_id)


@router.put("/courses/{course_id}/knowledge-points/{kp_id}", response_model=KnowledgePointResponse)
def edit_knowledge_point(course_id: int, kp_id: int, request: KnowledgePointRequest, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    kp = AuthoringService(db).edit_knowledge_point(user_id, course_id, kp_id, request.name, request.questions)
    return KnowledgePointResponse(id=kp.id, course_id=kp.course_id, name=kp.name)


@router.delete("/courses/{course_id}/knowledge-points/{kp_id}", response_model=ReclaimResponse)
def delete_knowledge_point(course_id: int, kp_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return ReclaimResponse(reclaimed_content_ids=AuthoringService(db).delete_knowledge_point(user_id, course_id, kp_id))
