"""Student routes: enrollment, visits, answers and points."""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from coursevault.db.sessions import get_db
from coursevault.core.security import get_current_user_id
from coursevault.services.learning_engine import LearningEngine


router = APIRouter(prefix="/student", tags=["Learning"])


class EnrollResponse(BaseModel):
    course_id: int
    enrolled: bool = True


class AnswerRequest(BaseModel):
    choice_id: int


class CompleteResponse(BaseModel):
    module_id: int
    points: Optional[int]


class PointsResponse(BaseModel):
    total: int


@router.post("/courses/{course_id}/enroll", response_model=EnrollResponse, status_code=status.HTTP_201_CREATED)
def enroll(course_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    LearningEngine(db).enroll(user_id, course_id)
    return EnrollResponse(course_id=course_id)


@router.get("/courses/{course_id}/modules")
def module_progress(course_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return LearningEngine(db).module_progress(user_id, course_id)


@router.get("/modules/{module_id}")
def open_module(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Start or resume the module and show the blocks reached so far."""
    return LearningEngine(db).open_module(user_id, module_id)


@router.post("/modules/{module_id}/blocks/{block_index}")
def take_block(module_id: int, block_index: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> Dict[str, Any]:
    return LearningEngine(db).take_block(user_id, module_id, block_index)


@router.post("/modules/{module_id}/blocks/{block_index}/answer")
def answer_question(
    module_id: int,
    block_index: int,
    request: AnswerRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return LearningEngine(db).answer_question(user_id, module_id, block_index, request.choice_id)


@router.post("/modules/{module_id}/complete", response_model=CompleteResponse)
def complete_module(module_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    point = LearningEngine(db).complete_module(user_id, module_id)
    return CompleteResponse(module_id=module_id, points=point.count if point is not None else None)


@router.get("/points", response_model=PointsResponse)
def total_points(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return PointsResponse(total=LearningEngine(db).total_points(user_id))
