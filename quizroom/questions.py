from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import quizroom.crud as crud
import quizroom.models as models
import quizroom.schemas as schemas
from quizroom.auth import get_current_user, require_role
from quizroom.database import get_db

router = APIRouter(prefix="/questions", tags=["Questions"])

teacher_only = require_role(models.Role.teacher)


@router.post("", status_code=201)
def create_question(
    body: schemas.QuestionCreate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    question = crud.create_question(db, teacher, body)
    return schemas.envelope(schemas.QuestionOut.model_validate(question))


@router.get("/quiz/{quiz_id}")
def quiz_questions(quiz_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    questions = crud.get_quiz_questions(db, quiz_id)
    return schemas.envelope([schemas.QuestionOut.model_validate(q) for q in questions], count=len(questions))


@router.get("/{question_id}")
def get_question(question_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return schemas.envelope(schemas.QuestionOut.model_validate(crud.get_question(db, question_id)))


@router.put("/{question_id}")
def update_question(
    question_id: int,
    body: schemas.QuestionUpdate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    question = crud.update_question(db, question_id, teacher, body)
    return schemas.envelope(schemas.QuestionOut.model_validate(question))


@router.delete("/{question_id}")
def delete_question(question_id: int, db: Session = Depends(get_db), teacher: models.User = Depends(teacher_only)):
    crud.delete_question(db, question_id, teacher)
    return schemas.envelope(data={})
