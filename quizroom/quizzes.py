from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import quizroom.crud as crud
import quizroom.models as models
import quizroom.schemas as schemas
from quizroom.auth import get_current_user, require_role
from quizroom.database import get_db

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])

teacher_only = require_role(models.Role.teacher)
student_only = require_role(models.Role.student)


def _out(quiz: models.Quiz) -> schemas.QuizOut:
    return schemas.QuizOut.model_validate(quiz)


@router.post("", status_code=201)
def create_quiz(
    body: schemas.QuizCreate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    return schemas.envelope(_out(crud.create_quiz(db, teacher, body)))


@router.get("/teacher")
def teacher_quizzes(db: Session = Depends(get_db), teacher: models.User = Depends(teacher_only)):
    quizzes = crud.get_teacher_quizzes(db, teacher)
    return schemas.envelope([_out(q) for q in quizzes], count=len(quizzes))


@router.get("/classroom/{classroom_id}")
def classroom_quizzes(
    classroom_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    quizzes = crud.get_classroom_quizzes(db, classroom_id)
    return schemas.envelope([_out(q) for q in quizzes], count=len(quizzes))


@router.get("/{quiz_id}")
def get_quiz(quiz_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return schemas.envelope(_out(crud.get_quiz(db, quiz_id)))


@router.put("/{quiz_id}")
def update_quiz(
    quiz_id: int,
    body: schemas.QuizUpdate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    return schemas.envelope(_out(crud.update_quiz(db, quiz_id, teacher, body)))


@router.delete("/{quiz_id}")
def delete_quiz(quiz_id: int, db: Session = Depends(get_db), teacher: models.User = Depends(teacher_only)):
    crud.delete_quiz(db, quiz_id, teacher)
    return schemas.envelope(message="Quiz deleted successfully")


@router.post("/{quiz_id}/submit")
def submit_quiz(
    quiz_id: int,
    body: schemas.SubmissionCreate,
    db: Session = Depends(get_db),
    student: models.User = Depends(student_only),
):
    submission = crud.submit_quiz(db, quiz_id, student, body.answers)
    return schemas.envelope(schemas.SubmissionOut.model_validate(submission))


@router.get("/{quiz_id}/submissions/me")
def my_submissions(quiz_id: int, db: Session = Depends(get_db), student: models.User = Depends(student_only)):
    submissions = crud.get_student_submissions(db, quiz_id, student)
    return schemas.envelope([schemas.SubmissionOut.model_validate(s) for s in submissions], count=len(submissions))


@router.get("/{quiz_id}/leaderboard")
def leaderboard(quiz_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    ranked = crud.get_leaderboard(db, quiz_id)
    return schemas.envelope([schemas.LeaderboardEntry.model_validate(s) for s in ranked], count=len(ranked))
