from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import quizroom.crud as crud
import quizroom.models as models
import quizroom.schemas as schemas
from quizroom.auth import get_current_user, require_role
from quizroom.database import get_db

router = APIRouter(prefix="/classrooms", tags=["Classrooms"])

teacher_only = require_role(models.Role.teacher)
student_only = require_role(models.Role.student)


def _out(classroom: models.Classroom) -> schemas.ClassroomOut:
    return schemas.ClassroomOut.model_validate(classroom)


def _detail(db: Session, classroom: models.Classroom) -> schemas.ClassroomDetail:
    return schemas.ClassroomDetail(
        **_out(classroom).model_dump(),
        teacher=schemas.UserSummary.model_validate(classroom.teacher),
        students=crud.list_members(db, classroom.id),
        quizzes=[schemas.QuizSummary.model_validate(q) for q in classroom.quizzes],
    )


@router.post("", status_code=201)
def create_classroom(
    body: schemas.ClassroomCreate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    return schemas.envelope(_out(crud.create_classroom(db, teacher, body)))


@router.get("/teacher")
def teacher_classrooms(db: Session = Depends(get_db), teacher: models.User = Depends(teacher_only)):
    classrooms = crud.get_teacher_classrooms(db, teacher)
    return schemas.envelope([_out(c) for c in classrooms], count=len(classrooms))


@router.get("/student")
def student_classrooms(db: Session = Depends(get_db), student: models.User = Depends(student_only)):
    classrooms = crud.get_student_classrooms(db, student)
    return schemas.envelope([_out(c) for c in classrooms], count=len(classrooms))


@router.post("/join")
def join_classroom(
    body: schemas.JoinRequest,
    db: Session = Depends(get_db),
    student: models.User = Depends(student_only),
):
    return schemas.envelope(_out(crud.join_classroom(db, body.code, student)))


@router.get("/{classroom_id}")
def get_classroom(
    classroom_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return schemas.envelope(_detail(db, crud.get_classroom(db, classroom_id)))


@router.get("/{classroom_id}/students")
def classroom_students(
    classroom_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    crud.get_classroom(db, classroom_id)
    members = crud.list_members(db, classroom_id)
    return schemas.envelope(members, count=len(members))


@router.put("/{classroom_id}")
def update_classroom(
    classroom_id: int,
    body: schemas.ClassroomUpdate,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    return schemas.envelope(_out(crud.update_classroom(db, classroom_id, teacher, body)))


@router.delete("/{classroom_id}")
def delete_classroom(
    classroom_id: int,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    crud.delete_classroom(db, classroom_id, teacher)
    return schemas.envelope(message="Classroom removed")


@router.put("/{classroom_id}/remove-student")
def remove_student(
    classroom_id: int,
    body: schemas.RemoveStudentRequest,
    db: Session = Depends(get_db),
    teacher: models.User = Depends(teacher_only),
):
    members = crud.remove_student(db, classroom_id, body.student_id, teacher)
    return schemas.envelope(members, count=len(members))
