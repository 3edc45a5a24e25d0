import logging
from datetime import timedelta
from typing import Callable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import quizroom.models as models
import quizroom.schemas as schemas
from quizroom.auth import authorize_owner, digest_token, hash_password, new_token, verify_password
from quizroom.config import settings
from quizroom.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from quizroom.grading import generate_classroom_code, rank_submissions, score_answers

logger = logging.getLogger(__name__)


# --- Users ---

def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == email.lower()).first()


def create_user(db: Session, user: schemas.UserCreate) -> tuple[models.User, str]:
    """Create the account and return it with its raw email-confirmation token."""
    if get_user_by_email(db, user.email):
        raise Conflict("Email already registered")

    raw_token, digest = new_token()
    db_user = models.User(
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        hashed_password=hash_password(user.password),
        role=user.role,
        confirm_email_token=digest,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered")
    db.refresh(db_user)
    logger.info("Registered %s user %s", user.role.value, db_user.id)
    return db_user, raw_token


def authenticate_user(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthorized("Invalid credentials")
    user.last_login = models.utcnow()
    db.commit()
    db.refresh(user)
    return user


def confirm_email(db: Session, raw_token: str) -> models.User:
    digest = digest_token(raw_token)
    user = db.query(models.User).filter(models.User.confirm_email_token == digest).first()
    if not user:
        raise ValidationFailed("Invalid token")
    user.confirm_email_token = None
    user.is_email_confirmed = True
    db.commit()
    db.refresh(user)
    return user


def create_reset_token(db: Session, email: str) -> tuple[models.User, str]:
    user = get_user_by_email(db, email)
    if not user:
        raise NotFound("There is no user with that email")
    raw_token, digest = new_token()
    user.reset_password_token = digest
    user.reset_password_expire = models.utcnow() + timedelta(minutes=settings.reset_token_expire_minutes)
    db.commit()
    return user, raw_token


def clear_reset_token(db: Session, user: models.User) -> None:
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()


def reset_password(db: Session, raw_token: str, password: str) -> models.User:
    user = (
        db.query(models.User)
        .filter(
            models.User.reset_password_token == digest_token(raw_token),
            models.User.reset_password_expire > models.utcnow(),
        )
        .first()
    )
    if not user:
        raise ValidationFailed("Invalid token")
    user.hashed_password = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()
    db.refresh(user)
    return user


# --- Classrooms ---

def get_classroom(db: Session, classroom_id: int) -> models.Classroom:
    classroom = db.get(models.Classroom, classroom_id)
    if not classroom:
        raise NotFound("Classroom not found")
    return classroom


def _code_in_use(db: Session, code: str) -> bool:
    return db.query(models.Classroom.id).filter(models.Classroom.code == code).first() is not None


def create_classroom(
    db: Session,
    teacher: models.User,
    data: schemas.ClassroomCreate,
    generate_code: Callable[[], str] = generate_classroom_code,
) -> models.Classroom:
    """Insert a classroom under a fresh join code.

    The unique constraint on `code` is the only uniqueness check: a rejected
    insert for a code that is already taken is retried with a new candidate.
    """
    while True:
        code = generate_code()
        classroom = models.Classroom(
            name=data.name,
            description=data.description,
            code=code,
            teacher_id=teacher.id,
        )
        db.add(classroom)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if _code_in_use(db, code):
                logger.warning("Classroom code %s already taken, regenerating", code)
                continue
            raise
        db.refresh(classroom)
        logger.info("Teacher %s created classroom %s", teacher.id, classroom.id)
        return classroom


def get_teacher_classrooms(db: Session, teacher: models.User) -> List[models.Classroom]:
    return (
        db.query(models.Classroom)
        .filter(models.Classroom.teacher_id == teacher.id)
        .order_by(models.Classroom.id)
        .all()
    )


def get_student_classrooms(db: Session, student: models.User) -> List[models.Classroom]:
    return (
        db.query(models.Classroom)
        .join(models.ClassroomMembership, models.ClassroomMembership.classroom_id == models.Classroom.id)
        .filter(models.ClassroomMembership.student_id == student.id)
        .order_by(models.ClassroomMembership.joined_at)
        .all()
    )


def update_classroom(
    db: Session, classroom_id: int, teacher: models.User, data: schemas.ClassroomUpdate
) -> models.Classroom:
    classroom = get_classroom(db, classroom_id)
    authorize_owner(classroom, teacher, action="update")
    if data.name:
        classroom.name = data.name
    if "description" in data.model_fields_set:
        classroom.description = data.description or None
    db.commit()
    db.refresh(classroom)
    return classroom


def delete_classroom(db: Session, classroom_id: int, teacher: models.User) -> None:
    """Remove the classroom with its memberships, quizzes and their questions."""
    classroom = get_classroom(db, classroom_id)
    authorize_owner(classroom, teacher, action="delete")

    db.delete(classroom)
    db.commit()
    logger.info("Teacher %s deleted classroom %s", teacher.id, classroom_id)


# --- Memberships ---

def list_members(db: Session, classroom_id: int) -> List[schemas.MemberOut]:
    rows = (
        db.query(models.ClassroomMembership, models.User)
        .join(models.User, models.User.id == models.ClassroomMembership.student_id)
        .filter(models.ClassroomMembership.classroom_id == classroom_id)
        .order_by(models.ClassroomMembership.joined_at, models.ClassroomMembership.id)
        .all()
    )
    return [
        schemas.MemberOut(
            student_id=student.id,
            full_name=student.full_name,
            email=student.email,
            joined_at=membership.joined_at,
        )
        for membership, student in rows
    ]


def join_classroom(db: Session, code: str, student: models.User) -> models.Classroom:
    classroom = db.query(models.Classroom).filter(models.Classroom.code == code.upper()).first()
    if not classroom:
        raise NotFound("Classroom not found")

    exists = (
        db.query(models.ClassroomMembership.id)
        .filter(
            models.ClassroomMembership.classroom_id == classroom.id,
            models.ClassroomMembership.student_id == student.id,
        )
        .first()
    )
    if exists:
        raise Conflict("You have already joined this classroom")

    db.add(models.ClassroomMembership(classroom_id=classroom.id, student_id=student.id))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent join of the same pair
        db.rollback()
        raise Conflict("You have already joined this classroom")
    db.refresh(classroom)
    logger.info("Student %s joined classroom %s", student.id, classroom.id)
    return classroom


def remove_student(
    db: Session, classroom_id: int, student_id: int, teacher: models.User
) -> List[schemas.MemberOut]:
    classroom = get_classroom(db, classroom_id)
    authorize_owner(classroom, teacher, action="remove students from")

    membership = (
        db.query(models.ClassroomMembership)
        .filter(
            models.ClassroomMembership.classroom_id == classroom.id,
            models.ClassroomMembership.student_id == student_id,
        )
        .first()
    )
    if not membership:
        raise NotFound("Student is not a member of this classroom")

    db.delete(membership)
    db.commit()
    logger.info("Teacher %s removed student %s from classroom %s", teacher.id, student_id, classroom.id)
    return list_members(db, classroom.id)


# --- Quizzes ---

def get_quiz(db: Session, quiz_id: int) -> models.Quiz:
    quiz = db.get(models.Quiz, quiz_id)
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


def _question_rows(quiz_id: int, questions: List[schemas.QuestionBase]) -> List[models.Question]:
    return [
        models.Question(quiz_id=quiz_id, text=q.text, options=list(q.options), correct_answer=q.correct_answer)
        for q in questions
    ]


def _apply_schedule(quiz: models.Quiz, data: schemas.QuizSchedule) -> None:
    for field in data.model_fields_set & set(schemas.QuizSchedule.model_fields):
        value = getattr(data, field)
        if value is None and field != "ends_on":
            continue
        setattr(quiz, field, value)
    if quiz.starts_on is None:
        quiz.starts_on = models.utcnow()
    if quiz.ends_on is not None and quiz.ends_on <= quiz.starts_on:
        raise ValidationFailed("End date must be after start date")


def create_quiz(db: Session, teacher: models.User, data: schemas.QuizCreate) -> models.Quiz:
    get_classroom(db, data.classroom_id)

    quiz = models.Quiz(title=data.title, classroom_id=data.classroom_id, teacher_id=teacher.id)
    _apply_schedule(quiz, data)
    db.add(quiz)
    db.flush()
    if data.questions:
        db.add_all(_question_rows(quiz.id, data.questions))
    db.commit()
    db.refresh(quiz)
    logger.info("Teacher %s created quiz %s with %d questions", teacher.id, quiz.id, len(quiz.questions))
    return quiz


def get_teacher_quizzes(db: Session, teacher: models.User) -> List[models.Quiz]:
    return db.query(models.Quiz).filter(models.Quiz.teacher_id == teacher.id).order_by(models.Quiz.id).all()


def get_classroom_quizzes(db: Session, classroom_id: int) -> List[models.Quiz]:
    quizzes = (
        db.query(models.Quiz).filter(models.Quiz.classroom_id == classroom_id).order_by(models.Quiz.id).all()
    )
    if not quizzes:
        raise NotFound("No quizzes found for this classroom")
    return quizzes


def update_quiz(db: Session, quiz_id: int, teacher: models.User, data: schemas.QuizUpdate) -> models.Quiz:
    """Update quiz fields; a non-empty question list replaces the old set wholesale."""
    quiz = get_quiz(db, quiz_id)
    authorize_owner(quiz, teacher, action="update")

    if data.title:
        quiz.title = data.title
    _apply_schedule(quiz, data)

    if data.questions:
        # Old rows are orphaned and deleted in the same commit as the inserts
        quiz.questions = _question_rows(quiz.id, data.questions)

    db.commit()
    db.refresh(quiz)
    logger.info("Teacher %s updated quiz %s", teacher.id, quiz.id)
    return quiz


def delete_quiz(db: Session, quiz_id: int, teacher: models.User) -> None:
    quiz = get_quiz(db, quiz_id)
    authorize_owner(quiz, teacher, action="delete")
    db.delete(quiz)
    db.commit()
    logger.info("Teacher %s deleted quiz %s", teacher.id, quiz_id)


# --- Questions ---

def get_question(db: Session, question_id: int) -> models.Question:
    question = db.get(models.Question, question_id)
    if not question:
        raise NotFound("Question not found")
    return question


def get_quiz_questions(db: Session, quiz_id: int) -> List[models.Question]:
    return db.query(models.Question).filter(models.Question.quiz_id == quiz_id).order_by(models.Question.id).all()


def create_question(db: Session, teacher: models.User, data: schemas.QuestionCreate) -> models.Question:
    quiz = get_quiz(db, data.quiz)
    authorize_owner(quiz, teacher, action="add questions to")
    question = _question_rows(quiz.id, [data])[0]
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def update_question(
    db: Session, question_id: int, teacher: models.User, data: schemas.QuestionUpdate
) -> models.Question:
    question = get_question(db, question_id)
    authorize_owner(question.quiz, teacher, action="modify questions of")

    options = data.options if data.options is not None else question.options
    correct = data.correct_answer if data.correct_answer is not None else question.correct_answer
    if len(options) < 2:
        raise ValidationFailed("A question needs at least two options")
    if not 0 <= correct < len(options):
        raise ValidationFailed("correctAnswer must index into options")

    if data.text:
        question.text = data.text
    question.options = list(options)
    question.correct_answer = correct
    db.commit()
    db.refresh(question)
    return question


def delete_question(db: Session, question_id: int, teacher: models.User) -> None:
    question = get_question(db, question_id)
    authorize_owner(question.quiz, teacher, action="delete questions of")
    db.delete(question)
    db.commit()


# --- Submissions ---

def submit_quiz(
    db: Session, quiz_id: int, student: models.User, answers: List[schemas.AnswerIn]
) -> models.Submission:
    """Score by position against the quiz's stored question order and record the attempt.

    Repeat submissions are recorded as separate attempts.
    """
    quiz = get_quiz(db, quiz_id)
    stored = [{"questionId": a.question_id, "selectedOption": a.selected_option} for a in answers]
    score = score_answers([q.correct_answer for q in quiz.questions], stored)

    submission = models.Submission(quiz_id=quiz.id, student_id=student.id, answers=stored, score=score)
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info("Student %s scored %d/%d on quiz %s", student.id, score, len(quiz.questions), quiz.id)
    return submission


def get_student_submissions(db: Session, quiz_id: int, student: models.User) -> List[models.Submission]:
    get_quiz(db, quiz_id)
    return (
        db.query(models.Submission)
        .filter(models.Submission.quiz_id == quiz_id, models.Submission.student_id == student.id)
        .order_by(models.Submission.submitted_at, models.Submission.id)
        .all()
    )


def get_leaderboard(db: Session, quiz_id: int) -> List[models.Submission]:
    submissions = db.query(models.Submission).filter(models.Submission.quiz_id == quiz_id).all()
    if not submissions:
        raise NotFound("No submissions found for this quiz")
    return rank_submissions(submissions)

