import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from quizroom.database import Base
from quizroom.grading import quiz_status


def utcnow() -> datetime:
    """UTC now as a naive datetime, matching the DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="user_role"), default=Role.student, nullable=False)
    reset_password_token = Column(String(64), index=True, nullable=True)
    reset_password_expire = Column(DateTime, nullable=True)
    confirm_email_token = Column(String(64), index=True, nullable=True)
    is_email_confirmed = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String(10), unique=True, index=True, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    teacher = relationship("User")
    memberships = relationship(
        "ClassroomMembership",
        back_populates="classroom",
        order_by="ClassroomMembership.joined_at",
        cascade="all, delete-orphan",
    )
    quizzes = relationship("Quiz", back_populates="classroom", order_by="Quiz.id", cascade="all, delete-orphan")


class ClassroomMembership(Base):
    __tablename__ = "classroom_memberships"
    __table_args__ = (UniqueConstraint("classroom_id", "student_id", name="uq_membership_classroom_student"),)

    id = Column(Integer, primary_key=True, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), index=True, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    classroom = relationship("Classroom", back_populates="memberships")
    student = relationship("User")


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), index=True, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    starts_on = Column(DateTime, default=utcnow, index=True, nullable=False)
    ends_on = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, index=True, nullable=False)
    instructions = Column(Text, nullable=True)
    pass_score = Column(Integer, default=0, nullable=False)
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    show_results = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    classroom = relationship("Classroom", back_populates="quizzes")
    teacher = relationship("User")
    # Stored order is insertion order; scoring relies on it
    questions = relationship(
        "Question", back_populates="quiz", order_by="Question.id", cascade="all, delete-orphan"
    )

    @property
    def status(self) -> str:
        return quiz_status(self)


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(Integer, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    # No FK: submissions outlive the quiz they were made against
    quiz_id = Column(Integer, index=True, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    answers = Column(JSON, nullable=False)  # [{"questionId": int, "selectedOption": int}, ...]
    score = Column(Integer, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)

    student = relationship("User")
