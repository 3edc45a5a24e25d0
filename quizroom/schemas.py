from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, constr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from quizroom.models import Role


def _naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None or v.tzinfo is None:
        return v
    return v.astimezone(timezone.utc).replace(tzinfo=None)


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    # Columns hold naive UTC; tag it so clients see an explicit offset
    if v is None or v.tzinfo is not None:
        return v
    return v.replace(tzinfo=timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Wire models use camelCase names; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Users ---

class UserCreate(CamelModel):
    first_name: constr(strip_whitespace=True, min_length=1, max_length=50)
    last_name: constr(strip_whitespace=True, min_length=1, max_length=50)
    email: EmailStr
    password: constr(min_length=6)
    role: Role = Role.student

    @field_validator("email", mode="after")
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role")
    def no_self_admin(cls, v: Role) -> Role:
        if v == Role.admin:
            raise ValueError("admin accounts cannot be self-registered")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class EmailSchema(CamelModel):
    email: EmailStr


class PasswordReset(CamelModel):
    password: constr(min_length=6)


class UserOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    role: Role
    is_email_confirmed: bool
    last_login: Optional[UTCDateTime] = None
    created_at: UTCDateTime


class UserSummary(CamelModel):
    id: int
    full_name: str
    email: str


class TokenOut(CamelModel):
    token: str
    user: UserOut


# --- Classrooms ---

class ClassroomCreate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class ClassroomUpdate(CamelModel):
    name: Optional[constr(strip_whitespace=True, max_length=100)] = None
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class JoinRequest(CamelModel):
    code: constr(strip_whitespace=True, min_length=1)


class RemoveStudentRequest(CamelModel):
    student_id: int


class MemberOut(CamelModel):
    student_id: int
    full_name: str
    email: str
    joined_at: UTCDateTime


class QuizSummary(CamelModel):
    id: int
    title: str


class ClassroomOut(CamelModel):
    id: int
    name: str
    code: str
    teacher_id: int
    description: Optional[str] = None
    is_active: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime


class ClassroomDetail(ClassroomOut):
    teacher: UserSummary
    students: List[MemberOut] = []
    quizzes: List[QuizSummary] = []


# --- Questions ---

class QuestionBase(CamelModel):
    text: constr(strip_whitespace=True, min_length=1)
    options: List[str]
    correct_answer: int

    @model_validator(mode="after")
    def correct_answer_in_bounds(self):
        if len(self.options) < 2:
            raise ValueError("a question needs at least two options")
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError("correctAnswer must index into options")
        return self


class QuestionCreate(QuestionBase):
    quiz: int


class QuestionUpdate(CamelModel):
    text: Optional[constr(strip_whitespace=True, min_length=1)] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None


class QuestionOut(CamelModel):
    id: int
    quiz_id: int
    text: str
    options: List[str]
    correct_answer: int


# --- Quizzes ---

class QuizSchedule(CamelModel):
    duration: Optional[int] = None
    starts_on: Optional[datetime] = None
    ends_on: Optional[datetime] = None
    is_active: Optional[bool] = None
    instructions: Optional[constr(strip_whitespace=True, max_length=2000)] = None
    pass_score: Optional[int] = None
    shuffle_questions: Optional[bool] = None
    show_results: Optional[bool] = None

    @field_validator("starts_on", "ends_on")
    def dates_as_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)

    @field_validator("duration")
    def duration_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("duration must be at least 1 minute")
        return v

    @field_validator("pass_score")
    def pass_score_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("passScore cannot be negative")
        return v


class QuizCreate(QuizSchedule):
    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    classroom_id: int
    questions: Optional[List[QuestionBase]] = None


class QuizUpdate(QuizSchedule):
    title: Optional[constr(strip_whitespace=True, max_length=200)] = None
    questions: Optional[List[QuestionBase]] = None


class QuizOut(CamelModel):
    id: int
    title: str
    classroom_id: int
    teacher_id: int
    duration: int
    starts_on: UTCDateTime
    ends_on: Optional[UTCDateTime] = None
    is_active: bool
    instructions: Optional[str] = None
    pass_score: int
    shuffle_questions: bool
    show_results: bool
    status: str
    questions: List[QuestionOut] = []


# --- Submissions ---

class AnswerIn(CamelModel):
    question_id: int
    selected_option: int


class SubmissionCreate(CamelModel):
    answers: List[AnswerIn]


class SubmissionOut(CamelModel):
    id: int
    quiz_id: int
    student_id: int
    answers: List[AnswerIn]
    score: int
    submitted_at: UTCDateTime


class LeaderboardEntry(CamelModel):
    student: UserSummary
    score: int
    submitted_at: UTCDateTime


def envelope(data=None, message: Optional[str] = None, count: Optional[int] = None) -> dict:
    """Standard response body: {success, data?, message?, count?}."""
    body = {"success": True}
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body
