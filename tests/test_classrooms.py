import random
import threading

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import quizroom.crud as crud
import quizroom.models as models
import quizroom.schemas as schemas
from quizroom.database import Base
from quizroom.grading import CODE_ALPHABET


def test_create_classroom_assigns_code(client, teacher):
    user, headers = teacher
    resp = client.post("/classrooms", json={"name": "Physics", "description": "Period 2"}, headers=headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["teacherId"] == user["id"]
    assert data["isActive"] is True
    assert len(data["code"]) == 6
    assert set(data["code"]) <= set(CODE_ALPHABET)


def test_student_cannot_create_classroom(client, student):
    _, headers = student
    resp = client.post("/classrooms", json={"name": "Nope"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["success"] is False


def test_requires_credentials(client):
    resp = client.get("/classrooms/teacher")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Not authorized to access this route"}


def test_missing_name_is_validation_error(client, teacher):
    _, headers = teacher
    resp = client.post("/classrooms", json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_code_collision_regenerates(db, db_teacher):
    codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
    gen = lambda: next(codes)  # noqa: E731
    first = crud.create_classroom(db, db_teacher, schemas.ClassroomCreate(name="One"), generate_code=gen)
    second = crud.create_classroom(db, db_teacher, schemas.ClassroomCreate(name="Two"), generate_code=gen)
    assert first.code == "AAAAAA"
    assert second.code == "BBBBBB"
    assert db.query(models.Classroom).count() == 2


def test_concurrent_creation_keeps_codes_unique(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'codes.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as db:
        user = models.User(
            first_name="T", last_name="T", email="t@example.com", hashed_password="x", role=models.Role.teacher
        )
        db.add(user)
        db.commit()
        teacher_id = user.id

    # A two-letter alphabet forces frequent collisions between workers
    def worker(seed, errors):
        rng = random.Random(seed)
        gen = lambda: "".join(rng.choice("AB") for _ in range(6))  # noqa: E731
        try:
            with Session() as db:
                teacher = db.get(models.User, teacher_id)
                for i in range(8):
                    crud.create_classroom(
                        db, teacher, schemas.ClassroomCreate(name=f"c{seed}-{i}"), generate_code=gen
                    )
        except Exception as exc:
            errors.append(exc)

    errors = []
    threads = [threading.Thread(target=worker, args=(seed, errors)) for seed in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with Session() as db:
        codes = [c for (c,) in db.query(models.Classroom.code).all()]
    assert len(codes) == 32
    assert len(set(codes)) == 32
    engine.dispose()


def test_teacher_lists_own_classrooms(client, teacher, other_teacher, classroom):
    _, other_headers = other_teacher
    client.post("/classrooms", json={"name": "Other"}, headers=other_headers)

    resp = client.get("/classrooms/teacher", headers=teacher[1])
    body = resp.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == classroom["id"]


class TestJoin:
    def test_join_by_code(self, client, student, classroom):
        _, headers = student
        resp = client.post("/classrooms/join", json={"code": classroom["code"]}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == classroom["id"]

        listed = client.get("/classrooms/student", headers=headers).json()
        assert listed["count"] == 1
        assert listed["data"][0]["code"] == classroom["code"]

    def test_code_is_case_insensitive(self, client, student, classroom):
        resp = client.post("/classrooms/join", json={"code": classroom["code"].lower()}, headers=student[1])
        assert resp.status_code == 200

    def test_unknown_code_is_not_found(self, client, student, classroom):
        resp = client.post("/classrooms/join", json={"code": "ZZZZZZZZ"}, headers=student[1])
        assert resp.status_code == 404
        assert resp.json()["message"] == "Classroom not found"

    def test_joining_twice_conflicts(self, client, student, classroom):
        _, headers = student
        assert client.post("/classrooms/join", json={"code": classroom["code"]}, headers=headers).status_code == 200
        resp = client.post("/classrooms/join", json={"code": classroom["code"]}, headers=headers)
        assert resp.status_code == 409

    def test_empty_code_is_rejected(self, client, student):
        resp = client.post("/classrooms/join", json={"code": ""}, headers=student[1])
        assert resp.status_code == 400

    def test_teacher_cannot_join(self, client, teacher, classroom):
        resp = client.post("/classrooms/join", json={"code": classroom["code"]}, headers=teacher[1])
        assert resp.status_code == 403


def test_classroom_detail_populates_members(client, teacher, student, classroom):
    student_user, student_headers = student
    client.post("/classrooms/join", json={"code": classroom["code"]}, headers=student_headers)

    resp = client.get(f"/classrooms/{classroom['id']}", headers=student_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["teacher"]["fullName"] == "Tess Teacher"
    assert [m["studentId"] for m in data["students"]] == [student_user["id"]]
    assert data["students"][0]["email"] == student_user["email"]
    assert data["quizzes"] == []

    members = client.get(f"/classrooms/{classroom['id']}/students", headers=teacher[1]).json()
    assert members["count"] == 1


def test_missing_classroom_is_not_found(client, teacher):
    resp = client.get("/classrooms/9999", headers=teacher[1])
    assert resp.status_code == 404


class TestRemoveStudent:
    def test_owner_removes_member(self, client, teacher, student, make_user, classroom):
        student_user, student_headers = student
        other_user, other_headers = make_user("student")
        for headers in (student_headers, other_headers):
            client.post("/classrooms/join", json={"code": classroom["code"]}, headers=headers)

        resp = client.put(
            f"/classrooms/{classroom['id']}/remove-student",
            json={"studentId": student_user["id"]},
            headers=teacher[1],
        )
        assert resp.status_code == 200
        assert [m["studentId"] for m in resp.json()["data"]] == [other_user["id"]]
        assert client.get("/classrooms/student", headers=student_headers).json()["count"] == 0

    def test_non_member_is_not_found(self, client, teacher, student, classroom):
        resp = client.put(
            f"/classrooms/{classroom['id']}/remove-student",
            json={"studentId": student[0]["id"]},
            headers=teacher[1],
        )
        assert resp.status_code == 404

    def test_non_owner_is_forbidden_even_for_members(self, client, other_teacher, student, classroom):
        client.post("/classrooms/join", json={"code": classroom["code"]}, headers=student[1])
        resp = client.put(
            f"/classrooms/{classroom['id']}/remove-student",
            json={"studentId": student[0]["id"]},
            headers=other_teacher[1],
        )
        assert resp.status_code == 403

    def test_missing_student_id_is_rejected(self, client, teacher, classroom):
        resp = client.put(f"/classrooms/{classroom['id']}/remove-student", json={}, headers=teacher[1])
        assert resp.status_code == 400


def test_update_classroom(client, teacher, other_teacher, classroom):
    url = f"/classrooms/{classroom['id']}"
    assert client.put(url, json={"name": "Hijack"}, headers=other_teacher[1]).status_code == 403

    resp = client.put(url, json={"name": "Algebra II", "description": "Room 4"}, headers=teacher[1])
    data = resp.json()["data"]
    assert data["name"] == "Algebra II"
    assert data["description"] == "Room 4"
    assert data["code"] == classroom["code"]


def test_update_clears_description_only_when_sent(client, teacher, classroom):
    url = f"/classrooms/{classroom['id']}"
    client.put(url, json={"description": "Room 4"}, headers=teacher[1])

    renamed = client.put(url, json={"name": "Algebra II"}, headers=teacher[1]).json()["data"]
    assert renamed["description"] == "Room 4"

    cleared = client.put(url, json={"description": None}, headers=teacher[1]).json()["data"]
    assert cleared["description"] is None
    assert cleared["name"] == "Algebra II"


def test_delete_classroom_cascades(client, db, teacher, other_teacher, student, classroom):
    client.post("/classrooms/join", json={"code": classroom["code"]}, headers=student[1])
    client.post(
        "/quizzes",
        json={
            "title": "Quiz",
            "classroomId": classroom["id"],
            "questions": [{"text": "1+1", "options": ["1", "2"], "correctAnswer": 1}],
        },
        headers=teacher[1],
    )
    url = f"/classrooms/{classroom['id']}"
    assert client.delete(url, headers=other_teacher[1]).status_code == 403

    resp = client.delete(url, headers=teacher[1])
    assert resp.json() == {"success": True, "message": "Classroom removed"}
    assert client.get(url, headers=teacher[1]).status_code == 404
    assert db.query(models.ClassroomMembership).count() == 0
    assert db.query(models.Quiz).count() == 0
    assert db.query(models.Question).count() == 0
