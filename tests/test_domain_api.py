import pytest

from app.auth.audit import AuditLogService, get_audit_log
from app.main import app

from conftest import create_user


def broken_session_factory():
    raise RuntimeError("audit store unavailable")


def make_student(client, headers, **overrides):
    payload = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@school.edu",
        "department": "Mathematics",
        "enrollmentYear": 2023,
        **overrides,
    }
    response = client.post("/api/students", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def make_teacher(client, headers, **overrides):
    payload = {"firstName": "Alan", "lastName": "Turing", "department": "Computing", **overrides}
    response = client.post("/api/teachers", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def make_course(client, headers, **overrides):
    payload = {
        "courseCode": "cs101",
        "section": "A",
        "courseName": "Intro to Computing",
        "credit": 6,
        "department": "Computing",
        "semester": "2025-FALL",
        **overrides,
    }
    response = client.post("/api/courses", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def logs_for(client, headers, action):
    response = client.get("/api/logs", params={"action": action}, headers=headers)
    assert response.status_code == 200
    return response.json()


# =============================================================================
# Students
# =============================================================================

def test_student_crud(client, admin_headers):
    student = make_student(client, admin_headers)
    assert student["firstName"] == "Ada"
    assert student["status"] == "active"

    response = client.get(f"/api/students/{student['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "ada@school.edu"

    response = client.put(
        f"/api/students/{student['id']}",
        json={"status": "graduated", "program": "BSc"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "graduated"
    assert response.json()["lastName"] == "Lovelace"

    response = client.delete(f"/api/students/{student['id']}", headers=admin_headers)
    assert response.status_code == 200

    response = client.get(f"/api/students/{student['id']}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Student not found"}

    actions = [logs_for(client, admin_headers, a)["total"] for a in
               ("CREATE_STUDENT", "UPDATE_STUDENT", "DELETE_STUDENT")]
    assert actions == [1, 1, 1]


def test_student_list_filters_and_pagination(client, teacher_headers):
    make_student(client, teacher_headers)
    make_student(client, teacher_headers, firstName="Grace", lastName="Hopper",
                 email="grace@school.edu", department="Computing", enrollmentYear=2024)
    make_student(client, teacher_headers, firstName="Alan", lastName="Kay",
                 email="alan@school.edu", department="Computing", enrollmentYear=2024)

    response = client.get("/api/students", params={"limit": 2}, headers=teacher_headers)
    page = response.json()
    assert page["total"] == 3
    assert page["pages"] == 2
    assert page["page"] == 1
    assert page["limit"] == 2
    assert len(page["items"]) == 2

    response = client.get("/api/students", params={"name": "hop"}, headers=teacher_headers)
    assert [s["lastName"] for s in response.json()["items"]] == ["Hopper"]

    response = client.get(
        "/api/students",
        params={"department": "Computing", "enrollment_year": 2024},
        headers=teacher_headers,
    )
    assert response.json()["total"] == 2


def test_duplicate_student_email_conflicts(client, admin_headers):
    make_student(client, admin_headers)
    response = client.post(
        "/api/students",
        json={"firstName": "A", "lastName": "B", "email": "ada@school.edu", "enrollmentYear": 2020},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_student_names_are_stored_verbatim(client, admin_headers):
    make_student(client, admin_headers, firstName="  Siobhan ", lastName="O'Brien")
    make_student(client, admin_headers, firstName="<>", lastName="Hopper", email="grace@school.edu")

    response = client.get("/api/students", headers=admin_headers)
    assert response.status_code == 200
    names = sorted((s["firstName"], s["lastName"]) for s in response.json()["items"])
    assert names == [("<>", "Hopper"), ("Siobhan", "O'Brien")]


@pytest.mark.parametrize("first_name", ["", "   "])
def test_blank_student_name_is_rejected(client, admin_headers, first_name):
    payload = {"firstName": first_name, "lastName": "Lovelace", "enrollmentYear": 2023}
    response = client.post("/api/students", json=payload, headers=admin_headers)
    assert response.status_code == 422

    assert client.get("/api/students", headers=admin_headers).json()["total"] == 0
    assert logs_for(client, admin_headers, "CREATE_STUDENT")["total"] == 0


@pytest.mark.parametrize("field", ["firstName", "lastName", "enrollmentYear", "status"])
def test_student_update_rejects_null_for_required_fields(client, admin_headers, field):
    student = make_student(client, admin_headers)

    response = client.put(f"/api/students/{student['id']}", json={field: None}, headers=admin_headers)
    assert response.status_code == 422

    response = client.get(f"/api/students/{student['id']}", headers=admin_headers)
    assert response.json()["firstName"] == "Ada"
    assert logs_for(client, admin_headers, "UPDATE_STUDENT")["total"] == 0


def test_student_update_clears_optional_fields(client, admin_headers):
    student = make_student(client, admin_headers, phone="555-0100")

    response = client.put(f"/api/students/{student['id']}", json={"phone": None}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["phone"] is None


def test_student_creation_survives_audit_failure(client, admin_headers):
    app.dependency_overrides[get_audit_log] = lambda: AuditLogService(
        session_factory=broken_session_factory
    )

    student = make_student(client, admin_headers)

    response = client.get(f"/api/students/{student['id']}", headers=admin_headers)
    assert response.status_code == 200

    app.dependency_overrides.pop(get_audit_log)
    assert logs_for(client, admin_headers, "CREATE_STUDENT")["total"] == 0


# =============================================================================
# Courses, enrollments, grades and absences
# =============================================================================

def test_course_enrollment_flow(client, admin_headers):
    teacher = make_teacher(client, admin_headers)
    course = make_course(client, admin_headers, teacherId=teacher["id"])
    student = make_student(client, admin_headers)
    assert course["courseCode"] == "CS101"

    response = client.post(
        "/api/enrollments",
        json={"studentId": student["id"], "courseId": course["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    enrollment = response.json()

    response = client.post(
        "/api/enrollments",
        json={"studentId": student["id"], "courseId": course["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = client.get(
        "/api/enrollments", params={"semester": "2025-FALL"}, headers=admin_headers
    )
    assert response.json()["total"] == 1

    response = client.get(f"/api/enrollments/{enrollment['id']}", headers=admin_headers)
    assert response.json()["studentId"] == student["id"]

    response = client.put(
        f"/api/courses/{course['id']}/students/{student['id']}/grade",
        json={"finalGrade": "A"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["finalGrade"] == "A"

    response = client.get(f"/api/students/{student['id']}/enrollments", headers=admin_headers)
    assert response.json()["items"][0]["finalGrade"] == "A"

    # Referenced rows block deletion
    assert client.delete(f"/api/courses/{course['id']}", headers=admin_headers).status_code == 409
    assert client.delete(f"/api/students/{student['id']}", headers=admin_headers).status_code == 409
    assert client.delete(f"/api/teachers/{teacher['id']}", headers=admin_headers).status_code == 409

    response = client.delete(
        "/api/enrollments",
        params={"student_id": student["id"], "course_id": course["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert client.delete(f"/api/courses/{course['id']}", headers=admin_headers).status_code == 200

    for action in ("CREATE_COURSE", "CREATE_ENROLLMENT", "UPDATE_GRADE",
                   "REMOVE_ENROLLMENT", "DELETE_COURSE"):
        assert logs_for(client, admin_headers, action)["total"] == 1, action


def test_duplicate_course_offering_conflicts(client, admin_headers):
    make_course(client, admin_headers)
    response = client.post(
        "/api/courses",
        json={"courseCode": "CS101", "section": "A", "courseName": "Again", "semester": "2025-FALL"},
        headers=admin_headers,
    )
    assert response.status_code == 409

    make_course(client, admin_headers, section="B")


def test_absences(client, teacher_headers, admin_headers):
    course = make_course(client, teacher_headers)
    student = make_student(client, teacher_headers)

    for day in ("2025-10-01", "2025-10-08"):
        response = client.post(
            f"/api/courses/{course['id']}/absences",
            json={"studentId": student["id"], "date": day},
            headers=teacher_headers,
        )
        assert response.status_code == 201

    response = client.post(
        "/api/absences",
        json={"studentId": student["id"], "courseId": course["id"], "date": "2025-10-01"},
        headers=teacher_headers,
    )
    assert response.status_code == 409

    response = client.get(
        "/api/absences/count",
        params={"student_id": student["id"], "course_id": course["id"]},
        headers=teacher_headers,
    )
    assert response.json()["count"] == 2

    response = client.get(
        "/api/absences",
        params={"date_from": "2025-10-05", "date_to": "2025-10-31"},
        headers=teacher_headers,
    )
    assert [a["date"] for a in response.json()["items"]] == ["2025-10-08"]

    response = client.delete(
        f"/api/courses/{course['id']}/absences",
        params={"student_id": student["id"], "date": "2025-10-01"},
        headers=teacher_headers,
    )
    assert response.status_code == 200

    response = client.get(f"/api/courses/{course['id']}/absences", headers=teacher_headers)
    assert response.json()["total"] == 1

    assert logs_for(client, admin_headers, "ADD_ABSENCE")["total"] == 2
    assert logs_for(client, admin_headers, "REMOVE_ABSENCE")["total"] == 1


def test_absence_for_unknown_student(client, admin_headers):
    course = make_course(client, admin_headers)
    response = client.post(
        f"/api/courses/{course['id']}/absences",
        json={"studentId": 999, "date": "2025-10-01"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.parametrize("body", [
    {"semester": None},
    {"courseCode": None},
    {"status": None},
    {"courseCode": "   "},
    {"section": "  "},
])
def test_course_update_rejects_missing_required_values(client, admin_headers, body):
    course = make_course(client, admin_headers)

    response = client.put(f"/api/courses/{course['id']}", json=body, headers=admin_headers)
    assert response.status_code == 422

    response = client.get("/api/courses", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["items"][0]["courseCode"] == "CS101"


def test_course_list_filters_by_status(client, admin_headers):
    make_course(client, admin_headers)
    archived = make_course(client, admin_headers, section="B", status="archived")

    response = client.get("/api/courses", params={"status": "archived"}, headers=admin_headers)
    assert [c["id"] for c in response.json()["items"]] == [archived["id"]]

    response = client.get("/api/courses", params={"status": "bogus"}, headers=admin_headers)
    assert response.status_code == 422


def test_enrollment_grade_filter_and_removal_by_id(client, admin_headers, teacher_headers):
    course = make_course(client, admin_headers)
    ada = make_student(client, admin_headers)
    grace = make_student(client, admin_headers, firstName="Grace", lastName="Hopper", email="grace@school.edu")

    enrollment_ids = {}
    for student in (ada, grace):
        response = client.post(
            "/api/enrollments",
            json={"studentId": student["id"], "courseId": course["id"]},
            headers=admin_headers,
        )
        assert response.status_code == 201
        enrollment_ids[student["id"]] = response.json()["id"]

    response = client.put(
        f"/api/courses/{course['id']}/students/{ada['id']}/grade",
        json={"finalGrade": "B"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    response = client.get("/api/enrollments", params={"graded": "true"}, headers=teacher_headers)
    assert [e["studentId"] for e in response.json()["items"]] == [ada["id"]]

    response = client.get("/api/enrollments", params={"graded": "false"}, headers=teacher_headers)
    assert [e["studentId"] for e in response.json()["items"]] == [grace["id"]]

    enrollment_id = enrollment_ids[grace["id"]]
    response = client.delete(f"/api/enrollments/{enrollment_id}", headers=teacher_headers)
    assert response.status_code == 403

    response = client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/enrollments/{enrollment_id}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=admin_headers).status_code == 404

    entries = logs_for(client, admin_headers, "REMOVE_ENROLLMENT")
    assert entries["total"] == 1


# =============================================================================
# Teachers
# =============================================================================

def test_teacher_user_assignment(client, admin_headers):
    teacher = make_teacher(client, admin_headers)
    other = make_teacher(client, admin_headers, firstName="Barbara", lastName="Liskov")
    user = create_user(client, admin_headers, "turing")

    response = client.put(
        f"/api/teachers/{teacher['id']}/user",
        json={"userId": user["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["userId"] == user["id"]

    response = client.put(
        f"/api/teachers/{other['id']}/user",
        json={"userId": user["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = client.delete(f"/api/teachers/{teacher['id']}/user", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["userId"] is None

    assert logs_for(client, admin_headers, "ASSIGN_USER_TO_TEACHER")["total"] == 1
    assert logs_for(client, admin_headers, "REVOKE_USER_FROM_TEACHER")["total"] == 1


def test_deleting_user_unlinks_teacher(client, admin_headers):
    teacher = make_teacher(client, admin_headers)
    user = create_user(client, admin_headers, "turing")
    client.put(f"/api/teachers/{teacher['id']}/user", json={"userId": user["id"]}, headers=admin_headers)

    assert client.delete(f"/api/users/{user['id']}", headers=admin_headers).status_code == 200

    response = client.get(f"/api/teachers/{teacher['id']}", headers=admin_headers)
    assert response.json()["userId"] is None


# =============================================================================
# Users, roles, settings
# =============================================================================

def test_user_management(client, admin_headers):
    user = create_user(client, admin_headers, "carol")
    assert user["roleName"] == "TEACHER"

    response = client.post(
        "/api/users",
        json={"username": "carol", "email": "other@school.edu", "password": "pw", "roleId": 1},
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = client.get("/api/users", params={"role": "teacher"}, headers=admin_headers)
    assert [u["username"] for u in response.json()["items"]] == ["carol"]

    response = client.get("/api/users", params={"email": "CAROL@"}, headers=admin_headers)
    assert response.json()["total"] == 1

    response = client.put(
        f"/api/users/{user['id']}",
        json={"status": "inactive"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"

    response = client.get("/api/users/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found"}


def test_user_update_strips_username(client, admin_headers):
    user = create_user(client, admin_headers, "dave")

    response = client.put(f"/api/users/{user['id']}", json={"username": "  david "}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "david"

    response = client.put(f"/api/users/{user['id']}", json={"username": "   "}, headers=admin_headers)
    assert response.status_code == 422
    assert client.get("/api/users/username/david", headers=admin_headers).status_code == 200


def test_user_list_filters_by_status(client, admin_headers):
    create_user(client, admin_headers, "erin")
    frank = create_user(client, admin_headers, "frank", status="inactive")

    response = client.get("/api/users", params={"status": "inactive"}, headers=admin_headers)
    assert [u["id"] for u in response.json()["items"]] == [frank["id"]]

    response = client.get("/api/users", params={"status": "active", "role": "teacher"}, headers=admin_headers)
    assert [u["username"] for u in response.json()["items"]] == ["erin"]


def test_role_management(client, admin_headers):
    response = client.post("/api/roles", json={"name": " registrar "}, headers=admin_headers)
    assert response.status_code == 201
    role = response.json()
    assert role["name"] == "REGISTRAR"

    response = client.post("/api/roles", json={"name": "Registrar"}, headers=admin_headers)
    assert response.status_code == 409

    admin_role = client.get("/api/roles/name/admin", headers=admin_headers).json()
    response = client.delete(f"/api/roles/{admin_role['id']}", headers=admin_headers)
    assert response.status_code == 409

    assert client.delete(f"/api/roles/{role['id']}", headers=admin_headers).status_code == 200


def test_current_semester(client, admin_headers):
    response = client.get("/api/settings/current-semester", headers=admin_headers)
    assert response.json() == {"semester": None}

    for semester in ("2025-FALL", "2026-SPRING"):
        response = client.put(
            "/api/settings/current-semester",
            json={"semester": semester},
            headers=admin_headers,
        )
        assert response.status_code == 200

    response = client.get("/api/settings/current_semester", headers=admin_headers)
    assert response.json()["value"] == "2026-SPRING"

    entries = logs_for(client, admin_headers, "UPDATE_SEMESTER")["items"]
    assert [e["details"]["newValue"] for e in entries] == ["2026-SPRING", "2025-FALL"]
    assert entries[0]["details"]["oldValue"] == "2025-FALL"
    assert entries[0]["username"] == "admin"


def test_plain_settings_are_not_audited(client, admin_headers):
    response = client.put("/api/settings/theme", json={"value": "dark"}, headers=admin_headers)
    assert response.status_code == 200

    assert client.get("/api/settings/theme", headers=admin_headers).json()["value"] == "dark"
    assert logs_for(client, admin_headers, "UPDATE_SEMESTER")["total"] == 0

    assert client.delete("/api/settings/theme", headers=admin_headers).status_code == 200
    assert client.get("/api/settings/theme", headers=admin_headers).status_code == 404


# =============================================================================
# Audit log API
# =============================================================================

def test_logs_are_read_only(client, admin_headers):
    entry = logs_for(client, admin_headers, "SETUP_ADMIN")["items"][0]

    response = client.get(f"/api/logs/{entry['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["action"] == "SETUP_ADMIN"

    assert client.delete(f"/api/logs/{entry['id']}", headers=admin_headers).status_code == 405
    assert client.get("/api/logs/999999", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("date_from,date_to,expected", [
    ("2000-01-01T00:00:00", "2100-01-01T00:00:00", 1),
    ("2100-01-01T00:00:00", None, 0),
    (None, "2000-01-01T00:00:00", 0),
])
def test_logs_filter_by_date(client, admin_headers, date_from, date_to, expected):
    params = {"action": "SETUP_ADMIN"}
    if date_from:
        params["date_from"] = date_from
    if date_to:
        params["date_to"] = date_to

    response = client.get("/api/logs", params=params, headers=admin_headers)
    assert response.json()["total"] == expected
