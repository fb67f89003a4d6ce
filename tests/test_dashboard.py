from datetime import timedelta

import pytest
from bson import ObjectId

from app.core.database import utcnow


@pytest.fixture
async def enrolled(db, make_course, student):
    """Student enrolled in one course that has a module and seven assignments"""
    module_id = ObjectId()
    course = await make_course(modules=[
        {"_id": ObjectId(), "title": "Second", "order": 2, "lessons": []},
        {"_id": module_id, "title": "First", "order": 1, "lessons": []}
    ])
    await db.users.update_one(
        {"_id": student["_id"]}, {"$set": {"enrolled_courses": [course["_id"]]}}
    )

    now = utcnow()
    for day in range(1, 8):
        await db.assignments.insert_one({
            "title": f"Task {day}",
            "course_id": course["_id"],
            "module_id": module_id,
            "due_date": now + timedelta(days=day),
            "submissions": 0,
            "submitted_by": []
        })
    await db.assignments.insert_one({
        "title": "Overdue",
        "course_id": course["_id"],
        "module_id": module_id,
        "due_date": now - timedelta(days=1),
        "submissions": 0,
        "submitted_by": []
    })
    return course


async def test_dashboard_aggregates(client, db, student, student_headers, enrolled, make_course):
    await make_course(title="Not enrolled")
    for index in range(7):
        await db.transactions.insert_one({
            "user_id": student["_id"],
            "reference": f"PAY-{index}",
            "status": "pending",
            "created_at": utcnow() + timedelta(seconds=index)
        })

    response = await client.get("/student/dashboard", headers=student_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["email"] == student["email"]
    assert "password" not in data["user"]
    assert [c["title"] for c in data["courses"]] == [enrolled["title"]]
    assert [a["title"] for a in data["assignments"]] == [f"Task {day}" for day in range(1, 6)]
    assert [t["reference"] for t in data["transactions"]] == [f"PAY-{i}" for i in (6, 5, 4, 3, 2)]


async def test_enrolled_courses(client, student_headers, enrolled, make_course):
    await make_course(title="Not enrolled")

    response = await client.get("/student/courses", headers=student_headers)

    assert [c["title"] for c in response.json()["data"]] == [enrolled["title"]]


async def test_course_detail_requires_enrollment(client, db, student, student_headers, enrolled, make_course):
    other = await make_course(title="Not enrolled")
    await db.user_progress.insert_one({
        "user_id": student["_id"],
        "course_id": enrolled["_id"],
        "completed_lessons": ["l1"],
        "last_accessed": utcnow()
    })

    allowed = await client.get(f"/student/courses/{enrolled['_id']}", headers=student_headers)
    denied = await client.get(f"/student/courses/{other['_id']}", headers=student_headers)

    assert allowed.status_code == 200
    data = allowed.json()["data"]
    assert [m["title"] for m in data["modules"]] == ["First", "Second"]
    assert data["progress"]["completed_lessons"] == ["l1"]

    assert denied.status_code == 403
    assert denied.json()["message"] == "Not enrolled in this course"


async def test_course_detail_default_progress(client, student_headers, enrolled):
    response = await client.get(f"/student/courses/{enrolled['_id']}", headers=student_headers)

    assert response.json()["data"]["progress"] == {"completed_lessons": [], "last_accessed": None}


async def test_assignment_submission_status(client, db, student, student_headers, enrolled):
    await db.assignments.update_one(
        {"title": "Task 1"},
        {"$set": {"submitted_by": [{"user_id": student["_id"], "graded": False}]}}
    )
    await db.assignments.update_one(
        {"title": "Task 2"},
        {"$set": {"submitted_by": [{"user_id": student["_id"], "graded": True}]}}
    )

    everything = (await client.get("/student/assignments", headers=student_headers)).json()["data"]
    statuses = {a["title"]: a["submission_status"] for a in everything}
    assert statuses["Task 1"] == "submitted"
    assert statuses["Task 2"] == "graded"
    assert statuses["Task 3"] == "pending"
    assert all("submitted_by" not in a for a in everything)

    pending = (await client.get(
        "/student/assignments", params={"status": "pending"}, headers=student_headers
    )).json()["data"]
    titles = [a["title"] for a in pending]
    assert "Overdue" not in titles
    assert titles == [f"Task {day}" for day in range(3, 8)]

    graded = (await client.get(
        "/student/assignments", params={"status": "graded"}, headers=student_headers
    )).json()["data"]
    assert [a["title"] for a in graded] == ["Task 2"]


async def test_transactions_paginated(client, db, student, student_headers):
    for index in range(12):
        await db.transactions.insert_one({
            "user_id": student["_id"],
            "reference": f"PAY-{index}",
            "status": "success" if index % 3 == 0 else "failed",
            "created_at": utcnow() + timedelta(seconds=index)
        })

    page_two = (await client.get(
        "/student/transactions", params={"page": 2, "limit": 5}, headers=student_headers
    )).json()["data"]
    assert page_two["total"] == 12
    assert page_two["total_pages"] == 3
    assert [t["reference"] for t in page_two["transactions"]] == [f"PAY-{i}" for i in (6, 5, 4, 3, 2)]

    successes = (await client.get(
        "/student/transactions", params={"status": "success"}, headers=student_headers
    )).json()["data"]
    assert successes["total"] == 4


async def test_dashboard_is_student_only(client, admin_headers):
    response = await client.get("/student/dashboard", headers=admin_headers)

    assert response.status_code == 403


# ==================== ADMIN STUDENT MANAGEMENT ====================

async def test_admin_lists_and_searches_students(client, make_user, admin_headers):
    await make_user(email="kwame@skillspad.app", first_name="Kwame")
    await make_user(email="efua@skillspad.app", first_name="Efua")

    everyone = (await client.get("/students", headers=admin_headers)).json()["data"]
    assert everyone["total_students"] == 2
    assert [s["first_name"] for s in everyone["students"]] == ["Efua", "Kwame"]
    assert all("password" not in s for s in everyone["students"])

    found = (await client.get("/students", params={"q": "KWA"}, headers=admin_headers)).json()["data"]
    assert [s["email"] for s in found["students"]] == ["kwame@skillspad.app"]


async def test_admin_updates_student(client, make_user, admin_headers):
    kwame = await make_user(email="kwame@skillspad.app")
    await make_user(email="efua@skillspad.app")

    taken = await client.put(
        f"/students/{kwame['_id']}", json={"email": "efua@skillspad.app"}, headers=admin_headers
    )
    assert taken.status_code == 409

    updated = await client.put(
        f"/students/{kwame['_id']}",
        json={"first_name": "Kwame Jr", "password": "another-pass"},
        headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["first_name"] == "Kwame Jr"

    login = await client.post(
        "/auth/login", json={"email": "kwame@skillspad.app", "password": "another-pass"}
    )
    assert login.status_code == 200


async def test_admin_deactivates_student(client, db, make_user, admin_headers):
    kwame = await make_user(email="kwame@skillspad.app")

    response = await client.delete(f"/students/{kwame['_id']}", headers=admin_headers)

    assert response.status_code == 200
    stored = await db.users.find_one({"_id": kwame["_id"]})
    assert stored["status"] == "inactive"

    login = await client.post(
        "/auth/login", json={"email": "kwame@skillspad.app", "password": "secret123"}
    )
    assert login.status_code == 401


async def test_student_management_is_admin_only(client, student_headers):
    response = await client.get("/students", headers=student_headers)

    assert response.status_code == 403
