from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from app.core.database import utcnow
from app.core.security import decode_session_token, hash_reset_token

REGISTRATION = {
    "email": "Kofi@Skillspad.app",
    "password": "secret123",
    "first_name": "Kofi",
    "last_name": "Boateng",
    "phone": "+233200000000",
    "motivation": "Career change"
}


async def test_register_creates_student_and_sets_cookie(client, db, notifier, mailer):
    response = await client.post("/auth/register", json=REGISTRATION)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "kofi@skillspad.app"
    assert body["user"]["role"] == "student"
    assert "password" not in body["user"]

    claims = decode_session_token(response.cookies["token"])
    assert claims["payment_status"] == "pending"
    assert claims["country"] == "GH"

    stored = await db.users.find_one({"email": "kofi@skillspad.app"})
    assert stored["password"] != REGISTRATION["password"]
    assert stored["enrolled_courses"] == []
    assert stored["status"] == "active"

    await notifier.join()
    assert [mail["recipient"] for mail in mailer.of_kind("welcome")] == ["kofi@skillspad.app"]


async def test_register_duplicate_email_conflicts(client):
    await client.post("/auth/register", json=REGISTRATION)
    response = await client.post("/auth/register", json=REGISTRATION)

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "User with this email already exists"
    }


async def test_register_rejects_short_password(client):
    response = await client.post("/auth/register", json={**REGISTRATION, "password": "abc"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert any(error["field"] == "password" for error in body["errors"])


async def test_login_wrong_password_and_unknown_email_look_identical(client, student):
    wrong_password = await client.post(
        "/auth/login", json={"email": student["email"], "password": "not-the-password"}
    )
    unknown_email = await client.post(
        "/auth/login", json={"email": "nobody@skillspad.app", "password": "secret123"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {
        "success": False,
        "message": "Invalid email or password"
    }


async def test_login_reports_payment_status(client, db, student):
    response = await client.post(
        "/auth/login", json={"email": student["email"], "password": "secret123"}
    )
    assert response.status_code == 200
    assert response.json()["user"]["payment"]["status"] == "pending"
    assert decode_session_token(response.cookies["token"])["payment_status"] == "pending"

    await db.partial_payments.insert_one({"user_id": student["_id"], "status": "partially_paid"})
    response = await client.post(
        "/auth/login", json={"email": student["email"], "password": "secret123"}
    )
    assert response.json()["user"]["payment"]["status"] == "partially_paid"

    await db.transactions.insert_one({
        "user_id": student["_id"],
        "reference": "PAY-1",
        "status": "success"
    })
    response = await client.post(
        "/auth/login", json={"email": student["email"], "password": "secret123"}
    )
    assert response.json()["user"]["payment"]["status"] == "success"
    assert decode_session_token(response.cookies["token"])["payment_status"] == "success"


async def test_login_rejects_deactivated_account(client, make_user):
    user = await make_user(email="gone@skillspad.app", status="inactive")

    response = await client.post(
        "/auth/login", json={"email": user["email"], "password": "secret123"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_logout_clears_cookie(client):
    response = await client.post("/auth/logout")

    assert response.status_code == 200
    assert 'token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]


async def test_forgot_password_is_generic(client, db, student, notifier, mailer):
    known = await client.post("/auth/forgot-password", json={"email": student["email"]})
    unknown = await client.post("/auth/forgot-password", json={"email": "ghost@skillspad.app"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()

    await notifier.join()
    resets = mailer.of_kind("password_reset")
    assert len(resets) == 1
    assert resets[0]["recipient"] == student["email"]

    stored = await db.users.find_one({"_id": student["_id"]})
    token = parse_qs(urlparse(resets[0]["data"]["reset_url"]).query)["token"][0]
    assert stored["reset_token_hash"] == hash_reset_token(token)
    assert token not in str(stored)


async def _request_reset_token(client, notifier, mailer, email):
    await client.post("/auth/forgot-password", json={"email": email})
    await notifier.join()
    reset_url = mailer.of_kind("password_reset")[-1]["data"]["reset_url"]
    return parse_qs(urlparse(reset_url).query)["token"][0]


async def test_reset_password_is_single_use(client, db, student, notifier, mailer):
    token = await _request_reset_token(client, notifier, mailer, student["email"])
    payload = {"token": token, "email": student["email"], "new_password": "brand-new-pass"}

    first = await client.post("/auth/reset-password", json=payload)
    second = await client.post("/auth/reset-password", json=payload)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid or expired reset token"

    stored = await db.users.find_one({"_id": student["_id"]})
    assert "reset_token_hash" not in stored

    login = await client.post(
        "/auth/login", json={"email": student["email"], "password": "brand-new-pass"}
    )
    assert login.status_code == 200


async def test_reset_password_rejects_expired_and_wrong_tokens(client, db, student, notifier, mailer):
    token = await _request_reset_token(client, notifier, mailer, student["email"])

    wrong = await client.post("/auth/reset-password", json={
        "token": "not-the-token", "email": student["email"], "new_password": "brand-new-pass"
    })
    assert wrong.status_code == 400

    await db.users.update_one(
        {"_id": student["_id"]},
        {"$set": {"reset_token_expires": utcnow() - timedelta(minutes=1)}}
    )
    expired = await client.post("/auth/reset-password", json={
        "token": token, "email": student["email"], "new_password": "brand-new-pass"
    })
    assert expired.status_code == 400
    assert expired.json()["message"] == "Invalid or expired reset token"


async def test_reset_password_enforces_minimum_length(client, student, notifier, mailer):
    token = await _request_reset_token(client, notifier, mailer, student["email"])

    response = await client.post("/auth/reset-password", json={
        "token": token, "email": student["email"], "new_password": "abc"
    })

    assert response.status_code == 400
    assert "at least" in response.json()["message"]


async def test_protected_route_requires_valid_token(client):
    missing = await client.get("/student/dashboard")
    garbage = await client.get("/student/dashboard", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert missing.json()["message"] == "Access denied. No token provided."
    assert garbage.status_code == 401


async def test_deactivated_user_token_is_rejected(client, db, student, student_headers):
    await db.users.update_one({"_id": student["_id"]}, {"$set": {"status": "inactive"}})

    response = await client.get("/student/dashboard", headers=student_headers)

    assert response.status_code == 401
