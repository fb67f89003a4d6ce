import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.auth.auth_models import Role, UserStatus
from app.core.database import Database, create_indexes, utcnow
from app.core.security import create_session_token, hash_password
from app.main import create_app
from app.notifications.queue import NotificationQueue
from app.payments.payment_models import (
    GatewayInitialization, GatewayVerification, TransactionStatus
)

DEFAULT_PASSWORD = "secret123"


# ==================== DOUBLES ====================

class FakeGateway:
    """
    Records calls; outcomes are keyed by reference (default success).
    on_verify runs before the verification result is returned.
    """

    def __init__(self):
        self.initialized = []
        self.verified = []
        self.outcomes = {}
        self.error = None
        self.on_verify = None

    async def initialize_transaction(self, email, amount, currency, reference,
                                     callback_url, metadata=None, channels=None):
        if self.error:
            raise self.error
        self.initialized.append({
            "email": email,
            "amount": amount,
            "currency": currency,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata,
            "channels": channels
        })
        return GatewayInitialization(
            reference=reference,
            authorization_url=f"https://checkout.paystack.com/{reference}",
            access_code="access-code"
        )

    async def verify_transaction(self, reference):
        self.verified.append(reference)
        if self.error:
            raise self.error
        if self.on_verify:
            await self.on_verify(reference)
        status = self.outcomes.get(reference, TransactionStatus.SUCCESS)
        return GatewayVerification(
            status=status,
            payload={
                "reference": reference,
                "status": "success" if status == TransactionStatus.SUCCESS else "abandoned",
                "gateway_response": "Approved" if status == TransactionStatus.SUCCESS else "Abandoned"
            }
        )


class FakeUploader:

    def __init__(self):
        self.stored = []
        self.deleted = []
        self.delete_result = True

    async def store(self, content, filename, content_type):
        public_id = f"assignments/assignment_{len(self.stored) + 1}"
        self.stored.append({"filename": filename, "content_type": content_type, "size": len(content)})
        return {
            "url": f"https://res.cloudinary.com/demo/raw/upload/v1/{public_id}.pdf",
            "public_id": public_id
        }

    async def delete(self, public_id):
        self.deleted.append(public_id)
        return self.delete_result


class RecordingMailer:
    """Fails the first `failures` sends, then records"""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.attempts = 0
        self.sent = []

    async def send(self, kind, recipient, data):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("smtp unavailable")
        self.sent.append({"kind": kind.value, "recipient": recipient, "data": data})

    def of_kind(self, kind: str) -> list:
        return [mail for mail in self.sent if mail["kind"] == kind]


# ==================== APP FIXTURES ====================

@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def make_mailer():
    return RecordingMailer


@pytest.fixture
async def notifier(mailer):
    queue = NotificationQueue(mailer, base_delay=0, workers=1)
    await queue.start()
    yield queue
    await queue.stop(drain=False)


@pytest.fixture
async def database():
    database = Database(client=AsyncMongoMockClient(), name="skillspad_test")
    await create_indexes(database.db)
    return database


@pytest.fixture
def db(database):
    return database.db


@pytest.fixture
def app(database, gateway, uploader, notifier):
    return create_app(database=database, gateway=gateway, uploader=uploader, notifier=notifier)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==================== DATA HELPERS ====================

@pytest.fixture
def make_user(db):
    async def _make_user(
        email="student@skillspad.app",
        password=DEFAULT_PASSWORD,
        role=Role.STUDENT,
        **fields
    ):
        now = utcnow()
        user = {
            "email": email,
            "password": hash_password(password),
            "first_name": "Ama",
            "last_name": "Mensah",
            "country": "GH",
            "role": role.value,
            "status": UserStatus.ACTIVE.value,
            "enrolled_courses": [],
            "created_at": now,
            "updated_at": now,
            **fields
        }
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        return user
    return _make_user


@pytest.fixture
def headers_for():
    def _headers_for(user, payment_status="pending"):
        token = create_session_token(
            user_id=str(user["_id"]),
            role=user["role"],
            email=user["email"],
            country=user.get("country", "GH"),
            payment_status=payment_status
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers_for


@pytest.fixture
async def admin(make_user):
    return await make_user(email="admin@skillspad.app", role=Role.ADMIN)


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
async def student(make_user):
    return await make_user()


@pytest.fixture
def student_headers(student, headers_for):
    return headers_for(student)


@pytest.fixture
def make_course(db):
    async def _make_course(title="Python Foundations", price=50.0, modules=None, **fields):
        now = utcnow()
        course = {
            "title": title,
            "description": "Learn Python from scratch",
            "price": price,
            "status": "published",
            "image_url": "",
            "modules": modules or [],
            "version": 0,
            "created_at": now,
            "updated_at": now,
            **fields
        }
        result = await db.courses.insert_one(course)
        course["_id"] = result.inserted_id
        return course
    return _make_course
