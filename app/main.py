import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.assignments.assignment_router import router as assignment_router
from app.auth.auth_router import router as auth_router
from app.core import config
from app.core.database import Database
from app.core.errors import register_exception_handlers
from app.courses.course_router import router as course_router
from app.notifications.mailer import SmtpMailer
from app.notifications.queue import NotificationQueue
from app.payments.payment_router import router as payment_router
from app.payments.paystack import PaystackClient
from app.students.student_admin_router import router as student_admin_router
from app.students.student_router import router as student_router
from app.system.health_router import router as health_router
from app.uploads.upload_router import router as upload_router
from app.uploads.upload_service import CloudinaryUploader

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(
    database: Database = None,
    gateway=None,
    uploader=None,
    notifier: NotificationQueue = None
) -> FastAPI:
    """
    Build the application. Collaborators default to the real MongoDB,
    Paystack, Cloudinary and SMTP clients; tests pass doubles.
    """
    app = FastAPI(title="Skillspad API")

    app.state.database = database or Database()
    app.state.gateway = gateway or PaystackClient()
    app.state.uploader = uploader or CloudinaryUploader()
    app.state.notifier = notifier or NotificationQueue(SmtpMailer())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    register_exception_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(auth_router)
    app.include_router(payment_router)
    app.include_router(course_router)
    app.include_router(assignment_router)
    app.include_router(upload_router)
    app.include_router(student_router)
    app.include_router(student_admin_router)
    app.include_router(health_router)
    # ============================================================

    @app.on_event("startup")
    async def startup_event():
        await app.state.database.connect()
        await app.state.notifier.start()
        logger.info(f"🚀 Skillspad API started ({config.ENVIRONMENT})")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.notifier.stop()
        close_gateway = getattr(app.state.gateway, "close", None)
        if close_gateway:
            await close_gateway()
        app.state.database.close()
        logger.info("👋 Skillspad API stopped")

    return app


app = create_app()
