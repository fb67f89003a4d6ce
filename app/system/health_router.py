from fastapi import APIRouter, Request

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(request: Request):
    """
    Liveness plus a best-effort database ping
    """
    database = getattr(request.app.state, "database", None)
    connected = database is not None and await database.ping()

    return {
        "success": True,
        "status": "ok",
        "database": "connected" if connected else "unavailable"
    }
