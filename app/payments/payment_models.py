from enum import Enum
from typing import Optional

from pydantic import BaseModel

# ==================== ENUMS ====================

class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

# ==================== GATEWAY RESULTS ====================

class GatewayInitialization(BaseModel):
    reference: str
    authorization_url: str
    access_code: Optional[str] = None

class GatewayVerification(BaseModel):
    """
    status is normalised to success | failed; payload is the raw
    verification data returned by the gateway
    """
    status: TransactionStatus
    payload: dict = {}

    @property
    def succeeded(self) -> bool:
        return self.status == TransactionStatus.SUCCESS
