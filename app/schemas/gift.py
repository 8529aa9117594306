"""
Gift schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

class Gift(BaseModel):
    id: str
    event_id: str
    sender_id: Optional[str] = None
    guest_name: Optional[str] = None
    amount: Decimal
    currency: str
    message: Optional[str] = None
    payment_ref: str
    status: str
    created_at: Optional[datetime] = None
