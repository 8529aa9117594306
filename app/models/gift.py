"""
Gift model, written only by the payment verification callback
"""

from sqlalchemy import Column, String, Text, Numeric, DateTime

from app.core.db import Base
from app.models.event import new_id, utcnow

class Gift(Base):
    __tablename__ = "gifts"

    id = Column(String(36), primary_key=True, default=new_id)
    # No foreign key: a verified payment must stay on record even if the event goes away
    event_id = Column(String(36), nullable=False, index=True)
    sender_id = Column(String(128), nullable=True)
    guest_name = Column(String(255), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    message = Column(Text, nullable=True)
    payment_ref = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="successful")
    created_at = Column(DateTime(timezone=True), default=utcnow)
