# transfer-service/src/db/models.py
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, TIMESTAMP, ForeignKey

from db.session import Base


def _new_id() -> str:
    return str(uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), unique=True, nullable=False)
    # Postal address, as captured at signup
    address1 = Column(String(255))
    city = Column(String(100))
    state = Column(String(2))
    postal_code = Column(String(10))
    date_of_birth = Column(String(10))  # ISO date string
    ssn = Column(String(11))
    # Payment-rails customer; populated lazily, possibly after signup
    dwolla_customer_id = Column(String(64), nullable=True)
    dwolla_customer_url = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class BankLink(Base):
    __tablename__ = "banks"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # Aggregator item id
    bank_id = Column(String(128))
    account_id = Column(String(128), nullable=False, index=True)
    access_token = Column(String(255))
    funding_source_url = Column(String(255), nullable=True)
    processor_token = Column(String(255), nullable=True)
    shareable_id = Column(String(255))
    bank_name = Column(String(255))
    account_type = Column(String(50))
    created_at = Column(TIMESTAMP, default=datetime.utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255))
    amount = Column(String(32), nullable=False)  # fixed-point, e.g. "5.00"
    channel = Column(String(20), default="online")
    category = Column(String(50), default="Transfer")
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    sender_bank_id = Column(String(36), ForeignKey("banks.id"), nullable=False)
    receiver_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    receiver_bank_id = Column(String(36), ForeignKey("banks.id"), nullable=False)
    email = Column(String(255))
    transfer_url = Column(String(255))
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
