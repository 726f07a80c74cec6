from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_name = Column(String, nullable=False)
    abn = Column(String, nullable=True)
    primary_contact_person = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    street_address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    postcode = Column(String, nullable=True)
    product_categories = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    invoices = relationship("Invoice", back_populates="supplier", cascade="all, delete-orphan")
    ingredients = relationship("Ingredient", back_populates="supplier")
