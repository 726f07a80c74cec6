from pydantic import BaseModel, ConfigDict
from typing import List, Optional


class SupplierBase(BaseModel):
    company_name: str
    abn: Optional[str] = None
    primary_contact_person: Optional[str] = None
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    product_categories: Optional[List[str]] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierRead(SupplierBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
