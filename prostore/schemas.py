from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


# Reference entities (brands, models, colors, sizes)


class ReferenceIn(BaseModel):
    # obrigatoriedade do nome fica com o model: ausência vira 400, não 422
    name: Optional[str] = None


class ColorIn(ReferenceIn):
    hex_code: Optional[str] = Field(default=None, max_length=16)


class ReferenceOut(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ColorOut(ReferenceOut):
    hex_code: Optional[str] = None


class ReferenceSummary(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class DeletedOut(BaseModel):
    message: str
    id: str


# Products


class ProductOut(BaseModel):
    id: str
    name: str
    price: float
    stock: int
    image_url: Optional[str] = None
    brand_id: str
    model_id: Optional[str] = None
    color_id: Optional[str] = None
    size_id: Optional[str] = None
    # None também quando a referência foi apagada
    brand: Optional[ReferenceSummary] = None
    model: Optional[ReferenceSummary] = None
    color: Optional[ReferenceSummary] = None
    size: Optional[ReferenceSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        protected_namespaces = ()


class ProductPageOut(BaseModel):
    products: List[ProductOut]
    current_page: int
    total_pages: int
    total_products: int


class ImportRowError(BaseModel):
    row: int
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ImportReportOut(BaseModel):
    message: str
    inserted: int
    processed: int
    skipped_rows: List[int] = []
    errors: List[ImportRowError] = []


# Users / auth


class AddressIn(BaseModel):
    label: str = Field(default="Home", min_length=1, max_length=80)
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    district: str = Field(min_length=1)
    postal_code: Optional[str] = Field(default=None, max_length=16)
    is_primary: bool = False


class AddressOut(BaseModel):
    label: str
    street: str
    city: str
    district: str
    postal_code: Optional[str] = None
    is_primary: bool

    class Config:
        from_attributes = True


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: Optional[str] = Field(default=None, validation_alias="role_name")
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class UserDetailOut(UserOut):
    addresses: List[AddressOut] = []


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in_seconds: int
    user: UserOut


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
