from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from prostore.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("name is required")
    return name


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    @validates("name")
    def _validate_name(self, key, value):
        return _clean_name(value)


class ProductModel(Base):
    __tablename__ = "product_models"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    @validates("name")
    def _validate_name(self, key, value):
        return _clean_name(value)


class Color(Base):
    __tablename__ = "colors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    hex_code: Mapped[str | None] = mapped_column(String(16))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    @validates("name")
    def _validate_name(self, key, value):
        return _clean_name(value)

    @validates("hex_code")
    def _validate_hex_code(self, key, value):
        return (value or "").strip() or None


class Size(Base):
    __tablename__ = "sizes"

    # size labels repeat across product lines, so no unique constraint here
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    @validates("name")
    def _validate_name(self, key, value):
        return _clean_name(value)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String)
    # Reference ids are plain columns: deleting a brand/model/color/size leaves
    # the product pointing at a missing row, which reads render as absent.
    brand_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    model_id: Mapped[str | None] = mapped_column(String(36))
    color_id: Mapped[str | None] = mapped_column(String(36), index=True)
    size_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    brand = relationship("Brand", primaryjoin="foreign(Product.brand_id) == Brand.id", viewonly=True)
    model = relationship("ProductModel", primaryjoin="foreign(Product.model_id) == ProductModel.id", viewonly=True)
    color = relationship("Color", primaryjoin="foreign(Product.color_id) == Color.id", viewonly=True)
    size = relationship("Size", primaryjoin="foreign(Product.size_id) == Size.id", viewonly=True)

    @validates("name")
    def _validate_name(self, key, value):
        return _clean_name(value)
