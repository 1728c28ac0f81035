"""
Database Schemas for the Restaurant Management System

Each entity has a Create model (required and enumerated fields, checked
before the store is touched) and an Update model where every field is
optional: a field left out of a PATCH body is left unchanged.

Collections: users, foods, menus, tables, orders, orderItems, invoices, notes.
"""
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are read as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]

Quantity = Literal[1, 2, 3, 4, 5]
PaymentMethod = Literal["CARD", "CASH", ""]
PaymentStatus = Literal["PENDING", "PAID"]


# ===================== Users =====================
class SignupRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=6)
    email: EmailStr = Field(..., description="Unique email address")
    phone: str = Field(..., min_length=1, description="Unique phone number")
    avatar: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ===================== Menus =====================
class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class MenuUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


# ===================== Foods =====================
class FoodCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    price: float = Field(..., ge=0)
    food_image: str = Field(..., description="Image URL")
    menu_id: str = Field(..., description="Reference to menu_id")


class FoodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    food_image: Optional[str] = None
    menu_id: Optional[str] = None


# ===================== Tables =====================
class TableCreate(BaseModel):
    number_of_guests: int = Field(..., ge=1)
    table_number: int = Field(..., ge=1)


class TableUpdate(BaseModel):
    number_of_guests: Optional[int] = Field(None, ge=1)
    table_number: Optional[int] = Field(None, ge=1)


# ===================== Orders =====================
class OrderCreate(BaseModel):
    order_date: Optional[UTCDateTime] = Field(None, description="Defaults to the creation time")
    table_id: Optional[str] = Field(None, description="Reference to table_id")


class OrderUpdate(BaseModel):
    order_date: Optional[UTCDateTime] = None
    table_id: Optional[str] = None


# ===================== Order Items =====================
class OrderItemCreate(BaseModel):
    order_id: str = Field(..., description="Reference to order_id")
    food_id: str = Field(..., description="Reference to food_id")
    quantity: Quantity
    unit_price: Optional[float] = Field(None, ge=0, description="Defaults to the food's price")


class OrderItemUpdate(BaseModel):
    order_id: Optional[str] = None
    food_id: Optional[str] = None
    quantity: Optional[Quantity] = None
    unit_price: Optional[float] = Field(None, ge=0)


# ===================== Invoices =====================
class InvoiceCreate(BaseModel):
    order_id: str = Field(..., description="Reference to order_id")
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus
    payment_due: Optional[UTCDateTime] = Field(None, description="Defaults to 30 days after creation")


class InvoiceUpdate(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    payment_due: Optional[UTCDateTime] = None


# ===================== Notes =====================
class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    text: Optional[str] = Field(None, min_length=1)
