"""
Database Schemas for the online pharmacy

Each Pydantic model represents a collection in MongoDB. The collection name is the lowercase of the class name.
Request bodies accepted by the API live at the bottom of the module.
"""
from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    OUT_FOR_DELIVERY = "OUT FOR DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


Role = Literal["user", "admin"]


# Customer or administrator account
class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Login email, unique")
    password: str = Field(..., description="Credential hash")
    phone: str = Field(..., description="Phone number")
    address: str = Field(..., description="Default delivery address")
    role: Role = "user"


# Canonical medicine catalog entry
class Medicine(BaseModel):
    name: str = Field(..., min_length=1, description="Commercial name")
    description: str
    category: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(..., ge=0, description="Units in stock")
    manufacturer: str
    expiry_date: date
    image_url: Optional[str] = None
    requires_prescription: bool = False


# Line item embedded in an order; price is captured at checkout
class OrderItem(BaseModel):
    medicine: str = Field(..., description="Referenced medicine _id as string")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at order time")


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    total_amount: float = Field(..., ge=0)
    delivery_address: str
    phone: str
    status: OrderStatus = OrderStatus.PLACED
    rejection_reason: Optional[str] = None


# -----------------------------
# Request bodies
# -----------------------------

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class MedicineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    manufacturer: Optional[str] = None
    expiry_date: Optional[date] = None
    image_url: Optional[str] = None
    requires_prescription: Optional[bool] = None


class OrderItemRequest(BaseModel):
    medicine: str
    quantity: int = Field(..., ge=1)
    # what the client saw in its cart; the catalog price is what gets captured
    price: Optional[float] = Field(None, ge=0)


class CreateOrderRequest(BaseModel):
    items: List[OrderItemRequest] = Field(..., min_length=1)
    total_amount: Optional[float] = Field(None, ge=0)
    delivery_address: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    rejection_reason: Optional[str] = None
