"""
Database Schemas for Sports Plus

Each Pydantic model validates a document before it is written to its MongoDB
collection: User -> "users", SportsClass -> "classes", CartItem -> "carts",
Payment -> "payments". Unknown profile and descriptive fields are kept.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    admin = "admin"
    instructor = "instructor"


class ClassStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class Document(BaseModel):
    model_config = ConfigDict(extra="allow", use_enum_values=True, validate_default=True)


class User(Document):
    email: EmailStr
    name: Optional[str] = None
    photo: Optional[str] = None
    # Unset until promoted by an admin.
    role: Optional[Role] = None


class SportsClass(Document):
    name: str
    email: EmailStr = Field(..., description="Owning instructor")
    instructor: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    seats: int = Field(..., ge=0)
    student: int = Field(0, ge=0)
    status: ClassStatus = ClassStatus.pending
    feedback: List[str] = []


class CartItem(Document):
    email: EmailStr
    class_id: str
    price: float = Field(..., ge=0)
    name: Optional[str] = None
    image: Optional[str] = None
    instructor: Optional[str] = None


class Payment(Document):
    id: str = Field(..., min_length=1, description="Client-supplied payment key")
    email: EmailStr
    price: float = Field(..., ge=0)
    class_id: Optional[str] = None
    cart_item_id: Optional[str] = None
    transaction_id: Optional[str] = None
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def cart_reference(self) -> str:
        return self.cart_item_id or self.id


# ----- Request bodies -----

class TokenRequest(Document):
    email: EmailStr


class FeedbackRequest(BaseModel):
    feedback: str = Field(..., min_length=1)


class PaymentIntentRequest(BaseModel):
    price: float = Field(..., gt=0)
