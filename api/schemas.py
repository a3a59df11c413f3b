from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Users
class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(Token):
    user: UserResponse


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def email_has_at(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str


# Catalog
class CommissionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: str | None = Field(default=None, max_length=100)
    price_value: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    type: str = "product"
    commission_type: CommissionType = CommissionType.PERCENTAGE
    commission_value: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category: str | None = None
    image_data: str | None = None
    product_url: str = Field(min_length=1)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: str | None = Field(default=None, max_length=100)
    price_value: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    type: str | None = None
    commission_type: CommissionType | None = None
    commission_value: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = None
    image_data: str | None = None
    product_url: str | None = Field(default=None, min_length=1)


class ProductResponse(ProductBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


# Affiliate links and tracking
class LinkGenerateRequest(BaseModel):
    product_id: int


class LinkResponse(BaseModel):
    id: int
    user_id: int
    product_id: int
    link_code: str
    created_at: datetime

    class Config:
        from_attributes = True


class LinkWithStatsResponse(LinkResponse):
    product_name: str
    price: str | None = None
    commission_type: CommissionType
    commission_value: Decimal
    clicks: int
    conversions: int
    revenue: Decimal


class LinkLookupResponse(LinkResponse):
    product_name: str
    product_url: str


class ClickTrackRequest(BaseModel):
    link_code: str = Field(min_length=1)


class ConversionTrackRequest(BaseModel):
    link_code: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class ConversionTrackResponse(BaseModel):
    message: str = "Conversion tracked"
    conversion_id: int
    amount: Decimal
    commission: Decimal


class MessageResponse(BaseModel):
    message: str


# Payouts
class PayoutStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class PayoutRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    payment_method: str | None = Field(default=None, max_length=100)
    payment_details: str | None = None


class PayoutResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    status: PayoutStatus
    payment_method: str | None = None
    payment_details: str | None = None
    requested_at: datetime
    processed_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminPayoutResponse(PayoutResponse):
    name: str
    email: str


class PayoutStatusUpdate(BaseModel):
    status: PayoutStatus


class BalanceResponse(BaseModel):
    total_earned: Decimal
    total_committed: Decimal
    available: Decimal


# Reporting
class DailyStat(BaseModel):
    date: str
    clicks: int
    conversions: int
    revenue: Decimal


class ProductStat(BaseModel):
    id: int
    name: str
    clicks: int
    conversions: int
    revenue: Decimal


class ProductLeaderboardEntry(ProductStat):
    category: str | None = None
    price: str | None = None


class MarketerLeaderboardEntry(BaseModel):
    id: int
    name: str
    email: str
    clicks: int
    conversions: int
    revenue: Decimal


class AdminUserOverview(UserResponse):
    total_links: int
    total_clicks: int
    total_conversions: int
    total_earnings: Decimal


class AdminConversion(BaseModel):
    id: int
    link_id: int
    amount: Decimal
    commission: Decimal
    converted_at: datetime
    link_code: str
    user_id: int
    user_name: str
    email: str
    product_name: str


class AdminStats(BaseModel):
    total_users: int
    total_products: int
    total_links: int
    total_clicks: int
    total_conversions: int
    total_revenue: Decimal
    total_commissions: Decimal
