"""Wire schemas for customer-identity announcements and customer voucher counts."""

from pydantic import AliasChoices, Field

from ordermonitor.contracts.base import LenientWireModel, WireModel
from ordermonitor.model.customer import Customer


class CustomerPayload(WireModel):
    """A customer object embedded in another message."""

    id: int = 0
    name: str = Field("", alias="ten")
    phone: str | None = Field(None, alias="soDienThoai")
    email: str | None = Field(None, alias="email")


class CustomerUpdateMessage(WireModel):
    action: str = Field("", alias="action")
    customer_id: int = Field(alias="khachHangId")
    name: str = Field("", alias="ten")
    phone: str | None = Field(None, alias="soDienThoai")
    email: str | None = Field(None, alias="email")
    timestamp: str = Field("", alias="timestamp")


class LegacyCustomerPayload(LenientWireModel):
    id: int = Field(0, validation_alias=AliasChoices("id", "khachHangId"))
    name: str = Field("", validation_alias=AliasChoices("ten", "tenKhachHang", "name"))
    phone: str | None = Field(None, validation_alias=AliasChoices("soDienThoai", "soDienThoaiKhachHang", "phone"))
    email: str | None = Field(None, validation_alias=AliasChoices("email", "emailKhachHang"))


class LegacyCustomerMessage(LenientWireModel):
    action: str = Field("", validation_alias="action")
    customer_id: int = Field(0, validation_alias=AliasChoices("khachHangId", "id", "customerId"))
    name: str = Field("", validation_alias=AliasChoices("ten", "tenKhachHang", "name"))
    phone: str | None = Field(None, validation_alias=AliasChoices("soDienThoai", "soDienThoaiKhachHang", "phone"))
    email: str | None = Field(None, validation_alias=AliasChoices("email", "emailKhachHang"))
    timestamp: str = Field("", validation_alias="timestamp")

    def has_identity_fields(self) -> bool:
        return bool(self.model_fields_set & {"customer_id", "name", "phone", "email"})


def to_customer(customer_id: int, name: str, phone: str | None, email: str | None) -> Customer:
    return Customer(
        id=customer_id,
        name=(name or "").strip(),
        phone=(phone or "").strip() or None,
        email=(email or "").strip() or None,
    )


class CustomerVouchersMessage(WireModel):
    """A customer's voucher count, optionally with the customer attached."""

    customer: CustomerPayload | None = Field(None, alias="khachHang")
    count: int = Field(alias="count")


class LegacyCustomerVouchersMessage(LenientWireModel):
    customer: LegacyCustomerPayload | None = Field(None, validation_alias=AliasChoices("khachHang", "customer"))
    count: int = Field(0, validation_alias=AliasChoices("count", "soLuong"))
