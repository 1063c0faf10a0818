"""Wire schemas for voucher-applied/removed notices and the voucher catalogue."""

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from ordermonitor.contracts.base import LenientWireModel, WireModel
from ordermonitor.model.voucher import VoucherAction, VoucherDetail, VoucherEvent


class VoucherOrderMessage(WireModel):
    action: str = Field(alias="action")
    order_id: int = Field(alias="hoaDonId")
    voucher_id: int = Field(0, alias="phieuGiamGiaId")
    code: str = Field("", alias="maPhieu")
    name: str = Field("", alias="tenPhieu")
    discount_value: float = Field(0.0, alias="giaTriGiam")
    remaining_uses: int = Field(0, alias="soLuongDung")
    active: bool = Field(False, alias="trangThai")
    timestamp: str = Field("", alias="timestamp")


class LegacyVoucherOrderMessage(LenientWireModel):
    action: str = Field("", validation_alias="action")
    order_id: int = Field(0, validation_alias=AliasChoices("hoaDonId", "orderId"))
    voucher_id: int = Field(0, validation_alias=AliasChoices("phieuGiamGiaId", "idPhieuGiamGia"))
    code: str = Field("", validation_alias=AliasChoices("maPhieu", "maPhieuGiamGia"))
    name: str = Field("", validation_alias="tenPhieu")
    discount_value: float = Field(0.0, validation_alias=AliasChoices("giaTriGiam", "soTienGiam"))
    remaining_uses: int = Field(0, validation_alias="soLuongDung")
    active: bool = Field(False, validation_alias="trangThai")
    timestamp: str = Field("", validation_alias="timestamp")


def to_voucher_event(
    payload: VoucherOrderMessage | LegacyVoucherOrderMessage, action: VoucherAction
) -> VoucherEvent:
    return VoucherEvent(
        action=action,
        order_id=payload.order_id,
        voucher_id=payload.voucher_id,
        code=payload.code,
        name=payload.name,
        discount_value=payload.discount_value,
        remaining_uses=payload.remaining_uses,
        active=payload.active,
        timestamp=payload.timestamp,
    )


# ---------------------------------------------------------------------------
# Voucher catalogue
# ---------------------------------------------------------------------------
class VoucherDetailPayload(WireModel):
    id: int
    code: str = Field("", alias="ma")
    name: str = Field("", alias="tenPhieuGiamGia")
    kind: str = Field("", alias="loaiPhieuGiamGia")
    percent: float | None = Field(None, alias="phanTramGiamGia")
    max_discount: float = Field(0.0, alias="soTienGiamToiDa")
    min_order_total: float = Field(0.0, alias="hoaDonToiThieu")
    used: int = Field(0, alias="soLuongDung")
    remaining: int = Field(0, alias="soLuongConLai")
    starts_on: str = Field("", alias="ngayBatDau")
    ends_on: str = Field("", alias="ngayKetThuc")
    enabled: bool = Field(False, alias="trangThai")


class VoucherCatalogueMessage(WireModel):
    vouchers: list[VoucherDetailPayload] = Field(alias="phieuGiamGias")


class LegacyVoucherDetailPayload(LenientWireModel):
    id: int = Field(0, validation_alias=AliasChoices("id", "phieuGiamGiaId"))
    code: str = Field("", validation_alias=AliasChoices("ma", "maPhieu", "maPhieuGiamGia"))
    name: str = Field("", validation_alias=AliasChoices("tenPhieuGiamGia", "tenPhieu"))
    kind: str = Field("", validation_alias="loaiPhieuGiamGia")
    percent: float | None = Field(None, validation_alias="phanTramGiamGia")
    max_discount: float = Field(0.0, validation_alias="soTienGiamToiDa")
    min_order_total: float = Field(0.0, validation_alias="hoaDonToiThieu")
    used: int = Field(0, validation_alias="soLuongDung")
    remaining: int = Field(0, validation_alias="soLuongConLai")
    starts_on: str = Field("", validation_alias="ngayBatDau")
    ends_on: str = Field("", validation_alias="ngayKetThuc")
    enabled: bool = Field(False, validation_alias="trangThai")


class LegacyVoucherCatalogueMessage(LenientWireModel):
    vouchers: list[LegacyVoucherDetailPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("phieuGiamGias", "content", "data"),
    )

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"phieuGiamGias": data}
        return data


def to_voucher_detail(payload: VoucherDetailPayload | LegacyVoucherDetailPayload) -> VoucherDetail:
    return VoucherDetail(
        id=payload.id,
        code=payload.code,
        name=payload.name,
        kind=payload.kind,
        percent=payload.percent,
        max_discount=payload.max_discount,
        min_order_total=payload.min_order_total,
        used=payload.used,
        remaining=payload.remaining,
        starts_on=payload.starts_on,
        ends_on=payload.ends_on,
        enabled=payload.enabled,
    )
