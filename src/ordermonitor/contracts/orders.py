"""Wire schemas for order payloads (single order, order list, order notices)."""

from typing import Any

from pydantic import AliasChoices, Field, TypeAdapter, model_validator

from ordermonitor.contracts.base import LenientWireModel, WireModel
from ordermonitor.model.order import LineItem, OrderRecord, OrderStatus, OrderTotals, PaymentLine


# ---------------------------------------------------------------------------
# Structured shapes
# ---------------------------------------------------------------------------
class LineItemPayload(WireModel):
    product_name: str = Field("", alias="tenSanPham")
    color: str = Field("", alias="mauSac")
    ram: str = Field("", alias="ram")
    storage: str = Field("", alias="boNhoTrong")
    quantity: int = Field(0, alias="soLuong")
    unit_price: float = Field(0.0, alias="giaBan")
    line_total: float = Field(0.0, alias="thanhTien")
    imei: str = Field("", alias="imel")
    image: str | None = Field(None, alias="anhSanPham")


class PaymentLinePayload(WireModel):
    method: str = Field("", alias="phuongThuc")
    amount: float = Field(0.0, alias="soTien")
    note: str = Field("", alias="ghiChu")


class OrderPayload(WireModel):
    id: int
    code: str = Field("", alias="maHoaDon")
    customer_name: str = Field("", alias="tenKhachHang")
    customer_phone: str = Field("", alias="soDienThoaiKhachHang")
    customer_email: str = Field("", alias="emailKhachHang")
    customer_address: str = Field("", alias="diaChiKhachHang")
    customer_id: int | None = Field(None, alias="khachHangId")
    subtotal: float = Field(0.0, alias="tongTien")
    grand_total: float = Field(0.0, alias="tongTienSauGiam")
    shipping_fee: float = Field(0.0, alias="phiVanChuyen")
    discount: float = Field(0.0, alias="tienGiamGia")
    voucher_code: str = Field("", alias="maPhieuGiamGia")
    note: str = Field("", alias="ghiChu")
    status: int = Field(0, alias="trangThai")
    status_text: str = Field("", alias="trangThaiText")
    order_type: str = Field("", alias="loaiDon")
    created_at: str = Field("", alias="ngayTao")
    paid_at: str = Field("", alias="ngayThanhToan")
    staff_name: str = Field("", alias="tenNhanVien")
    items: list[LineItemPayload] = Field(default_factory=list, alias="sanPhamChiTiet")
    payments: list[PaymentLinePayload] = Field(default_factory=list, alias="thanhToanInfo")


ORDER_LIST = TypeAdapter(list[OrderPayload])


class PaymentSuccessMessage(WireModel):
    order: OrderPayload = Field(alias="hoaDon")


class OrderCancelledMessage(WireModel):
    order_id: int = Field(alias="hoaDonId")
    reason: str = Field("", alias="lyDo")


# ---------------------------------------------------------------------------
# Legacy generic shapes
# ---------------------------------------------------------------------------
class LegacyLineItemPayload(LenientWireModel):
    product_name: str = Field("", validation_alias=AliasChoices("tenSanPham", "productName"))
    color: str = Field("", validation_alias=AliasChoices("mauSac", "color"))
    ram: str = Field("", validation_alias="ram")
    storage: str = Field("", validation_alias=AliasChoices("boNhoTrong", "storage"))
    quantity: int = Field(0, validation_alias=AliasChoices("soLuong", "quantity"))
    unit_price: float = Field(0.0, validation_alias=AliasChoices("giaBan", "price"))
    line_total: float = Field(0.0, validation_alias=AliasChoices("thanhTien", "tongTien"))
    imei: str = Field("", validation_alias=AliasChoices("imel", "maImel"))
    image: str | None = Field(None, validation_alias=AliasChoices("anhSanPham", "image"))


class LegacyPaymentLinePayload(LenientWireModel):
    method: str = Field("", validation_alias="phuongThuc")
    amount: float = Field(0.0, validation_alias="soTien")
    note: str = Field("", validation_alias="ghiChu")


class LegacyOrderPayload(LenientWireModel):
    id: int = Field(0, validation_alias=AliasChoices("id", "hoaDonId"))
    code: str = Field("", validation_alias="maHoaDon")
    customer_name: str = Field("", validation_alias="tenKhachHang")
    customer_phone: str = Field("", validation_alias="soDienThoaiKhachHang")
    customer_email: str = Field("", validation_alias="emailKhachHang")
    customer_address: str = Field("", validation_alias="diaChiKhachHang")
    customer_id: int | None = Field(None, validation_alias=AliasChoices("khachHangId", "idKhachHang"))
    subtotal: float = Field(0.0, validation_alias="tongTien")
    grand_total: float = Field(0.0, validation_alias="tongTienSauGiam")
    shipping_fee: float = Field(0.0, validation_alias="phiVanChuyen")
    discount: float = Field(0.0, validation_alias="tienGiamGia")
    voucher_code: str = Field("", validation_alias="maPhieuGiamGia")
    note: str = Field("", validation_alias="ghiChu")
    status: int = Field(0, validation_alias="trangThai")
    status_text: str = Field("", validation_alias="trangThaiText")
    order_type: str = Field("", validation_alias="loaiDon")
    created_at: str = Field("", validation_alias="ngayTao")
    paid_at: str = Field("", validation_alias="ngayThanhToan")
    staff_name: str = Field("", validation_alias="tenNhanVien")
    items: list[LegacyLineItemPayload] = Field(default_factory=list, validation_alias="sanPhamChiTiet")
    payments: list[LegacyPaymentLinePayload] = Field(default_factory=list, validation_alias="thanhToanInfo")

    @model_validator(mode="before")
    @classmethod
    def _unwrap_envelope(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("hoaDon"), dict):
            return data["hoaDon"]
        return data


class LegacyOrderListMessage(LenientWireModel):
    orders: list[LegacyOrderPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("hoaDons", "content", "data", "orders"),
    )

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"hoaDons": data}
        return data


class LegacyPaymentNotice(LenientWireModel):
    order_id: int = Field(0, validation_alias=AliasChoices("hoaDonId", "id"))
    order: LegacyOrderPayload | None = Field(None, validation_alias="hoaDon")

    def resolved_order_id(self) -> int:
        if self.order is not None and self.order.id > 0:
            return self.order.id
        return self.order_id


class LegacyOrderCancelledNotice(LegacyPaymentNotice):
    order_id: int = Field(0, validation_alias=AliasChoices("hoaDonId", "id", "orderId"))
    reason: str = Field("", validation_alias=AliasChoices("lyDo", "reason"))


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------
def to_order_record(payload: OrderPayload | LegacyOrderPayload) -> OrderRecord:
    return OrderRecord(
        id=payload.id,
        code=payload.code,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_email=payload.customer_email,
        customer_address=payload.customer_address,
        customer_id=max(payload.customer_id or 0, 0),
        items=tuple(
            LineItem(
                product_name=item.product_name,
                color=item.color,
                ram=item.ram,
                storage=item.storage,
                quantity=item.quantity,
                unit_price=int(item.unit_price),
                line_total=int(item.line_total),
                imei=item.imei,
                image=item.image or None,
            )
            for item in payload.items
        ),
        payments=tuple(
            PaymentLine(method=line.method, amount=int(line.amount), note=line.note) for line in payload.payments
        ),
        status=OrderStatus.from_code(payload.status),
        status_text=payload.status_text,
        voucher_code=payload.voucher_code,
        totals=OrderTotals(
            subtotal=int(payload.subtotal),
            shipping_fee=int(payload.shipping_fee),
            discount=int(payload.discount),
            grand_total=int(payload.grand_total),
        ),
        created_at=payload.created_at,
        paid_at=payload.paid_at,
        note=payload.note,
        order_type=payload.order_type,
        staff_name=payload.staff_name,
    )
