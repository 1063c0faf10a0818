"""Wire schemas for cart updates."""

from pydantic import AliasChoices, Field

from ordermonitor.contracts.base import LenientWireModel, WireModel
from ordermonitor.contracts.customers import CustomerPayload, LegacyCustomerPayload
from ordermonitor.model.cart import CartLine, CartSnapshot


class CartLinePayload(WireModel):
    variant_id: int = Field(0, alias="chiTietSanPhamId")
    imei: str = Field("", alias="maImel")
    product_name: str = Field("", alias="tenSanPham")
    color: str = Field("", alias="mauSac")
    ram: str = Field("", alias="ram")
    storage: str = Field("", alias="boNhoTrong")
    quantity: int = Field(0, alias="soLuong")
    unit_price: float = Field(0.0, alias="giaBan")
    original_price: float = Field(0.0, alias="giaBanGoc")
    line_total: float = Field(0.0, alias="tongTien")
    image: str | None = Field(None, alias="image")


class CartPayload(WireModel):
    cart_id: str = Field("", alias="gioHangId")
    customer_id: int = Field(0, alias="khachHangId")
    lines: list[CartLinePayload] = Field(default_factory=list, alias="chiTietGioHangDTOS")
    total: float = Field(0.0, alias="tongTien")
    original_total: float = Field(0.0, alias="tongTienGoc")
    discount_total: float = Field(0.0, alias="tongGiamGia")


class CartUpdateMessage(WireModel):
    order_id: int = Field(alias="hoaDonId")
    code: str = Field("", alias="maHoaDon")
    cart: CartPayload | None = Field(None, alias="gioHang")
    timestamp: str = Field("", alias="timestamp")
    customer_name: str | None = Field(None, alias="tenKhachHang")
    customer_phone: str | None = Field(None, alias="soDienThoaiKhachHang")
    customer_email: str | None = Field(None, alias="emailKhachHang")
    customer_id: int | None = Field(None, alias="idKhachHang")
    customer: CustomerPayload | None = Field(None, alias="khachHang")
    voucher_id: int | None = Field(None, alias="idPhieuGiamGia")
    voucher_code: str | None = Field(None, alias="maPhieuGiamGia")
    voucher_discount: float | None = Field(None, alias="soTienGiam")


class LegacyCartLinePayload(LenientWireModel):
    variant_id: int = Field(0, validation_alias="chiTietSanPhamId")
    imei: str = Field("", validation_alias=AliasChoices("maImel", "imel"))
    product_name: str = Field("", validation_alias="tenSanPham")
    color: str = Field("", validation_alias="mauSac")
    ram: str = Field("", validation_alias="ram")
    storage: str = Field("", validation_alias="boNhoTrong")
    quantity: int = Field(0, validation_alias="soLuong")
    unit_price: float = Field(0.0, validation_alias="giaBan")
    original_price: float = Field(0.0, validation_alias="giaBanGoc")
    line_total: float = Field(0.0, validation_alias=AliasChoices("tongTien", "thanhTien"))
    image: str | None = Field(None, validation_alias=AliasChoices("image", "anhSanPham"))


class LegacyCartPayload(LenientWireModel):
    cart_id: str = Field("", validation_alias="gioHangId")
    customer_id: int = Field(0, validation_alias="khachHangId")
    lines: list[LegacyCartLinePayload] = Field(default_factory=list, validation_alias="chiTietGioHangDTOS")
    total: float = Field(0.0, validation_alias="tongTien")
    original_total: float = Field(0.0, validation_alias="tongTienGoc")
    discount_total: float = Field(0.0, validation_alias="tongGiamGia")


class LegacyCartUpdateMessage(LenientWireModel):
    order_id: int = Field(0, validation_alias=AliasChoices("hoaDonId", "id"))
    code: str = Field("", validation_alias="maHoaDon")
    cart: LegacyCartPayload | None = Field(None, validation_alias="gioHang")
    timestamp: str = Field("", validation_alias="timestamp")
    customer_name: str | None = Field(None, validation_alias="tenKhachHang")
    customer_phone: str | None = Field(None, validation_alias="soDienThoaiKhachHang")
    customer_email: str | None = Field(None, validation_alias="emailKhachHang")
    customer_id: int | None = Field(None, validation_alias=AliasChoices("idKhachHang", "khachHangId"))
    customer: LegacyCustomerPayload | None = Field(None, validation_alias="khachHang")
    voucher_id: int | None = Field(None, validation_alias="idPhieuGiamGia")
    voucher_code: str | None = Field(None, validation_alias="maPhieuGiamGia")
    voucher_discount: float | None = Field(None, validation_alias="soTienGiam")


def has_voucher_info(payload: CartUpdateMessage | LegacyCartUpdateMessage) -> bool:
    return bool(payload.voucher_code) or (payload.voucher_discount or 0) > 0


def to_cart_snapshot(payload: CartPayload | LegacyCartPayload) -> CartSnapshot:
    return CartSnapshot(
        cart_id=payload.cart_id,
        customer_id=max(payload.customer_id, 0),
        lines=tuple(
            CartLine(
                variant_id=line.variant_id,
                imei=line.imei,
                product_name=line.product_name,
                color=line.color,
                ram=line.ram,
                storage=line.storage,
                quantity=line.quantity,
                unit_price=line.unit_price,
                original_price=line.original_price,
                line_total=line.line_total,
                image=line.image or None,
            )
            for line in payload.lines
        ),
        total=payload.total,
        original_total=payload.original_total,
        discount_total=payload.discount_total,
    )
