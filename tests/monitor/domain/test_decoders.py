"""Tests for the per-topic decode rules."""

import json
from datetime import UTC, datetime

import pytest
from ordermonitor.dispatch.decoders import (
    DECODERS,
    decode_cart_update,
    decode_customer_update,
    decode_customer_vouchers,
    decode_order,
    decode_order_cancelled,
    decode_order_list,
    decode_payment_success,
    decode_voucher_catalogue,
    decode_voucher_update,
)
from ordermonitor.dispatch.topics import Topic
from ordermonitor.errors import DecodeError
from ordermonitor.model.customer import Customer
from ordermonitor.model.events import (
    CartUpdated,
    CustomerIdentified,
    CustomerVouchersUpdated,
    OrderBatchReceived,
    OrderCancelled,
    PaymentSucceeded,
    VoucherCatalogueReceived,
    VoucherChanged,
)
from ordermonitor.model.voucher import VoucherAction

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _decode(decoder, payload):
    return decoder("/topic/test", payload if isinstance(payload, str) else json.dumps(payload), NOW)


class TestOrderDecoders:
    def test_structured_list_replaces(self):
        event = _decode(decode_order_list, [{"id": 1, "maHoaDon": "HD1", "tongTienSauGiam": 1000}])

        assert isinstance(event, OrderBatchReceived)
        assert event.replace is True
        assert event.orders[0].totals.grand_total == 1000

    def test_legacy_list(self):
        event = _decode(decode_order_list, {"hoaDons": [{"id": "2", "tongTienSauGiam": "1500"}]})

        assert event.replace is True
        assert event.orders[0].id == 2
        assert event.orders[0].totals.grand_total == 1500

    def test_empty_list_is_a_valid_full_snapshot(self):
        event = _decode(decode_order_list, [])
        assert event.orders == ()
        assert event.replace is True

    def test_single_order_merges(self):
        event = _decode(decode_order, {"hoaDon": {"id": "3", "tenKhachHang": "Le C"}})

        assert event.replace is False
        assert event.orders[0].id == 3
        assert event.orders[0].customer_name == "Le C"

    def test_invalid_json_is_rejected(self):
        with pytest.raises(DecodeError) as exc_info:
            _decode(decode_order_list, "not json")
        assert exc_info.value.topic == "/topic/test"
        assert "invalid JSON" in exc_info.value.reason

    def test_unrecognised_payload_is_rejected(self):
        with pytest.raises(DecodeError):
            _decode(decode_order, {"unrelated": 1})

    def test_every_topic_has_a_decoder(self):
        assert set(DECODERS) == set(Topic)


class TestCartDecoder:
    def test_cart_with_embedded_customer_and_voucher(self):
        event = _decode(
            decode_cart_update,
            {
                "hoaDonId": 7,
                "gioHang": {
                    "chiTietGioHangDTOS": [
                        {"tenSanPham": "Phone X", "soLuong": 2, "giaBan": 90, "giaBanGoc": 100, "tongTien": 180}
                    ],
                    "tongTien": 170,
                },
                "khachHang": {"id": 5, "ten": "Tran B", "soDienThoai": "0901111111"},
                "idPhieuGiamGia": 11,
                "maPhieuGiamGia": "SALE10",
                "soTienGiam": 10,
            },
        )

        assert isinstance(event, CartUpdated)
        assert event.order.id == 7
        assert event.order.customer_id == 5
        assert event.order.customer_name == "Tran B"
        assert event.order.totals.discount == 10
        assert event.customer == Customer(id=5, name="Tran B", phone="0901111111")
        assert event.voucher.action is VoucherAction.APPLIED
        assert event.voucher.code == "SALE10"
        assert event.voucher.voucher_id == 11

    def test_legacy_cart_without_extras(self):
        event = _decode(decode_cart_update, {"hoaDonId": "8", "gioHang": {"tongTien": "500"}})

        assert event.order.id == 8
        assert event.order.totals.grand_total == 500
        assert event.customer is None
        assert event.voucher is None
        assert event.order.created_at == "2025-03-01 09:00:00+00:00"


class TestCustomerDecoder:
    def test_structured(self):
        event = _decode(
            decode_customer_update,
            {"action": "CUSTOMER_SELECTED", "khachHangId": 5, "ten": "Tran B", "soDienThoai": "0901111111"},
        )

        assert isinstance(event, CustomerIdentified)
        assert event.customer == Customer(id=5, name="Tran B", phone="0901111111")
        assert event.action == "CUSTOMER_SELECTED"

    def test_legacy(self):
        event = _decode(decode_customer_update, {"id": "5", "tenKhachHang": "Tran B"})
        assert event.customer == Customer(id=5, name="Tran B")

    def test_reset_signal_decodes(self):
        event = _decode(decode_customer_update, {"action": "RESET", "khachHangId": 0})
        assert event.customer.is_guest_sentinel()

    def test_payload_without_identity_is_rejected(self):
        with pytest.raises(DecodeError):
            _decode(decode_customer_update, {"action": "PING"})


class TestVoucherDecoder:
    def test_removed(self):
        event = _decode(decode_voucher_update, {"action": "VOUCHER_REMOVED", "hoaDonId": 9, "maPhieu": "SALE10"})

        assert isinstance(event, VoucherChanged)
        assert event.voucher.action is VoucherAction.REMOVED
        assert event.voucher.order_id == 9

    def test_unknown_action_is_rejected(self):
        with pytest.raises(DecodeError):
            _decode(decode_voucher_update, {"action": "VOUCHER_EXPLODED", "hoaDonId": 9})


class TestVoucherCatalogueDecoders:
    def test_catalogue(self):
        event = _decode(decode_voucher_catalogue, {"phieuGiamGias": [{"id": 1, "ma": "A"}, {"id": 2, "ma": "B"}]})

        assert isinstance(event, VoucherCatalogueReceived)
        assert [voucher.code for voucher in event.vouchers] == ["A", "B"]

    def test_empty_catalogue_payload_is_rejected(self):
        with pytest.raises(DecodeError):
            _decode(decode_voucher_catalogue, {})

    def test_customer_vouchers_with_customer(self):
        event = _decode(decode_customer_vouchers, {"khachHang": {"id": 5, "ten": "Tran B"}, "count": 2})

        assert isinstance(event, CustomerVouchersUpdated)
        assert event.customer == Customer(id=5, name="Tran B")
        assert event.count == 2

    def test_customer_vouchers_without_customer(self):
        event = _decode(decode_customer_vouchers, {"count": 0})
        assert event.customer is None


class TestNoticeDecoders:
    def test_payment_success_structured(self):
        event = _decode(decode_payment_success, {"hoaDon": {"id": 100, "tongTienSauGiam": 1800}})
        assert event == PaymentSucceeded(order_id=100)

    def test_payment_success_legacy(self):
        assert _decode(decode_payment_success, {"hoaDonId": "100"}) == PaymentSucceeded(order_id=100)

    def test_cancelled_structured(self):
        event = _decode(decode_order_cancelled, {"hoaDonId": 7, "lyDo": "Khách hủy"})
        assert event == OrderCancelled(order_id=7, reason="Khách hủy")

    def test_cancelled_legacy(self):
        assert _decode(decode_order_cancelled, {"orderId": "7"}) == OrderCancelled(order_id=7)
