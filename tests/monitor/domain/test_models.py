"""Tests for customer, order and cart value objects."""

from datetime import UTC, datetime

from ordermonitor.model.cart import PENDING_STATUS_TEXT, CartLine, CartSnapshot, derive_order
from ordermonitor.model.customer import GUEST_NAME, Customer, is_placeholder_name
from ordermonitor.model.order import LineItem, OrderRecord, OrderStatus, OrderTotals
from ordermonitor.model.voucher import VoucherAction, VoucherDetail, voucher_action_from_wire

RECEIVED_AT = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


class TestCustomer:
    def test_valid_for_display_needs_id_and_name_or_phone(self):
        assert Customer(id=5, name="Tran B").is_valid_for_display()
        assert Customer(id=5, phone="0901111111").is_valid_for_display()
        assert not Customer(id=5).is_valid_for_display()
        assert not Customer(id=0, name="Tran B").is_valid_for_display()

    def test_guest_sentinel(self):
        assert Customer(id=0).is_guest_sentinel()
        assert Customer(id=-1, name="Tran B").is_guest_sentinel()
        assert Customer(id=7, name="Khách lẻ").is_guest_sentinel()
        assert not Customer(id=7, name="Tran B").is_guest_sentinel()

    def test_placeholder_names_ignore_case_and_padding(self):
        assert is_placeholder_name("  KHÁCH VÃNG LAI ")
        assert is_placeholder_name("Guest")
        assert not is_placeholder_name("Khách hàng A")

    def test_lookup_keys(self):
        customer = Customer(id=5, name="Tran B", phone="0901111111", email="b@shop.vn")
        assert customer.lookup_keys() == ("id:5", "0901111111", "b@shop.vn")
        assert Customer(id=6, name="Le C").lookup_keys() == ("id:6",)

    def test_display_name_defaults_to_guest(self):
        assert Customer(id=5, phone="0901").display_name == GUEST_NAME


class TestOrderRecord:
    def test_unknown_status_codes_are_pending(self):
        assert OrderStatus.from_code(3) is OrderStatus.COMPLETED
        assert OrderStatus.from_code(99) is OrderStatus.PENDING

    def test_default_code(self):
        assert OrderRecord(id=42).code == "HD000042"
        assert OrderRecord(id=42, code="HD-X").code == "HD-X"

    def test_grand_total_is_clamped(self):
        assert OrderTotals(subtotal=100, discount=150, grand_total=-50).grand_total == 0

    def test_item_count_sums_quantities(self):
        items = (LineItem(product_name="A", quantity=2), LineItem(product_name="B", quantity=3))
        order = OrderRecord(id=1, items=items)
        assert order.item_count == 5
        assert OrderRecord(id=2).item_count == 0

    def test_trusted_customer_needs_real_name_and_id(self):
        assert OrderRecord(id=1, customer_name="Tran B", customer_id=5).has_trusted_customer()
        assert not OrderRecord(id=1, customer_name="Khách lẻ", customer_id=5).has_trusted_customer()
        assert not OrderRecord(id=1, customer_name="Tran B").has_trusted_customer()

    def test_customer_info(self):
        assert not OrderRecord(id=1).has_customer_info()
        assert not OrderRecord(id=1, customer_name="Khách lẻ").has_customer_info()
        assert OrderRecord(id=1, customer_phone="0901").has_customer_info()
        assert OrderRecord(id=1, customer_id=9).has_customer_info()

    def test_looks_like_guest(self):
        assert OrderRecord(id=1, customer_name="guest").looks_like_guest()
        assert not OrderRecord(id=1, customer_email="a@b.vn").looks_like_guest()

    def test_with_customer_and_back_to_guest(self):
        order = OrderRecord(id=1).with_customer(Customer(id=5, name="Tran B", phone="0901111111"))
        assert (order.customer_id, order.customer_name, order.customer_phone) == (5, "Tran B", "0901111111")

        guest = order.as_guest()
        assert guest.customer_id == 0
        assert guest.customer_name == GUEST_NAME
        assert guest.customer_phone == ""

    def test_nameless_customer_shows_placeholder(self):
        order = OrderRecord(id=1).with_customer(Customer(id=5, phone="0901"))
        assert order.customer_name == GUEST_NAME

    def test_line_total_falls_back_to_unit_price(self):
        assert LineItem(unit_price=100, quantity=2).effective_total == 200
        assert LineItem(unit_price=100, quantity=2, line_total=150).effective_total == 150


class TestDeriveOrder:
    def _make_cart(self, **kwargs):
        line = CartLine(product_name="Phone X", unit_price=90, original_price=100, quantity=2, line_total=180)
        return CartSnapshot(cart_id="c1", lines=(line,), **kwargs)

    def test_subtotal_is_sum_of_lines_without_original_total(self):
        order = derive_order(7, self._make_cart(total=170), RECEIVED_AT)

        assert order.code == "HD000007"
        assert order.totals.subtotal == 180
        assert order.totals.discount == 10
        assert order.totals.grand_total == 170
        assert order.status is OrderStatus.PENDING
        assert order.status_text == PENDING_STATUS_TEXT
        assert order.customer_name == GUEST_NAME
        assert order.items[0].product_name == "Phone X"

    def test_original_total_and_voucher_discount_win(self):
        order = derive_order(7, self._make_cart(total=170, original_total=200), RECEIVED_AT, voucher_discount=25)

        assert order.totals.subtotal == 200
        assert order.totals.discount == 25

    def test_cart_customer_id_used_when_message_has_none(self):
        order = derive_order(7, self._make_cart(customer_id=9), RECEIVED_AT)
        assert order.customer_id == 9

    def test_creation_time_defaults_to_receipt(self):
        assert derive_order(7, None, RECEIVED_AT).created_at == "2025-03-01 09:00:00+00:00"
        assert derive_order(7, None, RECEIVED_AT, timestamp="2025-03-01 08:00:00").created_at == "2025-03-01 08:00:00"

    def test_missing_cart_yields_empty_totals(self):
        order = derive_order(7, None, RECEIVED_AT)
        assert order.items == ()
        assert order.totals == OrderTotals()

    def test_line_discount(self):
        assert CartLine(unit_price=90, original_price=100, quantity=2).discount_amount == 20


class TestVoucherActions:
    def test_wire_actions(self):
        assert voucher_action_from_wire("VOUCHER_APPLIED") is VoucherAction.APPLIED
        assert voucher_action_from_wire("voucher_used") is VoucherAction.APPLIED
        assert voucher_action_from_wire("VOUCHER_REMOVED") is VoucherAction.REMOVED
        assert voucher_action_from_wire("VOUCHER_CANCELLED") is VoucherAction.REMOVED
        assert voucher_action_from_wire("SOMETHING") is None


def _catalogue_voucher(**overrides):
    defaults = {
        "id": 1,
        "code": "SALE10",
        "kind": "Phần trăm",
        "percent": 10.0,
        "max_discount": 50_000.0,
        "min_order_total": 100_000.0,
        "remaining": 3,
        "starts_on": "2025-02-01",
        "ends_on": "2025-03-31T23:59:59",
        "enabled": True,
    }
    defaults.update(overrides)
    return VoucherDetail(**defaults)


class TestVoucherDetail:
    def test_validity_window_uses_the_date_part(self):
        assert _catalogue_voucher(ends_on="2025-02-28").is_expired(RECEIVED_AT)
        assert not _catalogue_voucher(ends_on="2025-03-02T00:00:00").is_expired(RECEIVED_AT)
        assert not _catalogue_voucher(starts_on="2025-03-02").is_started(RECEIVED_AT)
        assert _catalogue_voucher(starts_on="2025-03-01").is_started(RECEIVED_AT)

    def test_missing_or_unreadable_dates_never_block(self):
        voucher = _catalogue_voucher(starts_on="", ends_on="")
        assert voucher.is_started(RECEIVED_AT) and not voucher.is_expired(RECEIVED_AT)

        voucher = _catalogue_voucher(starts_on="soon", ends_on="later")
        assert voucher.is_started(RECEIVED_AT) and not voucher.is_expired(RECEIVED_AT)

    def test_active_needs_enabled_started_unexpired_and_remaining(self):
        assert _catalogue_voucher().is_active(RECEIVED_AT)
        assert not _catalogue_voucher(enabled=False).is_active(RECEIVED_AT)
        assert not _catalogue_voucher(remaining=0).is_active(RECEIVED_AT)
        assert not _catalogue_voucher(ends_on="2025-01-31").is_active(RECEIVED_AT)

    def test_status_text(self):
        assert _catalogue_voucher(enabled=False).status_text(RECEIVED_AT) == "Tạm dừng"
        assert _catalogue_voucher(ends_on="2025-01-31").status_text(RECEIVED_AT) == "Hết hạn"
        assert _catalogue_voucher(starts_on="2025-04-01").status_text(RECEIVED_AT) == "Chưa bắt đầu"
        assert _catalogue_voucher(remaining=0).status_text(RECEIVED_AT) == "Hết lượt"
        assert _catalogue_voucher().status_text(RECEIVED_AT) == "Đang hoạt động"

    def test_percent_discount_is_capped(self):
        voucher = _catalogue_voucher()
        assert voucher.discount_for(300_000, RECEIVED_AT) == 30_000
        assert voucher.discount_for(1_000_000, RECEIVED_AT) == 50_000

    def test_fixed_discount_never_exceeds_the_total(self):
        voucher = _catalogue_voucher(kind="tiền mặt", percent=None, max_discount=30_000.0, min_order_total=0.0)
        assert voucher.discount_for(200_000, RECEIVED_AT) == 30_000
        assert voucher.discount_for(20_000, RECEIVED_AT) == 20_000

    def test_no_discount_below_minimum_inactive_or_unknown_kind(self):
        assert _catalogue_voucher().discount_for(99_999, RECEIVED_AT) == 0
        assert _catalogue_voucher(remaining=0).discount_for(300_000, RECEIVED_AT) == 0
        assert _catalogue_voucher(kind="gift").discount_for(300_000, RECEIVED_AT) == 0
