"""Logical topics and their default broker destinations."""

from enum import Enum


class Topic(str, Enum):
    ORDER_LIST = "order_list"
    ORDER_CREATED = "order_created"
    ORDER_UPDATED = "order_updated"
    ORDER_DETAIL = "order_detail"
    CART_UPDATED = "cart_updated"
    PAYMENT_SUCCESS = "payment_success"
    ORDER_CANCELLED = "order_cancelled"
    CUSTOMER_UPDATED = "customer_updated"
    VOUCHER_ORDER_UPDATED = "voucher_order_updated"
    VOUCHER_CATALOGUE = "voucher_catalogue"
    CUSTOMER_VOUCHERS = "customer_vouchers"


DEFAULT_DESTINATIONS: dict[Topic, str] = {
    Topic.ORDER_LIST: "/topic/hoa-don-list",
    Topic.ORDER_CREATED: "/topic/hoa-don-created",
    Topic.ORDER_UPDATED: "/topic/hoa-don-updated",
    Topic.ORDER_DETAIL: "/topic/hoa-don-detail",
    Topic.CART_UPDATED: "/topic/gio-hang-update",
    Topic.PAYMENT_SUCCESS: "/topic/payment-success",
    Topic.ORDER_CANCELLED: "/topic/hoa-don-cancelled",
    Topic.CUSTOMER_UPDATED: "/topic/khach-hang-update",
    Topic.VOUCHER_ORDER_UPDATED: "/topic/voucher-order-update",
    Topic.VOUCHER_CATALOGUE: "/topic/phieu-giam-gia-update",
    Topic.CUSTOMER_VOUCHERS: "/topic/khach-hang-phieu-giam-gia-update",
}
