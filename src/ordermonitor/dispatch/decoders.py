"""One decode rule per topic.

Each rule tries the topic's structured schema first (strict types, straight
from JSON), then its legacy key/value schema with lenient coercion, and
otherwise rejects the payload with a ``DecodeError``.
"""

import json
from datetime import datetime
from typing import Any, Callable, TypeVar

import structlog
from pydantic import ValidationError

from ordermonitor.contracts.base import LenientWireModel
from ordermonitor.contracts.carts import (
    CartUpdateMessage,
    LegacyCartUpdateMessage,
    has_voucher_info,
    to_cart_snapshot,
)
from ordermonitor.contracts.customers import (
    CustomerUpdateMessage,
    CustomerVouchersMessage,
    LegacyCustomerMessage,
    LegacyCustomerVouchersMessage,
    to_customer,
)
from ordermonitor.contracts.orders import (
    ORDER_LIST,
    LegacyOrderCancelledNotice,
    LegacyOrderListMessage,
    LegacyOrderPayload,
    LegacyPaymentNotice,
    OrderCancelledMessage,
    OrderPayload,
    PaymentSuccessMessage,
    to_order_record,
)
from ordermonitor.contracts.vouchers import (
    LegacyVoucherCatalogueMessage,
    LegacyVoucherOrderMessage,
    VoucherCatalogueMessage,
    VoucherOrderMessage,
    to_voucher_detail,
    to_voucher_event,
)
from ordermonitor.dispatch.topics import Topic
from ordermonitor.errors import DecodeError
from ordermonitor.model.cart import derive_order
from ordermonitor.model.events import (
    CartUpdated,
    CustomerIdentified,
    CustomerVouchersUpdated,
    MonitorEvent,
    OrderBatchReceived,
    OrderCancelled,
    PaymentSucceeded,
    VoucherCatalogueReceived,
    VoucherChanged,
)
from ordermonitor.model.voucher import VoucherAction, VoucherEvent, voucher_action_from_wire

logger = structlog.get_logger(__name__)

Payload = str | bytes
Decoder = Callable[[str, Payload, datetime], MonitorEvent]

S = TypeVar("S")
L = TypeVar("L", bound=LenientWireModel)


def _load_json(topic: str, payload: Payload) -> Any:
    try:
        return json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise DecodeError(topic, f"invalid JSON ({exc})") from exc


def decode_variant(
    topic: str,
    payload: Payload,
    structured: Callable[[Payload], S],
    legacy: type[L],
) -> S | L:
    """Decode ``payload`` as the structured shape, else the legacy shape, else reject."""
    try:
        return structured(payload)
    except ValidationError as exc:
        logger.debug("Structured decode failed, trying legacy shape", topic=topic, errors=exc.error_count())

    data = _load_json(topic, payload)
    try:
        message = legacy.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(topic, f"payload matches neither shape ({exc.error_count()} errors)") from exc
    if not message.has_known_fields():
        raise DecodeError(topic, "payload carries no recognised fields")
    return message


def decode_order_list(topic: str, payload: Payload, received_at: datetime) -> OrderBatchReceived:
    decoded = decode_variant(topic, payload, ORDER_LIST.validate_json, LegacyOrderListMessage)
    orders = decoded.orders if isinstance(decoded, LegacyOrderListMessage) else decoded
    return OrderBatchReceived(orders=tuple(to_order_record(order) for order in orders), replace=True)


def decode_order(topic: str, payload: Payload, received_at: datetime) -> OrderBatchReceived:
    decoded = decode_variant(topic, payload, OrderPayload.model_validate_json, LegacyOrderPayload)
    return OrderBatchReceived(orders=(to_order_record(decoded),))


def decode_cart_update(topic: str, payload: Payload, received_at: datetime) -> CartUpdated:
    message = decode_variant(topic, payload, CartUpdateMessage.model_validate_json, LegacyCartUpdateMessage)

    customer = None
    if message.customer is not None:
        embedded = message.customer
        customer = to_customer(embedded.id, embedded.name, embedded.phone, embedded.email)

    cart = to_cart_snapshot(message.cart) if message.cart is not None else None
    order = derive_order(
        message.order_id,
        cart,
        received_at,
        code=message.code,
        customer_name=message.customer_name or (customer.name if customer else ""),
        customer_phone=message.customer_phone or (customer.phone if customer and customer.phone else ""),
        customer_email=message.customer_email or (customer.email if customer and customer.email else ""),
        customer_id=message.customer_id or (customer.id if customer else 0),
        voucher_code=message.voucher_code or "",
        voucher_discount=message.voucher_discount or 0.0,
        timestamp=message.timestamp,
    )

    voucher = None
    if has_voucher_info(message):
        voucher = VoucherEvent(
            action=VoucherAction.APPLIED,
            order_id=message.order_id,
            voucher_id=message.voucher_id or 0,
            code=message.voucher_code or "",
            discount_value=message.voucher_discount or 0.0,
            active=True,
            timestamp=message.timestamp,
        )
    return CartUpdated(order=order, cart=cart, customer=customer, voucher=voucher)


def decode_customer_update(topic: str, payload: Payload, received_at: datetime) -> CustomerIdentified:
    message = decode_variant(topic, payload, CustomerUpdateMessage.model_validate_json, LegacyCustomerMessage)
    if isinstance(message, LegacyCustomerMessage) and not message.has_identity_fields():
        raise DecodeError(topic, "customer payload carries no identity fields")
    return CustomerIdentified(
        customer=to_customer(message.customer_id, message.name, message.phone, message.email),
        action=message.action,
        timestamp=message.timestamp,
    )


def decode_voucher_update(topic: str, payload: Payload, received_at: datetime) -> VoucherChanged:
    message = decode_variant(topic, payload, VoucherOrderMessage.model_validate_json, LegacyVoucherOrderMessage)
    action = voucher_action_from_wire(message.action)
    if action is None:
        raise DecodeError(topic, f"unknown voucher action {message.action!r}")
    return VoucherChanged(voucher=to_voucher_event(message, action))


def decode_voucher_catalogue(topic: str, payload: Payload, received_at: datetime) -> VoucherCatalogueReceived:
    message = decode_variant(
        topic, payload, VoucherCatalogueMessage.model_validate_json, LegacyVoucherCatalogueMessage
    )
    return VoucherCatalogueReceived(vouchers=tuple(to_voucher_detail(voucher) for voucher in message.vouchers))


def decode_customer_vouchers(topic: str, payload: Payload, received_at: datetime) -> CustomerVouchersUpdated:
    message = decode_variant(
        topic, payload, CustomerVouchersMessage.model_validate_json, LegacyCustomerVouchersMessage
    )
    customer = None
    if message.customer is not None:
        embedded = message.customer
        customer = to_customer(embedded.id, embedded.name, embedded.phone, embedded.email)
    return CustomerVouchersUpdated(customer=customer, count=message.count)


def decode_payment_success(topic: str, payload: Payload, received_at: datetime) -> PaymentSucceeded:
    message = decode_variant(topic, payload, PaymentSuccessMessage.model_validate_json, LegacyPaymentNotice)
    if isinstance(message, PaymentSuccessMessage):
        return PaymentSucceeded(order_id=message.order.id)
    return PaymentSucceeded(order_id=message.resolved_order_id())


def decode_order_cancelled(topic: str, payload: Payload, received_at: datetime) -> OrderCancelled:
    message = decode_variant(
        topic, payload, OrderCancelledMessage.model_validate_json, LegacyOrderCancelledNotice
    )
    if isinstance(message, OrderCancelledMessage):
        return OrderCancelled(order_id=message.order_id, reason=message.reason)
    return OrderCancelled(order_id=message.resolved_order_id(), reason=message.reason)


DECODERS: dict[Topic, Decoder] = {
    Topic.ORDER_LIST: decode_order_list,
    Topic.ORDER_CREATED: decode_order,
    Topic.ORDER_UPDATED: decode_order,
    Topic.ORDER_DETAIL: decode_order,
    Topic.CART_UPDATED: decode_cart_update,
    Topic.PAYMENT_SUCCESS: decode_payment_success,
    Topic.ORDER_CANCELLED: decode_order_cancelled,
    Topic.CUSTOMER_UPDATED: decode_customer_update,
    Topic.VOUCHER_ORDER_UPDATED: decode_voucher_update,
    Topic.VOUCHER_CATALOGUE: decode_voucher_catalogue,
    Topic.CUSTOMER_VOUCHERS: decode_customer_vouchers,
}
