"""
Bakong payment reconciliation: QR issuing, client polling, webhook and the
periodic expiry sweep. All three confirmation paths funnel into the guarded
transitions of orders_service, so whichever arrives first wins and the others
become no-ops.
"""
import asyncio
from datetime import timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from shopease.config import settings
from shopease.models import Order, OrderStatus, PaymentMethod
from shopease.services import orders_service
from shopease.services.bakong_service import BakongService, KHQRResult, WebhookEvent
from shopease.utils.database import SessionLocal, utcnow
from shopease.utils.exceptions import NotFoundError, ShopError, ValidationError

PAYMENT_STATUS_BY_ORDER_STATUS = {
    OrderStatus.PENDING: "pending",
    OrderStatus.PROCESSING: "completed",
    OrderStatus.DELIVERED: "completed",
    OrderStatus.CANCELLED: "expired",
    OrderStatus.EXPIRED: "expired",
    OrderStatus.FAILED: "failed",
}


def _qr_response(result: KHQRResult) -> dict:
    return {
        "qr_string": result.qr_string,
        "md5": result.md5,
        "amount": result.amount,
        "currency": result.currency,
        "order_number": result.order_number,
        "expires_at": result.expires_at,
        "expires_in": result.expires_in,
    }


def issue_qr(db: Session, order: Order, provider: BakongService) -> dict:
    """Generate a KHQR for the order total in KHR and remember its md5"""
    if order.payment_method != PaymentMethod.BAKONG:
        raise ValidationError("Order is not a Bakong payment")
    if order.status != OrderStatus.PENDING:
        raise ValidationError(f"Order is {order.status}, payment is no longer possible")

    amount_khr = provider.convert_usd_to_khr(order.total)
    result = provider.generate_khqr(amount_khr, order.order_number, order.customer_city or None)
    order.bakong_transaction_id = result.md5
    db.commit()
    db.refresh(order)
    logger.info(f"Issued KHQR for order {order.order_number}: {amount_khr} KHR")
    return _qr_response(result)


def issue_qr_after_create(db: Session, order: Order, provider: BakongService) -> Optional[dict]:
    """QR problems after the order is committed are logged, the order stands"""
    if order.payment_method not in PaymentMethod.QR_BASED:
        return None
    try:
        return issue_qr(db, order, provider)
    except Exception as e:
        db.rollback()
        logger.error(f"KHQR generation failed for order {order.order_number}: {e}")
        return None


def _payment_status_response(order: Order, message: str) -> dict:
    return {
        "order_id": order.order_id,
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": PAYMENT_STATUS_BY_ORDER_STATUS.get(order.status, "pending"),
        "message": message,
    }


def check_payment_status(db: Session, order: Order, provider: BakongService) -> dict:
    """Client polling path"""
    if order.payment_method != PaymentMethod.BAKONG:
        raise ValidationError("Order is not a Bakong payment")

    if order.status != OrderStatus.PENDING:
        return _payment_status_response(order, f"Order is {order.status}")

    if orders_service.payment_window_elapsed(order, settings.ORDER_EXPIRY_MINUTES):
        if orders_service.cancel_unpaid_order(
            db, order, "Payment timeout - order cancelled and stock restored."
        ):
            return _payment_status_response(order, "Payment window has expired")
        # Another path settled the order first
        return _payment_status_response(order, f"Order is {order.status}")

    try:
        md5 = order.bakong_transaction_id
        if not md5:
            md5 = issue_qr(db, order, provider)["md5"]
        check = provider.verify_payment(md5)
    except ShopError as e:
        logger.warning(f"Payment check for order {order.order_number} failed: {e.message}")
        return _payment_status_response(order, "Unable to verify payment right now")

    if check.paid:
        orders_service.confirm_payment(
            db, order, f"Payment confirmed via Bakong status check. Transaction: {check.transaction_hash}"
        )
        return _payment_status_response(order, "Payment received")
    return _payment_status_response(order, "Waiting for payment")


def handle_webhook(db: Session, event: WebhookEvent) -> dict:
    if event.order_id is not None:
        order = db.query(Order).filter(Order.order_id == event.order_id).first()
    elif event.order_number:
        order = db.query(Order).filter(Order.order_number == event.order_number).first()
    else:
        raise ValidationError("Webhook payload must reference an order")
    if not order:
        raise NotFoundError("Order not found")
    if order.payment_method != PaymentMethod.BAKONG:
        raise ValidationError("Order is not a Bakong payment")

    if not event.paid:
        logger.info(f"Webhook for order {order.order_number} with status {event.status}, ignored")
        return {"success": True, "order_id": order.order_id, "status": order.status, "updated": False}

    updated = orders_service.confirm_payment(
        db, order, f"Payment confirmed via Bakong webhook. Transaction: {event.transaction_hash}"
    )
    if not updated:
        logger.info(f"Webhook for order {order.order_number} ignored, order is {order.status}")
    return {"success": True, "order_id": order.order_id, "status": order.status, "updated": updated}


def expire_stale_orders(session_factory=SessionLocal, expiry_minutes: Optional[int] = None) -> int:
    """
    Cancel pending QR orders older than the payment window and give their stock back.
    Each order is handled in its own session so one failure does not block the rest.
    Returns the number of orders cancelled.
    """
    expiry_minutes = expiry_minutes or settings.ORDER_EXPIRY_MINUTES
    cutoff = utcnow()

    db = session_factory()
    try:
        stale_ids = [
            row.order_id for row in
            db.query(Order.order_id)
            .filter(
                Order.status == OrderStatus.PENDING,
                Order.payment_method.in_(PaymentMethod.QR_BASED),
                Order.created_at <= cutoff - timedelta(minutes=expiry_minutes),
            )
            .all()
        ]
    finally:
        db.close()

    if not stale_ids:
        logger.debug("Expiry sweep: no stale orders")
        return 0

    cancelled = 0
    for order_id in stale_ids:
        db = session_factory()
        try:
            order = db.query(Order).filter(Order.order_id == order_id).first()
            if order and orders_service.cancel_unpaid_order(
                db, order, f"Auto-cancelled: Payment timeout after {expiry_minutes} minutes. Stock restored."
            ):
                cancelled += 1
        except Exception as e:
            logger.error(f"Expiry sweep failed for order {order_id}: {e}")
        finally:
            db.close()

    logger.info(f"Expiry sweep cancelled {cancelled} of {len(stale_ids)} stale order(s)")
    return cancelled


async def run_expiry_sweeper(stop_event: asyncio.Event):
    """Background loop started with the app"""
    interval = settings.CLEANUP_INTERVAL_MINUTES * 60
    delay = settings.CLEANUP_INITIAL_DELAY_SECONDS
    logger.info(
        f"Order expiry sweeper started: window={settings.ORDER_EXPIRY_MINUTES}m, "
        f"interval={settings.CLEANUP_INTERVAL_MINUTES}m, first run in {delay}s"
    )
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            break
        except asyncio.TimeoutError:
            pass
        try:
            await asyncio.to_thread(expire_stale_orders)
        except Exception as e:
            logger.error(f"Expiry sweep crashed: {e}")
        delay = interval
    logger.info("Order expiry sweeper stopped")
