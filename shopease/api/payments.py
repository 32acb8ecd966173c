import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from shopease.api.deps import get_optional_user, get_payment_provider
from shopease.models import User
from shopease.schemas import KHQROut
from shopease.services import orders_service, payments_service
from shopease.services.bakong_service import BakongService
from shopease.utils.database import get_db
from shopease.utils.exceptions import ValidationError

router = APIRouter()


def _payable_order(db: Session, order_id: int, user: Optional[User]):
    # Guests and expired tokens may pay; a logged-in stranger may not
    order = orders_service.get_order(db, order_id)
    if user is not None:
        orders_service.check_order_access(order, user)
    return order


@router.get("/orders/{order_id}/bakong-qr", response_model=KHQROut)
def get_bakong_qr(order_id: int, db: Session = Depends(get_db), user: Optional[User] = Depends(get_optional_user),
                  provider: BakongService = Depends(get_payment_provider)):
    """Get a KHQR for a pending Bakong order"""
    order = _payable_order(db, order_id, user)
    return payments_service.issue_qr(db, order, provider)


@router.post("/orders/{order_id}/bakong-qr/regenerate", response_model=KHQROut)
def regenerate_bakong_qr(order_id: int, db: Session = Depends(get_db),
                         user: Optional[User] = Depends(get_optional_user),
                         provider: BakongService = Depends(get_payment_provider)):
    """Issue a fresh KHQR for a pending Bakong order"""
    order = _payable_order(db, order_id, user)
    return payments_service.issue_qr(db, order, provider)


@router.get("/orders/{order_id}/bakong-status")
def get_bakong_status(order_id: int, db: Session = Depends(get_db),
                      user: Optional[User] = Depends(get_optional_user),
                      provider: BakongService = Depends(get_payment_provider)):
    """Check whether a Bakong order has been paid"""
    order = _payable_order(db, order_id, user)
    return payments_service.check_payment_status(db, order, provider)


@router.post("/api/payments/bakong/webhook")
async def bakong_webhook(request: Request, x_bakong_signature: Optional[str] = Header(None),
                         db: Session = Depends(get_db),
                         provider: BakongService = Depends(get_payment_provider)):
    """Bakong payment callback"""
    raw_body = await request.body()
    if not provider.verify_webhook_signature(raw_body, x_bakong_signature):
        raise ValidationError("Invalid webhook signature")
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise ValidationError("Webhook body must be JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    event = provider.parse_webhook(payload)
    return payments_service.handle_webhook(db, event)
