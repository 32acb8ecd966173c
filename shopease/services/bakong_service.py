"""
Bakong KHQR payment provider client

Builds KHQR (EMV merchant-presented) payloads for orders, checks payment
status against the Bakong open API by md5, and validates webhook callbacks.
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import requests
from loguru import logger

from shopease.config import settings
from shopease.utils.database import utcnow
from shopease.utils.exceptions import PaymentProviderError, ValidationError

CURRENCY_CODES = {"KHR": "116", "USD": "840"}
PAID_WEBHOOK_STATUSES = ("SUCCESS", "COMPLETED")


@dataclass
class KHQRResult:
    qr_string: str
    md5: str
    amount: float
    currency: str
    order_number: str
    expires_at: datetime
    expires_in: int


@dataclass
class PaymentCheck:
    paid: bool
    transaction_hash: Optional[str] = None
    data: dict = field(default_factory=dict)


@dataclass
class WebhookEvent:
    paid: bool
    status: str
    transaction_hash: Optional[str]
    order_number: Optional[str]
    order_id: Optional[int]
    amount: Optional[float]
    currency: Optional[str]
    txn_time: Optional[str]


def _tlv(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def crc16_ccitt(data: str) -> str:
    """CRC-16/CCITT-FALSE as required by EMV QR, upper-case hex"""
    crc = 0xFFFF
    for byte in data.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


class BakongService:

    def convert_usd_to_khr(self, amount_usd) -> int:
        khr = Decimal(str(amount_usd)) * Decimal(str(settings.USD_TO_KHR_RATE))
        return int(khr.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def generate_md5(self, qr_string: str) -> str:
        return hashlib.md5(qr_string.encode("utf-8")).hexdigest()

    def build_payload(self, amount, currency: str, order_number: str, merchant_city: str,
                      created_at: datetime, expires_at: datetime) -> str:
        if currency not in CURRENCY_CODES:
            raise ValidationError(f"Unsupported currency: {currency}")
        if not settings.BAKONG_MERCHANT_ID:
            raise PaymentProviderError("Bakong merchant account is not configured")

        amount_str = str(int(amount)) if currency == "KHR" else f"{Decimal(str(amount)):.2f}"
        created_ms = int(created_at.timestamp() * 1000)
        expires_ms = int(expires_at.timestamp() * 1000)

        payload = "".join([
            _tlv("00", "01"),
            _tlv("01", "12"),
            _tlv("29", _tlv("00", settings.BAKONG_MERCHANT_ID[:32])),
            _tlv("52", "5999"),
            _tlv("53", CURRENCY_CODES[currency]),
            _tlv("54", amount_str),
            _tlv("58", "KH"),
            _tlv("59", settings.BAKONG_MERCHANT_NAME[:25]),
            _tlv("60", (merchant_city or settings.BAKONG_MERCHANT_CITY)[:15]),
            _tlv("62", _tlv("01", order_number[:25]) + _tlv("07", "ShopEase")),
            _tlv("99", _tlv("00", str(created_ms)) + _tlv("01", str(expires_ms))),
        ])
        payload += "6304"
        return payload + crc16_ccitt(payload)

    def generate_khqr(self, amount, order_number: str, merchant_city: Optional[str] = None,
                      currency: str = "KHR") -> KHQRResult:
        created_at = utcnow()
        expires_at = created_at + timedelta(minutes=settings.QR_EXPIRY_MINUTES)
        # Timestamps inside the payload are epoch milliseconds in UTC
        qr_string = self.build_payload(
            amount, currency, order_number, merchant_city,
            created_at.replace(tzinfo=timezone.utc), expires_at.replace(tzinfo=timezone.utc),
        )
        md5 = self.generate_md5(qr_string)
        logger.debug(f"Generated KHQR for {order_number}: {amount} {currency}, md5={md5}")
        return KHQRResult(
            qr_string=qr_string,
            md5=md5,
            amount=float(amount),
            currency=currency,
            order_number=order_number,
            expires_at=expires_at,
            expires_in=settings.QR_EXPIRY_MINUTES * 60,
        )

    def verify_payment(self, md5: str) -> PaymentCheck:
        if not settings.BAKONG_ACCESS_TOKEN:
            raise PaymentProviderError("Bakong access token is not configured")

        url = f"{settings.BAKONG_BASE_URL.rstrip('/')}/check_transaction_by_md5"
        try:
            response = requests.post(
                url,
                json={"md5": md5},
                headers={
                    "Authorization": f"Bearer {settings.BAKONG_ACCESS_TOKEN}",
                    "Content-Type": "application/json",
                },
                timeout=settings.BAKONG_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Bakong payment check failed for md5={md5}: {e}")
            raise PaymentProviderError("Unable to verify payment with Bakong")

        data = body.get("data") or {}
        if isinstance(data, list):
            data = data[0] if data else {}
        transaction_hash = data.get("hash") if isinstance(data, dict) else None
        paid = body.get("responseCode") == 0 and bool(transaction_hash)
        return PaymentCheck(paid=paid, transaction_hash=transaction_hash, data=data if isinstance(data, dict) else {})

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        secret = settings.BAKONG_API_SECRET
        if not secret:
            logger.warning("BAKONG_API_SECRET not set, skipping webhook signature check")
            return True
        if not signature:
            return False
        expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature.strip().lower())

    def parse_webhook(self, payload: dict) -> WebhookEvent:
        status = str(payload.get("status") or "").upper()
        order_id = payload.get("orderId") or payload.get("order_id")
        amount = payload.get("amount")
        try:
            order_id = int(order_id) if order_id is not None else None
            amount = float(amount) if amount is not None else None
        except (TypeError, ValueError):
            raise ValidationError("Invalid orderId or amount in webhook payload")
        return WebhookEvent(
            paid=status in PAID_WEBHOOK_STATUSES,
            status=status,
            transaction_hash=payload.get("hash"),
            order_number=payload.get("external_ref"),
            order_id=order_id,
            amount=amount,
            currency=payload.get("currency"),
            txn_time=payload.get("txn_time"),
        )


bakong_service = BakongService()
