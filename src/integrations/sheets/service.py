from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from src.core.config import settings
from src.integrations.sheets.schemas import (
    AppFeeNotice,
    BatchPaymentNotice,
    PaymentNotice,
    RegistrationNotice,
)

logger = logging.getLogger(__name__)


class SheetsNotifier:
    """
    Best-effort mirror of registrations and payments into the office
    spreadsheets (a Google Apps Script web app that also pings Telegram).

    Every public method swallows transport and HTTP errors after logging them:
    callers run it after their transaction has committed and never depend on
    the outcome.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        currency: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = settings.sheets_webhook_url if url is None else url
        self.timeout = settings.sheets_timeout_seconds if timeout is None else timeout
        self.currency = currency or settings.currency
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def notify_registration(self, notice: RegistrationNotice) -> bool:
        form = {
            "student-id": notice.student_code or "",
            "full-name": notice.full_name or "",
            "phone1": notice.phone1 or "",
            "phone2": notice.phone2 or "",
            "email": notice.email or "",
        }
        telegram = {
            "studentId": notice.student_code,
            "fullName": notice.full_name,
            "email": notice.email,
            "phone1": notice.phone1,
            "phone2": notice.phone2,
            "educationLevel": notice.education_level,
            "university1": notice.university1,
            "university2": notice.university2,
            "tariff": notice.tariff,
            "languageCertificate": notice.language_certificate,
            "hearAboutUs": notice.hear_about_us,
            "passportNumber": notice.passport_number,
            "birthDate": notice.birth_date,
            "address": notice.address,
            "additionalNotes": notice.additional_notes,
        }
        return await self._send("addStudent", form, telegram)

    async def notify_payment(self, notice: PaymentNotice) -> bool:
        form = {
            "student-id": notice.student_code or "",
            "full-name": notice.student_name or "",
            "amount": str(notice.amount),
            "payment-method": notice.payment_method or "",
            "received-by": notice.received_by or "",
            "timestamp": _now_iso(),
        }
        telegram = None
        if notice.student_code and notice.student_name:
            telegram = {
                "studentId": notice.student_code,
                "studentName": notice.student_name,
                "amount": notice.amount,
                "paymentMethod": notice.payment_method,
                "receivedBy": notice.received_by,
                "currency": self.currency,
            }
        return await self._send("addPayment", form, telegram)

    async def notify_app_fee(self, notice: AppFeeNotice) -> bool:
        form = {
            "student-id": notice.student_code or "",
            "full-name": notice.student_name or "",
            "amount": str(notice.amount),
            "payment-method": notice.payment_method or "",
            "received-by": notice.received_by or "",
            "university": notice.university or "",
            "timestamp": _now_iso(),
        }
        telegram = None
        if notice.student_code and notice.student_name:
            telegram = {
                "studentId": notice.student_code,
                "studentName": notice.student_name,
                "amount": notice.amount,
                "paymentMethod": notice.payment_method,
                "receivedBy": notice.received_by,
                "university": notice.university,
                "currency": self.currency,
            }
        return await self._send("addAppFee", form, telegram)

    async def notify_batch_payment(self, notice: BatchPaymentNotice) -> bool:
        ids = ", ".join(str(i) for i in notice.student_ids)
        form = {
            "student-ids": ids,
            "amount": str(notice.amount),
            "receiver": notice.payed_to or "",
            "payment-method": notice.payment_method or "",
            "responsible": notice.responsible or "",
            "university": notice.university or "",
            "timestamp": _now_iso(),
        }
        telegram = None
        if ids:
            telegram = {
                "studentIds": ids,
                "students": [
                    {"studentId": s.student_id, "fullname": s.full_name}
                    for s in notice.students
                ],
                "amount": notice.amount,
                "paymentMethod": notice.payment_method,
                "receivedBy": notice.responsible,
                "receiver": notice.payed_to,
                "university": notice.university,
                "currency": self.currency,
            }
        return await self._send("givenSheet", form, telegram)

    async def _send(
        self,
        action: str,
        form: dict[str, str],
        telegram: dict[str, Any] | None,
    ) -> bool:
        """POST one form-encoded action. Returns True when the sheet accepted it."""
        if not self.enabled:
            logger.debug("Sheets notifications disabled, skipping action=%s", action)
            return False

        data = {"action": action, **form}
        if telegram is not None:
            data["telegram-data"] = json.dumps(telegram, ensure_ascii=False, default=str)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.url, data=data)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Sheets notification failed action=%s error=%s", action, exc)
            return False

        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("status") == "error":
            logger.error(
                "Sheets rejected action=%s message=%s", action, body.get("message")
            )
            return False

        logger.info("Sheets notification sent action=%s", action)
        return True


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


sheets_notifier = SheetsNotifier()


def get_notifier() -> SheetsNotifier:
    """Dependency returning the shared notifier (overridable in tests)."""
    return sheets_notifier
