"""Tests for Payments module."""

from urllib.parse import parse_qs

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.database import get_db
from src.core.database import session as database_session
from src.core.exceptions import NotFoundError, ValidationError
from src.integrations.sheets import SheetsNotifier, get_notifier
from src.main import app
from src.modules.payments.models import IdempotencyRecord, PaymentHistory, PaymentType
from src.modules.payments.schemas import AppFeeCreate, LedgerEventCreate
from src.modules.payments.service import PaymentService
from src.modules.students.models import Student
from src.modules.tariffs.catalog import tariff_catalog


def payment(amount: int, **overrides) -> LedgerEventCreate:
    data = {
        "amount": amount,
        "description": "Tuition",
        "payment_type": "payment",
        "payment_method": "CASH",
        "received_by": "Dilnoza",
    }
    data.update(overrides)
    return LedgerEventCreate(**data)


def discount(amount: int) -> LedgerEventCreate:
    return LedgerEventCreate(amount=amount, description="Olympiad winner", payment_type="discount")


def app_fee(amount: int, university: str = "1") -> AppFeeCreate:
    return AppFeeCreate(
        amount=amount, university=university, payment_method="CARD", received_by="Dilnoza"
    )


async def _entries(db_session: AsyncSession, student_id: int, kind: PaymentType) -> list[PaymentHistory]:
    result = await db_session.execute(
        select(PaymentHistory).where(
            PaymentHistory.student_id == student_id,
            PaymentHistory.payment_type == kind.value,
        )
    )
    return list(result.scalars().all())


class TestPaymentService:
    """Tests for PaymentService."""

    async def test_new_student_is_unpaid(self, db_session: AsyncSession, make_student):
        student = await make_student()
        assert student.balance == -5_300_000
        assert student.payment_status == "UNPAID"
        assert student.discount == 0

    async def test_payment_scenario_through_discount_and_fee(
        self, db_session: AsyncSession, make_student
    ):
        """Payment, discount, discount removal and application fee in sequence."""
        student = await make_student()
        service = PaymentService(db_session)

        paid = await service.apply_payment(student.id, payment(2_650_000))
        assert paid.new_balance == -2_650_000
        assert paid.payment_status == "50%"
        assert paid.entry.previous_balance == -5_300_000
        assert paid.entry.new_balance == -2_650_000

        discounted = await service.apply_discount(student.id, discount(1_000_000))
        assert discounted.new_balance == -1_650_000
        # 69% paid falls in the 50% bucket
        assert discounted.payment_status == "50%"
        assert discounted.entry.discount_amount == 1_000_000
        assert discounted.entry.amount == 0
        assert student.discount == 1_000_000

        removed = await service.apply_discount(student.id, discount(0))
        assert removed.entry is None
        assert removed.new_balance == -2_650_000
        assert removed.payment_status == "50%"
        assert await _entries(db_session, student.id, PaymentType.DISCOUNT) == []
        assert student.discount == 0

        fee = await service.apply_application_fee(student.id, app_fee(500_000))
        assert fee.entry.payment_type == "app_fee"
        assert fee.entry.amount == 500_000
        assert fee.entry.description == "Application fee for Seoul National University"
        assert fee.entry.previous_balance == fee.entry.new_balance == -2_650_000
        assert fee.university == "Seoul National University"
        assert student.balance == -2_650_000
        assert student.payment_status == "50%"

    async def test_discount_is_replaced_not_accumulated(
        self, db_session: AsyncSession, make_student
    ):
        student = await make_student()
        service = PaymentService(db_session)
        await service.apply_payment(student.id, payment(1_000_000))

        await service.apply_discount(student.id, discount(800_000))
        result = await service.apply_discount(student.id, discount(300_000))

        entries = await _entries(db_session, student.id, PaymentType.DISCOUNT)
        assert len(entries) == 1
        assert entries[0].discount_amount == 300_000
        assert result.new_balance == -(5_300_000 - 300_000 - 1_000_000)

    async def test_balance_reconstructible_from_ledger(
        self, db_session: AsyncSession, make_student
    ):
        student = await make_student(tariff="PREMIUM")
        service = PaymentService(db_session)
        await service.apply_payment(student.id, payment(4_000_000))
        await service.apply_payment(student.id, payment(3_500_000))
        await service.apply_discount(student.id, discount(2_000_000))
        await service.apply_application_fee(student.id, app_fee(700_000, "2"))
        await service.apply_payment(student.id, payment(1_000_000))

        payments = await service.sum_by_kind(student.id, PaymentType.PAYMENT)
        active_discount = await service.sum_by_kind(student.id, PaymentType.DISCOUNT)
        debt = tariff_catalog.original_debt("PREMIUM")

        assert payments == 8_500_000
        assert active_discount == 2_000_000
        assert student.balance == -(debt - active_discount - payments)

    async def test_payment_to_full(self, db_session: AsyncSession, make_student):
        student = await make_student(tariff="1FOIZ")
        result = await PaymentService(db_session).apply_payment(student.id, payment(2_000_000))
        assert result.new_balance == 0
        assert result.payment_status == "FULL"

    async def test_application_fee_empty_slot_falls_back(
        self, db_session: AsyncSession, make_student
    ):
        student = await make_student(university2=None)
        result = await PaymentService(db_session).apply_application_fee(
            student.id, app_fee(300_000, "2")
        )
        assert result.entry.description == "Application fee for University 2"

    async def test_unknown_student(self, db_session: AsyncSession):
        service = PaymentService(db_session)
        with pytest.raises(NotFoundError):
            await service.apply_payment(999, payment(1_000))
        with pytest.raises(NotFoundError):
            await service.list_entries(999)

    async def test_non_positive_payment_rejected(self, db_session: AsyncSession, make_student):
        student = await make_student()
        data = LedgerEventCreate.model_construct(
            amount=0, description="x", payment_type=PaymentType.PAYMENT,
            payment_method="CASH", received_by="x",
        )
        with pytest.raises(ValidationError):
            await PaymentService(db_session).apply_payment(student.id, data)
        assert await _entries(db_session, student.id, PaymentType.PAYMENT) == []

    async def test_idempotency_key_short_circuits_duplicate(
        self, db_session: AsyncSession, make_student
    ):
        student = await make_student()
        service = PaymentService(db_session)

        first = await service.apply_payment(student.id, payment(1_000_000), idempotency_key="k1")
        again = await service.apply_payment(student.id, payment(1_000_000), idempotency_key="k1")

        assert again.replayed is True
        assert again.new_balance == first.new_balance == -4_300_000
        assert again.entry.id == first.entry.id
        assert len(await _entries(db_session, student.id, PaymentType.PAYMENT)) == 1

        fresh = await service.apply_payment(student.id, payment(1_000_000), idempotency_key="k2")
        assert fresh.replayed is False
        assert fresh.new_balance == -3_300_000

        count = await db_session.execute(select(func.count()).select_from(IdempotencyRecord))
        assert count.scalar() == 1

    async def test_idempotency_is_per_operation(self, db_session: AsyncSession, make_student):
        student = await make_student()
        service = PaymentService(db_session)
        await service.apply_payment(student.id, payment(1_000_000), idempotency_key="same")
        result = await service.apply_discount(student.id, discount(500_000), idempotency_key="same")
        assert result.replayed is False
        assert result.new_balance == -(5_300_000 - 500_000 - 1_000_000)

    async def test_list_entries_newest_first(self, db_session: AsyncSession, make_student):
        student = await make_student()
        service = PaymentService(db_session)
        await service.apply_payment(student.id, payment(100_000, description="first"))
        await service.apply_payment(student.id, payment(200_000, description="second"))

        entries = await service.list_entries(student.id)
        assert [e.description for e in entries] == ["second", "first"]

    async def test_list_application_fees(self, db_session: AsyncSession, make_student):
        student = await make_student()
        other = await make_student(email="other@example.com", university1="KAIST")
        service = PaymentService(db_session)
        await service.apply_application_fee(student.id, app_fee(300_000, "1"))
        await service.apply_application_fee(student.id, app_fee(450_000, "1"))
        await service.apply_application_fee(student.id, app_fee(200_000, "2"))

        rows = {row["id"]: row for row in await service.list_application_fees()}
        assert rows[student.id]["fee1"] == 450_000
        assert rows[student.id]["fee2"] == 200_000
        assert rows[other.id]["fee1"] == 0
        assert rows[other.id]["fee2"] == 0


class TestLedgerEventSchema:
    def test_discount_defaults_method_and_receiver(self):
        data = discount(0)
        assert data.payment_method == "N/A"
        assert data.received_by == "N/A"

    def test_payment_requires_method(self):
        with pytest.raises(ValueError):
            LedgerEventCreate(amount=100, description="x", payment_type="payment", received_by="x")

    def test_negative_discount_rejected(self):
        with pytest.raises(ValueError):
            discount(-1)

    def test_app_fee_slot_accepts_int(self):
        assert app_fee(100, 2).university == "2"

    def test_app_fee_slot_must_be_one_or_two(self):
        with pytest.raises(ValueError):
            app_fee(100, "3")


class TestPaymentsAPI:
    """API tests for student payments."""

    async def _register(self, client: AsyncClient, student_form, **overrides) -> dict:
        response = await client.post("/api/students", json=student_form(**overrides))
        assert response.status_code == 201
        return response.json()["data"]

    async def test_add_payment(self, client: AsyncClient, student_form, sheets_requests):
        student = await self._register(client, student_form)

        response = await client.post(
            f"/api/students/{student['id']}/payments",
            json={
                "amount": 2_650_000,
                "description": "First installment",
                "payment_type": "payment",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["new_balance"] == -2_650_000
        assert data["payment_status"] == "50%"
        assert data["payment"]["payment_type"] == "payment"

        actions = [parse_qs(r.content.decode())["action"][0] for r in sheets_requests]
        assert actions == ["addStudent", "addPayment"]
        form = parse_qs(sheets_requests[-1].content.decode())
        assert form["student-id"] == [student["student_code"]]
        assert form["amount"] == ["2650000"]

    async def test_payment_history(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        for amount in (100_000, 200_000):
            await client.post(
                f"/api/students/{student['id']}/payments",
                json={
                    "amount": amount,
                    "description": "Installment",
                    "payment_method": "CARD",
                    "received_by": "Dilnoza",
                },
            )

        response = await client.get(f"/api/students/{student['id']}/payments")
        assert response.status_code == 200
        amounts = [e["amount"] for e in response.json()["data"]]
        assert amounts == [200_000, 100_000]

    async def test_discount_via_payments_endpoint(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/payments",
            json={"amount": 1_000_000, "description": "Sibling", "payment_type": "discount"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["new_balance"] == -4_300_000

        detail = await client.get(f"/api/students/{student['id']}")
        assert detail.json()["data"]["discount"] == 1_000_000

    async def test_invalid_amount_is_400(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/payments",
            json={
                "amount": 0,
                "description": "x",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_unknown_student_is_404(self, client: AsyncClient):
        response = await client.post(
            "/api/students/999/payments",
            json={
                "amount": 1000,
                "description": "x",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 404

    async def test_idempotency_header(self, client: AsyncClient, student_form, sheets_requests):
        student = await self._register(client, student_form)
        body = {
            "amount": 500_000,
            "description": "Installment",
            "payment_method": "CASH",
            "received_by": "Dilnoza",
        }
        headers = {"Idempotency-Key": "form-123"}

        first = await client.post(f"/api/students/{student['id']}/payments", json=body, headers=headers)
        second = await client.post(f"/api/students/{student['id']}/payments", json=body, headers=headers)

        assert first.status_code == second.status_code == 201
        assert second.json()["data"]["replayed"] is True
        assert second.json()["data"]["new_balance"] == -4_800_000
        # Registration plus one payment; the replay sends nothing
        assert len(sheets_requests) == 2

    async def test_application_fee(self, client: AsyncClient, student_form, sheets_requests):
        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/appfee",
            json={
                "amount": 500_000,
                "university": "1",
                "payment_method": "CARD",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["new_balance"] == -5_300_000
        assert data["payment_status"] == "UNPAID"
        assert data["university"] == "Seoul National University"

        form = parse_qs(sheets_requests[-1].content.decode())
        assert form["action"] == ["addAppFee"]
        assert form["university"] == ["Seoul National University"]

    async def test_application_fee_invalid_slot(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/appfee",
            json={
                "amount": 500_000,
                "university": "3",
                "payment_method": "CARD",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 400

    async def test_list_application_fees(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        await client.post(
            f"/api/students/{student['id']}/appfee",
            json={
                "amount": 350_000,
                "university": "2",
                "payment_method": "CARD",
                "received_by": "Dilnoza",
            },
        )
        response = await client.get("/api/students/appfees")
        assert response.status_code == 200
        rows = response.json()["data"]
        assert rows[0]["student_code"] == student["student_code"]
        assert rows[0]["fee1"] == 0
        assert rows[0]["fee2"] == 350_000

    async def test_notifier_failure_does_not_fail_payment(
        self, client: AsyncClient, student_form
    ):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("sheets unreachable", request=request)

        failing = SheetsNotifier(url="https://sheets.test/exec", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_notifier] = lambda: failing

        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/payments",
            json={
                "amount": 1_000_000,
                "description": "Installment",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
        )
        assert response.status_code == 201

        history = await client.get(f"/api/students/{student['id']}/payments")
        assert len(history.json()["data"]) == 1

    async def test_idempotency_key_too_long_is_400(self, client: AsyncClient, student_form):
        student = await self._register(client, student_form)
        response = await client.post(
            f"/api/students/{student['id']}/payments",
            json={
                "amount": 500_000,
                "description": "Installment",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
            headers={"Idempotency-Key": "k" * 101},
        )
        assert response.status_code == 400

        history = await client.get(f"/api/students/{student['id']}/payments")
        assert history.json()["data"] == []

    async def test_failed_payment_rolls_back(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        make_student,
        sheets_requests,
        monkeypatch,
    ):
        student = await make_student()
        await db_session.commit()

        # Serve this request through the real session dependency
        app.dependency_overrides.pop(get_db)
        monkeypatch.setattr(
            database_session,
            "async_session",
            async_sessionmaker(db_session.bind, class_=AsyncSession, expire_on_commit=False),
        )

        async def failing_remember(self, *args, **kwargs):
            raise OperationalError("INSERT INTO idempotency_keys ...", {}, Exception("disk I/O error"))

        monkeypatch.setattr(PaymentService, "_remember", failing_remember)

        response = await client.post(
            f"/api/students/{student.id}/payments",
            json={
                "amount": 1_000_000,
                "description": "Installment",
                "payment_method": "CASH",
                "received_by": "Dilnoza",
            },
        )

        assert response.status_code == 500
        assert response.json()["success"] is False

        entries = await db_session.scalar(
            select(func.count()).select_from(PaymentHistory).where(PaymentHistory.student_id == student.id)
        )
        assert entries == 0
        row = (
            await db_session.execute(
                select(Student.balance, Student.payment_status).where(Student.id == student.id)
            )
        ).one()
        assert row.balance == -5_300_000
        assert row.payment_status == "UNPAID"
        assert sheets_requests == []
