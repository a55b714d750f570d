"""Payloads mirrored into the office spreadsheets."""

from pydantic import BaseModel


class RegistrationNotice(BaseModel):
    student_code: str | None = None
    full_name: str | None = None
    phone1: str | None = None
    phone2: str | None = None
    email: str | None = None
    education_level: str | None = None
    university1: str | None = None
    university2: str | None = None
    tariff: str | None = None
    language_certificate: str | None = None
    hear_about_us: str | None = None
    passport_number: str | None = None
    birth_date: str | None = None
    address: str | None = None
    additional_notes: str | None = None


class PaymentNotice(BaseModel):
    student_code: str | None = None
    student_name: str | None = None
    amount: int
    payment_method: str | None = None
    received_by: str | None = None


class AppFeeNotice(PaymentNotice):
    university: str | None = None


class BatchStudent(BaseModel):
    student_id: str | int | None = None
    full_name: str | None = None


class BatchPaymentNotice(BaseModel):
    student_ids: list[str | int]
    students: list[BatchStudent] = []
    amount: int
    payed_to: str | None = None
    payment_method: str | None = None
    responsible: str | None = None
    university: str | None = None
