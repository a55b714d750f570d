"""Students, payment ledger, application-fee batches

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Students
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_code", sa.String(20), nullable=False),
        sa.Column("full_name", sa.String(320), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("passport_number", sa.String(20), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("hear_about_us", sa.String(100), nullable=True),
        sa.Column("phone1", sa.String(20), nullable=True),
        sa.Column("phone2", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("education_level", sa.String(20), nullable=False),
        sa.Column("language_certificate", sa.String(50), nullable=True),
        sa.Column("tariff", sa.String(20), nullable=True),
        sa.Column("university1", sa.String(200), nullable=True),
        sa.Column("university2", sa.String(200), nullable=True),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("timestamp", sa.String(50), nullable=True),
        sa.Column("balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="UNPAID"),
        sa.Column("discount", sa.BigInteger(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_students"),
    )
    op.create_index("ix_students_student_code", "students", ["student_code"], unique=True)
    op.create_index("ix_students_email", "students", ["email"], unique=True)
    op.create_index("ix_students_education_level", "students", ["education_level"])
    op.create_index("ix_students_created_at", "students", ["created_at"])

    # Per-level student code counters
    op.create_table(
        "student_code_sequences",
        sa.Column("prefix", sa.String(10), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("prefix", name="pk_student_code_sequences"),
    )

    # Payment ledger. student_id has no foreign key: history outlives the student.
    op.create_table(
        "payment_history",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("payment_type", sa.String(20), nullable=False, server_default="payment"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("previous_balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("new_balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("received_by", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_payment_history"),
    )
    op.create_index("ix_payment_history_student_id", "payment_history", ["student_id"])
    op.create_index("ix_payment_history_created_at", "payment_history", ["created_at"])
    op.create_index(
        "ix_payment_history_student_type", "payment_history", ["student_id", "payment_type"]
    )

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("operation", sa.String(20), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("entry_id", sa.BigInteger(), nullable=True),
        sa.Column("new_balance", sa.BigInteger(), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_idempotency_keys"),
        sa.UniqueConstraint(
            "student_id", "operation", name="uq_idempotency_student_operation"
        ),
    )

    # Application-fee batches
    op.create_table(
        "appfee_history",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sa.String(50), nullable=False),
        sa.Column("university", sa.Text(), nullable=False),
        sa.Column("student_ids", sa.JSON(), nullable=False),
        sa.Column("student_details", sa.JSON(), nullable=True),
        sa.Column("student_count", sa.Integer(), nullable=False),
        sa.Column("payed_to", sa.Text(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("responsible", sa.Text(), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False, server_default="CASH"),
        sa.Column(
            "payment_status", sa.String(20), nullable=False, server_default="COMPLETED"
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_appfee_history"),
        sa.UniqueConstraint("transaction_id", name="uq_appfee_history_transaction_id"),
    )
    op.create_index("ix_appfee_history_university", "appfee_history", ["university"])
    op.create_index("ix_appfee_history_responsible", "appfee_history", ["responsible"])
    op.create_index("ix_appfee_history_payment_status", "appfee_history", ["payment_status"])
    op.create_index("ix_appfee_history_created_at", "appfee_history", ["created_at"])

    # Audit log
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("actor", sa.String(200), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_identifier", sa.String(200), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("appfee_history")
    op.drop_table("idempotency_keys")
    op.drop_table("payment_history")
    op.drop_table("student_code_sequences")
    op.drop_table("students")
