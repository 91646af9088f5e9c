"""esquema inicial: treinadores, sessões, vagas, inscrições, avulsos

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "20261019_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels = None
depends_on = None

trainer_role = sa.Enum("trainer", "admin", name="trainerrole")
trainer_status = sa.Enum("pending", "approved", "rejected", name="trainerstatus")
registration_status = sa.Enum("confirmed", "waitlisted", "cancelled", name="registrationstatus")

_ACTIVE_CODE = "status != 'cancelled' AND unique_code IS NOT NULL"


def upgrade() -> None:
    op.create_table(
        "trainers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", trainer_role, nullable=False),
        sa.Column("status", trainer_status, nullable=False),
        sa.Column("external_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("external_id", name="uq_trainers_external_id"),
    )
    op.create_index("ix_trainers_email", "trainers", ["email"], unique=True)

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("training_type", sa.String(80), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_sessions_created_by_trainers"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", name="fk_slots_session_id_sessions"), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_slots_trainer_id_trainers"), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("confirmed_count", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("session_id", "trainer_id", name="uq_slot_session_trainer"),
        sa.CheckConstraint("confirmed_count >= 0", name="ck_slots_confirmed_non_negative"),
        sa.CheckConstraint("capacity IS NULL OR capacity >= 0", name="ck_slots_capacity_non_negative"),
    )
    op.create_index("ix_slots_session_id", "slots", ["session_id"])

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", name="fk_registrations_session_id_sessions"), nullable=False),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", name="fk_registrations_slot_id_slots"), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_registrations_trainer_id_trainers"), nullable=False),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("unique_code", sa.String(7), nullable=True),
        sa.Column("status", registration_status, nullable=False),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_registrations_cancelled_by_trainers"), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_registrations_session_id", "registrations", ["session_id"])
    op.create_index("ix_registrations_slot_id", "registrations", ["slot_id"])
    op.create_index("ix_registrations_slot_status", "registrations", ["slot_id", "status"])
    op.create_index(
        "uq_registrations_active_code", "registrations", ["unique_code"], unique=True,
        sqlite_where=sa.text(_ACTIVE_CODE), postgresql_where=sa.text(_ACTIVE_CODE),
    )

    op.create_table(
        "walk_ins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", name="fk_walk_ins_session_id_sessions"), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_walk_ins_trainer_id_trainers"), nullable=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("added_by", sa.Integer(), sa.ForeignKey("trainers.id", name="fk_walk_ins_added_by_trainers"), nullable=True),
    )
    op.create_index("ix_walk_ins_session_id", "walk_ins", ["session_id"])

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(80), nullable=False),
        sa.Column("signature", sa.String(80), nullable=False),
        sa.Column("response_body", sa.LargeBinary(), nullable=False),
        sa.Column("response_mime", sa.String(80), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_idempotency_keys_key", "idempotency_keys", ["key"])
    op.create_index("ix_idempotency_keys_signature", "idempotency_keys", ["signature"])


def downgrade() -> None:
    op.drop_table("idempotency_keys")
    op.drop_table("walk_ins")
    op.drop_index("uq_registrations_active_code", table_name="registrations")
    op.drop_table("registrations")
    op.drop_table("slots")
    op.drop_table("sessions")
    op.drop_table("trainers")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum in (registration_status, trainer_status, trainer_role):
            enum.drop(bind, checkfirst=True)
