"""initial rotativos schema

Revision ID: 20261019_01
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("alias", sa.String(length=60), nullable=True),
        sa.Column("role", sa.Enum("admin", "integrante", name="userrole"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "seasons",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("working_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "titulos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("season_id", sa.String(length=36),
                  sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("type", sa.Enum("opera", "concierto", "ballet", "recital", "otro",
                                  name="titulotype"), nullable=False),
        sa.Column("cupo", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_titulos_season_id", "titulos", ["season_id"])

    op.create_table(
        "blocks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("season_id", sa.String(length=36),
                  sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("titulo_id", sa.String(length=36), sa.ForeignKey("titulos.id"), nullable=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("estado", sa.Enum("disponible", "solicitado", "aprobado", "en_curso",
                                    "completado", "cancelado", name="blockestado"), nullable=False),
        sa.Column("assigned_to_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_blocks_season_id", "blocks", ["season_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("season_id", sa.String(length=36),
                  sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("titulo_id", sa.String(length=36), sa.ForeignKey("titulos.id"), nullable=True),
        sa.Column("block_id", sa.String(length=36), sa.ForeignKey("blocks.id"), nullable=True),
        sa.Column("title", sa.String(length=160), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("evento_tipo", sa.Enum("ensayo", "funcion", name="eventotipo"), nullable=False),
        sa.Column("cupo_override", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_season_id", "events", ["season_id"])
    op.create_index("ix_events_titulo_id", "events", ["titulo_id"])
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "rotativos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.String(length=36),
                  sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("estado", sa.Enum("pendiente", "aprobado", "en_espera", "asignado",
                                    "rechazado", "cancelado", name="rotativoestado"), nullable=False),
        sa.Column("tipo", sa.Enum("voluntario", "obligatorio", "cobertura",
                                  name="rotativotipo"), nullable=False),
        sa.Column("motivo_inicial", sa.Text(), nullable=True),
        sa.Column("motivo", sa.Text(), nullable=True),
        sa.Column("aprobado_por", sa.String(length=36), nullable=True),
        sa.Column("validacion", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_rotativos_user_event"),
    )
    op.create_index("ix_rotativos_user_id", "rotativos", ["user_id"])
    op.create_index("ix_rotativos_event_id", "rotativos", ["event_id"])

    op.create_table(
        "waiting_list_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.String(length=36),
                  sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("season_id", sa.String(length=36), sa.ForeignKey("seasons.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_waiting_list_user_event"),
    )
    op.create_index("ix_waiting_list_event_position", "waiting_list_entries", ["event_id", "position"])
    op.create_index("ix_waiting_list_entries_season_id", "waiting_list_entries", ["season_id"])

    op.create_table(
        "user_season_balances",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("season_id", sa.String(length=36),
                  sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rotativos_tomados", sa.Integer(), nullable=False),
        sa.Column("rotativos_obligatorios", sa.Integer(), nullable=False),
        sa.Column("rotativos_por_licencia", sa.Integer(), nullable=False),
        sa.Column("max_proyectado", sa.Integer(), nullable=False),
        sa.Column("max_ajustado_manual", sa.Integer(), nullable=True),
        sa.Column("fines_de_semana_mes", sa.JSON(), nullable=False),
        sa.Column("bloque_usado", sa.Boolean(), nullable=False),
        sa.Column("fecha_ingreso", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "season_id", name="uq_balance_user_season"),
    )

    op.create_table(
        "licenses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("season_id", sa.String(length=36), sa.ForeignKey("seasons.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("rotativos_calculados", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_licenses_user_id", "licenses", ["user_id"])

    op.create_table(
        "rule_configs",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("target_user_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])

    for table in (
        "users", "seasons", "titulos", "blocks", "events", "rotativos",
        "waiting_list_entries", "user_season_balances", "licenses",
        "rule_configs", "notifications", "audit_logs",
    ):
        op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def downgrade() -> None:
    for table in (
        "audit_logs", "notifications", "rule_configs", "licenses",
        "user_season_balances", "waiting_list_entries", "rotativos",
        "events", "blocks", "titulos", "seasons", "users",
    ):
        op.drop_table(table)
