"""seed default rule configs

Revision ID: 20261019_02
Revises: 20261019_01
Create Date: 2026-10-19 00:10:00.000000
"""
import json
from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_02"
down_revision = "20261019_01"
branch_labels = None
depends_on = None

# (clave, valor, prioridad, descripción)
DEFAULTS = [
    ("CUPO_DIARIO", {"OPERA": 4, "CONCIERTO": 2, "BALLET": 4}, 10,
     "Cupos por defecto según tipo de título."),
    ("ENSAYOS_DOBLES", {"max_rotativos_por_titulo": 1}, 15,
     "Límite de rotativos en días con ensayo doble del mismo título."),
    ("LISTA_ESPERA", {"tipo": "FIFO", "vencimiento": None}, 15,
     "Lista de espera por orden de llegada, sin vencimiento."),
    ("FUNCIONES_POR_TITULO", {"umbral_funciones": 3, "max_hasta": 1, "porcentaje_sobre": 30}, 16,
     "Hasta 3 funciones por título: máximo 1 rotativo. Más de 3: hasta el 30%."),
    ("BLOQUE_EXCLUSIVO", {"max_por_persona": 1, "permite_cancel": False}, 20,
     "Un bloque por persona por temporada."),
    ("ROTACION_OBLIGATORIA", {"dias_antes": 5, "criterio": "MENOS_ROTATIVOS"}, 30,
     "Asignación obligatoria faltando 5 días."),
    ("COBERTURA_EXTERNA", {"criterio": "MAS_ROTATIVOS"}, 35,
     "Para coberturas se prioriza a quienes más rotativos hayan tomado."),
    ("MAX_PROYECTADO", {"base_anual": 50}, 40,
     "Máximo anual por integrante."),
    ("FINES_SEMANA_MAX", 1, 50,
     "Máximo de fines de semana por mes."),
    ("PLAZO_SOLICITUD", {"mismo_dia": "PENDING_ADMIN", "dia_anterior": "APPROVE"}, 60,
     "Solicitudes del mismo día requieren aprobación."),
    ("LICENCIAS", {"calculo_promedio": True}, 70,
     "Crédito de rotativos por licencia."),
    ("INTEGRANTE_NUEVO", {"usar_promedio": True, "admin_override": True}, 80,
     "El máximo de un integrante nuevo es el promedio del grupo."),
    ("ALERTA_UMBRAL", 90, 200,
     "Umbral (%) del máximo proyectado a partir del cual se alerta."),
]


def _rule_configs_table():
    return sa.table(
        "rule_configs",
        sa.column("key", sa.String(length=64)),
        sa.column("value", sa.Text()),
        sa.column("enabled", sa.Boolean()),
        sa.column("priority", sa.Integer()),
        sa.column("description", sa.Text()),
        sa.column("created_at", sa.DateTime(timezone=True)),
        sa.column("updated_at", sa.DateTime(timezone=True)),
    )


def upgrade():
    bind = op.get_bind()
    configs = _rule_configs_table()
    now = datetime.now(timezone.utc)
    for key, value, priority, description in DEFAULTS:
        existing = bind.execute(
            sa.select(configs.c.key).where(configs.c.key == key)
        ).first()
        if existing is not None:
            continue
        bind.execute(
            configs.insert().values(
                key=key,
                value=json.dumps(value),
                enabled=True,
                priority=priority,
                description=description,
                created_at=now,
                updated_at=now,
            )
        )


def downgrade():
    configs = _rule_configs_table()
    op.get_bind().execute(
        configs.delete().where(configs.c.key.in_([key for key, *_ in DEFAULTS]))
    )
