# rotativos/models.py
import enum
import uuid
from datetime import datetime, timezone

from .extensions import db


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------- Mixins ----------
class UtcTimestampMixin:
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


# ---------- Enums ----------
class UserRole(enum.Enum):
    admin = "ADMIN"
    integrante = "INTEGRANTE"

class TituloType(enum.Enum):
    opera = "OPERA"
    concierto = "CONCIERTO"
    ballet = "BALLET"
    recital = "RECITAL"
    otro = "OTRO"

class EventoTipo(enum.Enum):
    ensayo = "ENSAYO"
    funcion = "FUNCION"

class BlockEstado(enum.Enum):
    disponible = "DISPONIBLE"
    solicitado = "SOLICITADO"
    aprobado = "APROBADO"
    en_curso = "EN_CURSO"
    completado = "COMPLETADO"
    cancelado = "CANCELADO"

class RotativoEstado(enum.Enum):
    pendiente = "PENDIENTE"
    aprobado = "APROBADO"
    en_espera = "EN_ESPERA"
    asignado = "ASIGNADO"
    rechazado = "RECHAZADO"
    cancelado = "CANCELADO"

class RotativoTipo(enum.Enum):
    voluntario = "VOLUNTARIO"
    obligatorio = "OBLIGATORIO"
    cobertura = "COBERTURA"


ACTIVE_BLOCK_STATES = (
    BlockEstado.solicitado,
    BlockEstado.aprobado,
    BlockEstado.en_curso,
    BlockEstado.completado,
)


# ---------- Temporada / Títulos / Eventos ----------
class User(UtcTimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    alias = db.Column(db.String(60), nullable=True)
    role = db.Column(db.Enum(UserRole), default=UserRole.integrante, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def __repr__(self):
        return f"<User {self.email} role={self.role.name}>"


class Season(UtcTimestampMixin, db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(120), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    working_days = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    titulos = db.relationship("Titulo", back_populates="season",
                              cascade="all, delete-orphan")
    events = db.relationship("Event", back_populates="season")

    def __repr__(self):
        return f"<Season {self.name}>"


class Titulo(UtcTimestampMixin, db.Model):
    __tablename__ = "titulos"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    season_id = db.Column(
        db.String(36), db.ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    name = db.Column(db.String(160), nullable=False)
    type = db.Column(db.Enum(TituloType), default=TituloType.otro, nullable=False)
    cupo = db.Column(db.Integer, nullable=True)  # cupo por defecto de cada evento

    season = db.relationship("Season", back_populates="titulos")
    events = db.relationship("Event", back_populates="titulo")

    def __repr__(self):
        return f"<Titulo {self.name} {self.type.value}>"


class Block(UtcTimestampMixin, db.Model):
    __tablename__ = "blocks"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    season_id = db.Column(
        db.String(36), db.ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    titulo_id = db.Column(db.String(36), db.ForeignKey("titulos.id"), nullable=True)
    name = db.Column(db.String(160), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    estado = db.Column(db.Enum(BlockEstado), default=BlockEstado.disponible, nullable=False)
    assigned_to_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    assigned_to = db.relationship("User")
    events = db.relationship("Event", back_populates="block")

    def __repr__(self):
        return f"<Block {self.name} {self.estado.name}>"


class Event(UtcTimestampMixin, db.Model):
    __tablename__ = "events"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    season_id = db.Column(
        db.String(36), db.ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    titulo_id = db.Column(db.String(36), db.ForeignKey("titulos.id"), nullable=True, index=True)
    block_id = db.Column(db.String(36), db.ForeignKey("blocks.id"), nullable=True)
    title = db.Column(db.String(160), nullable=False)
    date = db.Column(db.DateTime, nullable=False, index=True)
    evento_tipo = db.Column(db.Enum(EventoTipo), default=EventoTipo.funcion, nullable=False)
    cupo_override = db.Column(db.Integer, nullable=True)

    season = db.relationship("Season", back_populates="events")
    titulo = db.relationship("Titulo", back_populates="events")
    block = db.relationship("Block", back_populates="events")
    rotativos = db.relationship("Rotativo", back_populates="event",
                                cascade="all, delete-orphan")
    waiting_list = db.relationship("WaitingListEntry", back_populates="event",
                                   order_by="WaitingListEntry.position",
                                   cascade="all, delete-orphan")

    @property
    def is_weekend(self) -> bool:
        return self.date.weekday() >= 5

    @property
    def month_key(self) -> str:
        return self.date.strftime("%Y-%m")

    def __repr__(self):
        return f"<Event {self.title} {self.date:%Y-%m-%d}>"


# ---------- Rotativos / Lista de espera / Balance ----------
class Rotativo(UtcTimestampMixin, db.Model):
    __tablename__ = "rotativos"
    __table_args__ = (
        db.UniqueConstraint("user_id", "event_id", name="uq_rotativos_user_event"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    event_id = db.Column(
        db.String(36), db.ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    estado = db.Column(db.Enum(RotativoEstado), default=RotativoEstado.pendiente, nullable=False)
    tipo = db.Column(db.Enum(RotativoTipo), default=RotativoTipo.voluntario, nullable=False)

    motivo_inicial = db.Column(db.Text, nullable=True)   # por qué requirió revisión al crearse
    motivo = db.Column(db.Text, nullable=True)           # último motivo (rechazo, promoción, etc.)
    aprobado_por = db.Column(db.String(36), nullable=True)  # preaprobación del admin
    validacion = db.Column(db.JSON, nullable=True)       # snapshot del resumen de reglas

    user = db.relationship("User")
    event = db.relationship("Event", back_populates="rotativos")

    def __repr__(self):
        return f"<Rotativo user={self.user_id} event={self.event_id} {self.estado.name}>"


class WaitingListEntry(UtcTimestampMixin, db.Model):
    __tablename__ = "waiting_list_entries"
    __table_args__ = (
        db.UniqueConstraint("user_id", "event_id", name="uq_waiting_list_user_event"),
        db.Index("ix_waiting_list_event_position", "event_id", "position"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_id = db.Column(
        db.String(36), db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    user = db.relationship("User")
    event = db.relationship("Event", back_populates="waiting_list")

    def __repr__(self):
        return f"<WaitingListEntry event={self.event_id} #{self.position} user={self.user_id}>"


class UserSeasonBalance(UtcTimestampMixin, db.Model):
    __tablename__ = "user_season_balances"
    __table_args__ = (
        db.UniqueConstraint("user_id", "season_id", name="uq_balance_user_season"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    season_id = db.Column(
        db.String(36), db.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False
    )
    rotativos_tomados = db.Column(db.Integer, default=0, nullable=False)
    rotativos_obligatorios = db.Column(db.Integer, default=0, nullable=False)
    rotativos_por_licencia = db.Column(db.Integer, default=0, nullable=False)
    max_proyectado = db.Column(db.Integer, default=0, nullable=False)
    max_ajustado_manual = db.Column(db.Integer, nullable=True)
    fines_de_semana_mes = db.Column(db.JSON, default=dict, nullable=False)
    bloque_usado = db.Column(db.Boolean, default=False, nullable=False)
    fecha_ingreso = db.Column(db.Date, nullable=True)

    user = db.relationship("User")

    @property
    def max_efectivo(self) -> int:
        if self.max_ajustado_manual is not None:
            return self.max_ajustado_manual
        return self.max_proyectado

    @property
    def total(self) -> int:
        return (
            self.rotativos_tomados
            + self.rotativos_obligatorios
            + self.rotativos_por_licencia
        )

    def __repr__(self):
        return f"<UserSeasonBalance user={self.user_id} season={self.season_id} {self.total}/{self.max_efectivo}>"


class License(UtcTimestampMixin, db.Model):
    __tablename__ = "licenses"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    season_id = db.Column(db.String(36), db.ForeignKey("seasons.id"), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    rotativos_calculados = db.Column(db.Integer, default=0, nullable=False)
    description = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f"<License user={self.user_id} {self.start_date}..{self.end_date}>"


# ---------- Configuración / Notificaciones / Auditoría ----------
class RuleConfig(UtcTimestampMixin, db.Model):
    __tablename__ = "rule_configs"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)  # JSON serializado
    enabled = db.Column(db.Boolean, default=True, nullable=False)
    priority = db.Column(db.Integer, default=100, nullable=False)
    description = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f"<RuleConfig {self.key} enabled={self.enabled} priority={self.priority}>"


class Notification(UtcTimestampMixin, db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    read = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Notification {self.type} user={self.user_id}>"


class AuditLog(UtcTimestampMixin, db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    action = db.Column(db.String(50), nullable=False, index=True)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False)  # actor
    target_user_id = db.Column(db.String(36), nullable=True)
    details = db.Column(db.JSON, nullable=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id}>"
