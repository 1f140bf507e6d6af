# services/validation.py
from datetime import datetime

from flask import current_app

from ..models import RotativoTipo
from ..rules import ValidationEngine, ValidationSummary
from .context import build_validation_context
from .rule_configs import RuleConfigStore


def get_engine() -> ValidationEngine:
    """Motor con el catálogo de la aplicación y la configuración persistida."""
    catalog = current_app.extensions["rotativos_catalog"]
    return ValidationEngine(catalog, RuleConfigStore())


def validate(user_id: str, event_id: str,
             request_type: RotativoTipo = RotativoTipo.voluntario,
             request_date: datetime | None = None,
             engine: ValidationEngine | None = None) -> ValidationSummary:
    engine = engine or get_engine()
    context = build_validation_context(user_id, event_id, request_type, request_date)
    return engine.validate_request(context)
