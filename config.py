import os


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return int(value)


BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    SQLALCHEMY_DATABASE_URI = (
        os.environ.get("SQLALCHEMY_DATABASE_URI")
        or os.environ.get("DATABASE_URL")
        or "sqlite:///" + os.path.join(BASE_DIR, "rotativos.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cupos
    CUPO_CACHE_TTL = _env_int("CUPO_CACHE_TTL", 60)
    DEFAULT_CUPO = _env_int("DEFAULT_CUPO", 2)

    # Balance por defecto cuando el integrante aún no tiene registro
    DEFAULT_MAX_PROYECTADO = _env_int("DEFAULT_MAX_PROYECTADO", 50)

    # Notificar al integrante y a los admins al llegar al umbral de alerta
    ALERTA_NOTIFICAR = _env_bool("ALERTA_NOTIFICAR", True)
