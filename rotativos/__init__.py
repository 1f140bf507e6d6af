from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from .extensions import db, migrate, use_immediate_transactions
from .rules import build_default_catalog
from .services import cupos

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env", override=False)
load_dotenv(BASE_DIR / "instance" / ".env", override=False)

def create_app(config_class="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Inicializar extensiones
    db.init_app(app)
    migrate.init_app(app, db)
    with app.app_context():
        use_immediate_transactions(db.engine)

    # Catálogo de reglas de la aplicación
    app.extensions["rotativos_catalog"] = build_default_catalog()
    cupos.invalidate_cache()

    # Registrar blueprints
    from . import api
    app.register_blueprint(api.bp, url_prefix="/api")

    return app
