from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def use_immediate_transactions(engine) -> bool:
    """En SQLite en archivo cada transacción toma el lock de escritura al empezar.

    Así dos promociones del mismo evento en procesos o hilos distintos no leen
    la misma cabeza de lista antes de que la primera haga commit. Receta de la
    documentación del dialecto pysqlite.
    """
    if engine.dialect.name != "sqlite" or engine.url.database in (None, "", ":memory:"):
        return False

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return True
