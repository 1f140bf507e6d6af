from rotativos.extensions import db
from rotativos.models import AuditLog, RuleConfig, UserRole
from rotativos.services import audit

from factories import create_event, create_season, create_user


def _seed(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        admin = create_user("admin@example.com", role=UserRole.admin)
        ana = create_user("ana@example.com")
        bea = create_user("bea@example.com")
        db.session.commit()
        return {
            "season": season.id,
            "event": event.id,
            "admin": admin.id,
            "ana": ana.id,
            "bea": bea.id,
        }


def test_validate_endpoint_returns_summary(app, client):
    ids = _seed(app)

    response = client.post(
        "/api/solicitudes/validar", json={"userId": ids["ana"], "eventId": ids["event"]}
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["canProceed"] is True
    assert data["suggestedAction"] == "APPROVE"
    assert data["results"][0]["ruleId"] == "R1_CUPO_DIARIO"


def test_request_flow_over_http(app, client):
    ids = _seed(app)

    first = client.post("/api/solicitudes", json={"userId": ids["ana"], "eventId": ids["event"]})
    second = client.post("/api/solicitudes", json={"userId": ids["bea"], "eventId": ids["event"]})

    assert first.status_code == 201
    assert first.get_json()["estado"] == "APROBADO"
    assert second.get_json()["action"] == "WAITING_LIST"
    assert second.get_json()["position"] == 1

    lista = client.get(f"/api/eventos/{ids['event']}/lista-espera").get_json()
    assert [entry["userId"] for entry in lista] == [ids["bea"]]

    cancel = client.post(
        f"/api/solicitudes/{first.get_json()['rotativoId']}/cancelar", json={"actorId": ids["ana"]}
    )
    assert cancel.status_code == 200
    assert cancel.get_json()["promocion"]["userId"] == ids["bea"]
    assert cancel.get_json()["promocion"]["estado"] == "APROBADO"


def test_unknown_event_returns_404(app, client):
    ids = _seed(app)

    response = client.post("/api/solicitudes", json={"userId": ids["ana"], "eventId": "nope"})

    assert response.status_code == 404
    assert "Evento" in response.get_json()["error"]


def test_missing_fields_return_400(app, client):
    response = client.post("/api/solicitudes", json={})

    assert response.status_code == 400


def test_rule_update_requires_admin(app, client):
    ids = _seed(app)

    response = client.put(
        "/api/reglas/FINES_SEMANA_MAX", json={"actorId": ids["ana"], "value": 2}
    )

    assert response.status_code == 400


def test_rule_update_persists_and_audits(app, client):
    ids = _seed(app)

    response = client.put(
        "/api/reglas/FINES_SEMANA_MAX",
        json={"actorId": ids["admin"], "value": 2, "priority": 55},
    )

    assert response.status_code == 200
    with app.app_context():
        config = db.session.get(RuleConfig, "FINES_SEMANA_MAX")
        assert config.value == "2"
        assert config.priority == 55
        assert AuditLog.query.filter_by(action=audit.REGLA_MODIFICADA).count() == 1

    reglas = client.get("/api/reglas").get_json()
    fines = next(r for r in reglas if r["configKey"] == "FINES_SEMANA_MAX")
    assert fines["priority"] == 55
    assert fines["value"] == 2


def test_balance_endpoints(app, client):
    ids = _seed(app)
    client.post("/api/solicitudes", json={"userId": ids["ana"], "eventId": ids["event"]})

    balance = client.get(f"/api/integrantes/{ids['ana']}/balance/{ids['season']}")
    assert balance.status_code == 200
    assert balance.get_json()["rotativosTomados"] == 1

    ajuste = client.put(
        f"/api/integrantes/{ids['ana']}/balance/{ids['season']}/maximo",
        json={"actorId": ids["admin"], "maxAjustado": 12},
    )
    assert ajuste.get_json()["maxEfectivo"] == 12

    missing = client.get(f"/api/integrantes/{ids['bea']}/balance/{ids['season']}")
    assert missing.status_code == 404
