from datetime import date, datetime, timedelta

import pytest

from rotativos.errors import NotFoundError
from rotativos.extensions import db
from rotativos.models import (
    AuditLog,
    BlockEstado,
    RotativoEstado,
    RotativoTipo,
    TituloType,
    UserRole,
    UserSeasonBalance,
)
from rotativos.services import audit
from rotativos.services import balance as balance_service

from factories import (
    create_balance,
    create_block,
    create_event,
    create_rotativo,
    create_season,
    create_titulo,
    create_user,
    weekday_ahead,
)

SATURDAY = datetime(2026, 3, 7, 20)


def test_dynamic_max_sums_effective_capacity_over_members(app):
    with app.app_context():
        season = create_season()
        for i in range(4):
            create_user(f"m{i}@example.com")
        opera = create_titulo(season, type=TituloType.opera)
        create_event(season, cupo=4)                  # override
        create_event(season, titulo=opera)            # cupo por tipo: 4
        create_event(season)                          # sin título: DEFAULT_CUPO 2

        # 10 / 4 = 2.5, redondeo hacia arriba
        assert balance_service.calculate_dynamic_max(season.id) == 3


def test_dynamic_max_without_members_is_zero(app):
    with app.app_context():
        season = create_season()
        create_event(season, cupo=4)

        assert balance_service.calculate_dynamic_max(season.id) == 0


def test_update_creates_balance_lazily(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        create_event(season, cupo=10)

        balance = balance_service.update_user_balance(
            user.id, season.id, increment_rotativos=True, is_weekend=True, event_date=SATURDAY,
        )

        assert balance.rotativos_tomados == 1
        assert balance.max_proyectado == 10
        assert balance.fines_de_semana_mes == {"2026-03": 1}


def test_update_increments_existing_balance(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        create_balance(user, season, rotativos_tomados=3, fines_de_semana_mes={"2026-03": 1})

        balance_service.update_user_balance(
            user.id, season.id, increment_obligatorios=True, is_weekend=True, event_date=SATURDAY,
        )
        db.session.commit()

        balance = balance_service.get_user_balance(user.id, season.id)
        assert balance.rotativos_tomados == 3
        assert balance.rotativos_obligatorios == 1
        assert balance.fines_de_semana_mes == {"2026-03": 2}


def test_decrement_floors_at_zero(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        create_balance(user, season, rotativos_tomados=0, fines_de_semana_mes={"2026-03": 1})

        balance = balance_service.decrement_user_balance(
            user.id, season.id, increment_rotativos=True, is_weekend=True, event_date=SATURDAY,
        )

        assert balance.rotativos_tomados == 0
        assert balance.fines_de_semana_mes == {"2026-03": 0}


def test_decrement_without_balance_is_noop(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")

        assert balance_service.decrement_user_balance(user.id, season.id, increment_rotativos=True) is None
        assert UserSeasonBalance.query.count() == 0


def test_recalculate_rebuilds_from_records(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        other = create_user("bea@example.com")
        create_balance(user, season, rotativos_tomados=12, rotativos_obligatorios=4, bloque_usado=False)

        events = [create_event(season, cupo=5, when=weekday_ahead(10 + i)) for i in range(5)]
        create_rotativo(user, events[0])
        create_rotativo(user, events[1], tipo=RotativoTipo.cobertura)
        create_rotativo(user, events[2], estado=RotativoEstado.asignado, tipo=RotativoTipo.obligatorio)
        create_rotativo(user, events[3], estado=RotativoEstado.pendiente)
        create_rotativo(user, events[4], estado=RotativoEstado.cancelado)
        create_rotativo(other, events[0])
        create_block(season, assigned_to=user, estado=BlockEstado.aprobado)

        balance = balance_service.recalculate_balance(user.id, season.id)

        assert balance.rotativos_tomados == 2
        assert balance.rotativos_obligatorios == 1
        assert balance.bloque_usado is True
        # 5 eventos x 5 cupos / 2 integrantes
        assert balance.max_proyectado == 13
        assert AuditLog.query.filter_by(action=audit.BALANCE_RECALCULADO).count() == 1


def test_recalculate_is_idempotent(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        saturday = weekday_ahead(10)
        while saturday.weekday() != 5:
            saturday += timedelta(days=1)
        create_rotativo(user, create_event(season, when=saturday))

        first = balance_service.recalculate_balance(user.id, season.id)
        snapshot = (first.rotativos_tomados, dict(first.fines_de_semana_mes), first.max_proyectado)
        second = balance_service.recalculate_balance(user.id, season.id)

        assert (second.rotativos_tomados, dict(second.fines_de_semana_mes), second.max_proyectado) == snapshot
        assert snapshot[1] == {saturday.strftime("%Y-%m"): 1}
        assert UserSeasonBalance.query.count() == 1


def test_manual_max_requires_existing_balance(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")

        with pytest.raises(NotFoundError):
            balance_service.set_manual_max(user.id, season.id, 30)


def test_manual_max_overrides_projected(app):
    with app.app_context():
        season = create_season()
        user = create_user("ana@example.com")
        create_balance(user, season, max_proyectado=20)

        balance = balance_service.set_manual_max(user.id, season.id, 35, actor_id="admin")

        assert balance.max_efectivo == 35
        log = AuditLog.query.filter_by(action=audit.MAXIMO_AJUSTADO).one()
        assert log.details == {"anterior": None, "nuevo": 35}


def test_license_credits_average_of_others(app):
    with app.app_context():
        season = create_season()
        member = create_user("ana@example.com")
        others = [create_user(f"o{i}@example.com") for i in range(3)]
        start = date.today() + timedelta(days=20)
        events = [
            create_event(season, cupo=5, when=datetime.combine(start + timedelta(days=i), datetime.min.time()))
            for i in range(3)
        ]
        # 7 rotativos aprobados del resto dentro de la licencia
        for event in events:
            create_rotativo(others[0], event)
            create_rotativo(others[1], event)
        create_rotativo(others[2], events[0])
        create_rotativo(others[2], events[1], estado=RotativoEstado.pendiente)

        license = balance_service.register_license(
            member.id, season.id, start, start + timedelta(days=2), "Licencia médica",
        )

        assert license.rotativos_calculados == 2
        balance = balance_service.get_user_balance(member.id, season.id)
        assert balance.rotativos_por_licencia == 2


def test_license_with_reversed_dates_fails(app):
    with app.app_context():
        season = create_season()
        member = create_user("ana@example.com")

        with pytest.raises(ValueError):
            balance_service.register_license(
                member.id, season.id, date(2026, 5, 10), date(2026, 5, 1),
            )


def test_new_member_gets_group_average(app):
    with app.app_context():
        season = create_season()
        a = create_user("a@example.com")
        b = create_user("b@example.com")
        events = [create_event(season, cupo=5, when=weekday_ahead(10 + i)) for i in range(3)]
        for event in events:
            create_rotativo(a, event)
        create_rotativo(b, events[0])
        create_rotativo(b, events[1])
        nuevo = create_user("nuevo@example.com")

        balance = balance_service.register_new_member(nuevo.id, season.id, date.today())

        # 5 rotativos / 2 integrantes = 2.5
        assert balance.max_proyectado == 3
        assert balance.fecha_ingreso == date.today()

        # el recálculo conserva el máximo fijado al ingresar
        assert balance_service.recalculate_balance(nuevo.id, season.id).max_proyectado == 3


def test_group_averages_ignore_admins(app):
    with app.app_context():
        season = create_season()
        a = create_user("a@example.com")
        b = create_user("b@example.com")
        create_user("admin@example.com", role=UserRole.admin)
        start = date.today() + timedelta(days=20)
        events = [
            create_event(season, cupo=5, when=datetime.combine(start + timedelta(days=i), datetime.min.time()))
            for i in range(3)
        ]
        for event in events:
            create_rotativo(a, event)
        create_rotativo(b, events[0])
        create_rotativo(b, events[1])
        nuevo = create_user("nuevo@example.com")

        # 5 rotativos / 2 integrantes; el admin no entra en el promedio
        balance = balance_service.register_new_member(nuevo.id, season.id, date.today())
        assert balance.max_proyectado == 3
        assert balance_service.calculate_license_credit(
            nuevo.id, season.id, start, start + timedelta(days=2)
        ) == 2
