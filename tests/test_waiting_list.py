import pytest

from rotativos.errors import InvalidRequestError
from rotativos.extensions import db
from rotativos.models import (
    Notification,
    Rotativo,
    RotativoEstado,
    UserRole,
    WaitingListEntry,
)
from rotativos.services import balance as balance_service
from rotativos.services import notifications
from rotativos.services import waiting_list as waiting_list_service

from factories import (
    create_balance,
    create_event,
    create_rotativo,
    create_season,
    create_user,
)


def positions(event_id):
    return [
        (entry.user_id, entry.position)
        for entry in waiting_list_service.get_waiting_list(event_id)
    ]


def queue(user, event, **kwargs):
    rotativo = create_rotativo(user, event, estado=RotativoEstado.en_espera, **kwargs)
    waiting_list_service.add_to_waiting_list(user.id, event.id)
    return rotativo


def test_positions_are_dense_in_insertion_order(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        users = [create_user(f"m{i}@example.com") for i in range(3)]
        for user in users:
            waiting_list_service.add_to_waiting_list(user.id, event.id)

        assert positions(event.id) == [(users[0].id, 1), (users[1].id, 2), (users[2].id, 3)]
        assert waiting_list_service.get_user_position(users[2].id, event.id) == 3


def test_removing_shifts_later_entries(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        users = [create_user(f"m{i}@example.com") for i in range(4)]
        for user in users:
            waiting_list_service.add_to_waiting_list(user.id, event.id)

        assert waiting_list_service.remove_from_waiting_list(users[1].id, event.id) is True

        assert positions(event.id) == [(users[0].id, 1), (users[2].id, 2), (users[3].id, 3)]


def test_removing_missing_entry_returns_false(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        user = create_user("ana@example.com")

        assert waiting_list_service.remove_from_waiting_list(user.id, event.id) is False


def test_same_member_cannot_queue_twice(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        user = create_user("ana@example.com")
        waiting_list_service.add_to_waiting_list(user.id, event.id)

        with pytest.raises(InvalidRequestError):
            waiting_list_service.add_to_waiting_list(user.id, event.id)


def test_promoting_empty_list_is_noop(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)

        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.promoted is False


def test_promotion_waits_while_event_is_full(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        holder = create_user("holder@example.com")
        waiting = create_user("ana@example.com")
        create_rotativo(holder, event)
        queue(waiting, event)

        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.promoted is False
        assert positions(event.id) == [(waiting.id, 1)]


def test_promotion_approves_head_and_updates_balance(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        first = create_user("first@example.com")
        second = create_user("second@example.com")
        rotativo = queue(first, event)
        queue(second, event)

        result = waiting_list_service.promote_from_waiting_list(event.id)
        db.session.commit()

        assert result.promoted is True
        assert result.user_id == first.id
        assert result.estado == RotativoEstado.aprobado
        assert db.session.get(Rotativo, rotativo.id).estado == RotativoEstado.aprobado
        assert positions(event.id) == [(second.id, 1)]
        assert balance_service.get_user_balance(first.id, season.id).rotativos_tomados == 1
        assert Notification.query.filter_by(
            user_id=first.id, type=notifications.LISTA_ESPERA_CUPO
        ).count() == 1


def test_promoting_twice_without_new_capacity_succeeds_once(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        first = create_user("first@example.com")
        second = create_user("second@example.com")
        queue(first, event)
        queue(second, event)

        assert waiting_list_service.promote_from_waiting_list(event.id).promoted is True
        assert waiting_list_service.promote_from_waiting_list(event.id).promoted is False
        assert positions(event.id) == [(second.id, 1)]


def test_promotion_skips_entries_whose_request_left_the_queue(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        stale = create_user("stale@example.com")
        waiting = create_user("waiting@example.com")
        cancelled = queue(stale, event)
        cancelled.estado = RotativoEstado.cancelado
        queue(waiting, event)

        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.promoted is True
        assert result.user_id == waiting.id
        assert db.session.get(Rotativo, cancelled.id).estado == RotativoEstado.cancelado
        assert positions(event.id) == []
        assert balance_service.get_user_balance(stale.id, season.id) is None


def test_preapproved_entry_is_approved_without_revalidation(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        user = create_user("ana@example.com")
        # el balance haría fallar la revalidación
        create_balance(user, season, rotativos_tomados=10, max_proyectado=10)
        queue(user, event, aprobado_por="admin-1")

        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.estado == RotativoEstado.aprobado


def test_entry_that_needed_review_is_promoted_to_pending(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        admin = create_user("admin@example.com", role=UserRole.admin)
        holder = create_user("holder@example.com")
        user = create_user("ana@example.com")
        holder_rotativo = create_rotativo(holder, event)
        queue(user, event, motivo_inicial="Solicitud del mismo día")

        holder_rotativo.estado = RotativoEstado.cancelado
        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.promoted is True
        assert result.estado == RotativoEstado.pendiente
        assert "Solicitud del mismo día" in result.motivo
        # el balance no se toca al quedar pendiente
        assert waiting_list_service.get_user_position(user.id, event.id) is None
        assert balance_service.get_user_balance(user.id, season.id) is None
        assert Notification.query.filter_by(
            user_id=admin.id, type=notifications.LISTA_ESPERA_PENDIENTE
        ).count() == 1


def test_failed_revalidation_routes_to_pending(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        user = create_user("ana@example.com")
        queue(user, event)
        create_balance(user, season, rotativos_tomados=10, max_proyectado=10)

        result = waiting_list_service.promote_from_waiting_list(event.id)

        assert result.estado == RotativoEstado.pendiente
        assert "máximo proyectado" in result.motivo


class ExplodingEngine:
    def validate_request(self, context, exclude=()):
        raise RuntimeError("configuración no disponible")


def test_revalidation_error_does_not_lose_the_member(app):
    with app.app_context():
        season = create_season()
        event = create_event(season, cupo=1)
        user = create_user("ana@example.com")
        rotativo = queue(user, event)

        result = waiting_list_service.promote_from_waiting_list(event.id, engine=ExplodingEngine())

        assert result.promoted is True
        assert result.estado == RotativoEstado.pendiente
        assert "configuración no disponible" in result.motivo
        assert db.session.get(Rotativo, rotativo.id).estado == RotativoEstado.pendiente


def test_purge_clears_season_entries(app):
    with app.app_context():
        season = create_season()
        other_season = create_season("Temporada 2027")
        event = create_event(season, cupo=1)
        other_event = create_event(other_season, cupo=1)
        for i in range(3):
            waiting_list_service.add_to_waiting_list(create_user(f"m{i}@example.com").id, event.id)
        waiting_list_service.add_to_waiting_list(create_user("x@example.com").id, other_event.id)

        assert waiting_list_service.purge_waiting_list(season.id) == 3
        assert WaitingListEntry.query.count() == 1


def test_event_locks_come_from_a_fixed_pool():
    locks = {id(waiting_list_service._event_lock(f"evento-{i}")) for i in range(500)}

    assert waiting_list_service._event_lock("evento-1") is waiting_list_service._event_lock("evento-1")
    assert len(locks) <= len(waiting_list_service._event_locks) == 64
