"""
Pruebas de reservas de deseos y de sus notificaciones.
"""
import asyncio
from datetime import date

import pytest
from sqlalchemy import func, select

from app.core.errors import Conflict, Forbidden, NotFoundError, ValidationFailed
from app.core.security import get_password_hash
from app.models.models import Notification, User, Wish
from app.services import notifications as notification_service
from app.services import wishes as wish_service

from conftest import add_wish, connect_users, register_user


class TestReserveApi:
    """Reservar y cancelar a través de la API."""

    def test_reserve_and_cancel_end_to_end(self, client):
        owner = register_user(client, realName="Olga Owner")
        friend = register_user(client, realName="Fede Friend")
        connect_users(client, owner, friend)
        wish = add_wish(client, owner, "Libro de cocina")

        response = client.post(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isReserved"] is True
        assert data["reservedBy"] == friend["user"]["id"]

        notifications = client.get("/api/notifications", headers=owner["headers"]).json()["data"]["notifications"]
        reserved = [item for item in notifications if item["type"] == "wish_reserved"]
        assert len(reserved) == 1
        assert reserved[0]["title"] == "¡Tu deseo ha sido reservado!"
        assert reserved[0]["message"] == 'Fede Friend ha reservado tu deseo "Libro de cocina"'
        assert reserved[0]["relatedUserId"] == friend["user"]["id"]
        assert reserved[0]["relatedWishId"] == wish["id"]
        assert reserved[0]["metadata"] == {"reserverName": "Fede Friend", "wishTitle": "Libro de cocina"}
        assert reserved[0]["relatedWish"]["title"] == "Libro de cocina"

        response = client.delete(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isReserved"] is False
        assert data["reservedBy"] is None

        notifications = client.get("/api/notifications", headers=owner["headers"]).json()["data"]["notifications"]
        assert notifications[0]["type"] == "wish_cancelled"
        assert notifications[0]["title"] == "Reserva cancelada"
        assert notifications[0]["message"] == 'Fede Friend ha cancelado la reserva de tu deseo "Libro de cocina"'

    def test_unknown_wish(self, client):
        friend = register_user(client)

        response = client.post("/api/wishes/999999/reserve", headers=friend["headers"])

        assert response.status_code == 404
        assert response.json()["message"] == "Deseo no encontrado"

    def test_owner_cannot_reserve(self, client):
        owner = register_user(client)
        wish = add_wish(client, owner)

        response = client.post(f"/api/wishes/{wish['id']}/reserve", headers=owner["headers"])

        assert response.status_code == 400
        assert response.json()["message"] == "No puedes reservar tu propio deseo"

    def test_owner_cannot_reserve_even_when_reserved(self, client):
        owner = register_user(client)
        friend = register_user(client)
        wish = add_wish(client, owner)
        client.post(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])

        response = client.post(f"/api/wishes/{wish['id']}/reserve", headers=owner["headers"])

        assert response.status_code == 400
        assert response.json()["message"] == "No puedes reservar tu propio deseo"

    def test_second_reservation_rejected(self, client):
        owner = register_user(client)
        first = register_user(client)
        second = register_user(client)
        wish = add_wish(client, owner)
        client.post(f"/api/wishes/{wish['id']}/reserve", headers=first["headers"])

        response = client.post(f"/api/wishes/{wish['id']}/reserve", headers=second["headers"])

        assert response.status_code == 400
        assert response.json()["message"] == "Este deseo ya está reservado"
        wishes = client.get(f"/api/wishes/user/{owner['user']['id']}", headers=second["headers"]).json()["data"]
        assert wishes[0]["reservedBy"] == first["user"]["id"]

    def test_only_reserver_can_cancel(self, client):
        owner = register_user(client)
        friend = register_user(client)
        other = register_user(client)
        wish = add_wish(client, owner)
        client.post(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])

        for intruder in (owner, other):
            response = client.delete(f"/api/wishes/{wish['id']}/reserve", headers=intruder["headers"])
            assert response.status_code == 403
            assert response.json()["message"] == "No tienes permisos para cancelar esta reserva"

    def test_cancel_unreserved_wish_forbidden(self, client):
        owner = register_user(client)
        friend = register_user(client)
        wish = add_wish(client, owner)

        response = client.delete(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])

        assert response.status_code == 403

    def test_reserve_again_after_cancel(self, client):
        owner = register_user(client)
        first = register_user(client)
        second = register_user(client)
        wish = add_wish(client, owner)
        client.post(f"/api/wishes/{wish['id']}/reserve", headers=first["headers"])
        client.delete(f"/api/wishes/{wish['id']}/reserve", headers=first["headers"])

        response = client.post(f"/api/wishes/{wish['id']}/reserve", headers=second["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["reservedBy"] == second["user"]["id"]


async def _seed(session_factory) -> tuple[int, list[int], int]:
    async with session_factory() as db:
        owner = User(
            email="owner@example.com",
            hashed_password=get_password_hash("SecurePass123!"),
            nickname="owner",
            real_name="Owner",
            birth_date=date(1990, 1, 1),
        )
        reservers = [
            User(
                email=f"reserver{index}@example.com",
                hashed_password=get_password_hash("SecurePass123!"),
                nickname=f"reserver{index}",
                real_name=f"Reserver {index}",
                birth_date=date(1991, 2, 2),
            )
            for index in range(2)
        ]
        db.add_all([owner, *reservers])
        await db.flush()
        wish = Wish(user_id=owner.id, title="Reloj", description="Reloj de pulsera", position=1)
        db.add(wish)
        await db.commit()
        return owner.id, [user.id for user in reservers], wish.id


class TestReserveService:
    """Reglas de reserva a nivel de servicio."""

    async def test_concurrent_reservations_have_one_winner(self, session_factory):
        owner_id, reserver_ids, wish_id = await _seed(session_factory)

        async def attempt(user_id: int):
            async with session_factory() as db:
                user = await db.get(User, user_id)
                return await wish_service.reserve(db, user, wish_id)

        results = await asyncio.gather(
            *(attempt(user_id) for user_id in reserver_ids),
            return_exceptions=True,
        )

        winners = [result for result in results if isinstance(result, Wish)]
        losers = [result for result in results if isinstance(result, Conflict)]
        assert len(winners) == 1
        assert len(losers) == 1

        async with session_factory() as db:
            wish = await db.get(Wish, wish_id)
            assert wish.is_reserved is True
            assert wish.reserved_by == winners[0].reserved_by
            reserved_count = await db.scalar(
                select(func.count(Notification.id)).where(Notification.type == "wish_reserved")
            )
            assert reserved_count == 1

    async def test_stale_reader_cannot_overwrite(self, session_factory):
        """The loser loaded the wish before the winner committed."""
        owner_id, (first_id, second_id), wish_id = await _seed(session_factory)

        async with session_factory() as stale_db:
            stale_user = await stale_db.get(User, second_id)
            stale_wish = await stale_db.get(Wish, wish_id)
            assert stale_wish.is_reserved is False

            async with session_factory() as db:
                await wish_service.reserve(db, await db.get(User, first_id), wish_id)

            with pytest.raises(Conflict):
                await wish_service.reserve(stale_db, stale_user, wish_id)

        async with session_factory() as db:
            assert (await db.get(Wish, wish_id)).reserved_by == first_id

    async def test_service_errors(self, session_factory):
        owner_id, (first_id, second_id), wish_id = await _seed(session_factory)

        async with session_factory() as db:
            owner = await db.get(User, owner_id)
            first = await db.get(User, first_id)
            second = await db.get(User, second_id)

            with pytest.raises(NotFoundError):
                await wish_service.reserve(db, first, 999999)
            with pytest.raises(ValidationFailed):
                await wish_service.reserve(db, owner, wish_id)

            await wish_service.reserve(db, first, wish_id)
            with pytest.raises(Forbidden):
                await wish_service.cancel_reservation(db, second, wish_id)

            wish = await wish_service.cancel_reservation(db, first, wish_id)
            assert wish.is_reserved is False
            assert wish.reserved_by is None

    async def test_notification_failure_keeps_reservation(self, session_factory, monkeypatch):
        owner_id, (first_id, _), wish_id = await _seed(session_factory)

        def broken_add(db, **kwargs):
            # NOT NULL violation surfaces at commit time
            notification = Notification(user_id=kwargs["user_id"], type=kwargs["type"].value, title=None, message=None)
            db.add(notification)
            return notification

        monkeypatch.setattr(notification_service, "add_notification", broken_add)

        async with session_factory() as db:
            wish = await wish_service.reserve(db, await db.get(User, first_id), wish_id)
            assert wish.reserved_by == first_id

        async with session_factory() as db:
            stored = await db.get(Wish, wish_id)
            assert stored.is_reserved is True
            assert stored.reserved_by == first_id
            assert await db.scalar(select(func.count(Notification.id))) == 0
