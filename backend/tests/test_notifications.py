"""
Pruebas del buzón de notificaciones y avisos.
"""
import pytest

from app.core.errors import NotFoundError
from app.models.models import Notification, NotificationTypeEnum, User
from app.services import notifications as notification_service

from conftest import add_wish, register_user


def _reserve(client, owner, friend, title="Regalo"):
    wish = add_wish(client, owner, title)
    client.post(f"/api/wishes/{wish['id']}/reserve", headers=friend["headers"])
    return wish


class TestNotificationInbox:
    """Listado, lectura y borrado."""

    def test_list_is_paginated_newest_first(self, client):
        owner = register_user(client)
        friend = register_user(client)
        for title in ("Uno", "Dos", "Tres"):
            _reserve(client, owner, friend, title)

        response = client.get("/api/notifications", params={"page": 1, "limit": 2}, headers=owner["headers"])

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 3
        assert page["totalPages"] == 2
        assert [item["metadata"]["wishTitle"] for item in page["notifications"]] == ["Tres", "Dos"]
        assert page["notifications"][0]["relatedUser"]["id"] == friend["user"]["id"]

        second = client.get("/api/notifications", params={"page": 2, "limit": 2}, headers=owner["headers"])
        assert [item["metadata"]["wishTitle"] for item in second.json()["data"]["notifications"]] == ["Uno"]

    def test_unread_count_and_mark_read(self, client):
        owner = register_user(client)
        friend = register_user(client)
        _reserve(client, owner, friend, "Uno")
        _reserve(client, owner, friend, "Dos")

        assert client.get("/api/notifications/count", headers=owner["headers"]).json()["data"]["count"] == 2

        first_id = client.get("/api/notifications", headers=owner["headers"]).json()["data"]["notifications"][0]["id"]
        response = client.put(f"/api/notifications/{first_id}/read", headers=owner["headers"])
        assert response.status_code == 200
        assert response.json()["data"]["isRead"] is True
        assert client.get("/api/notifications/count", headers=owner["headers"]).json()["data"]["count"] == 1

        response = client.put("/api/notifications/read-all", headers=owner["headers"])
        assert response.json()["data"]["count"] == 1
        assert client.get("/api/notifications/count", headers=owner["headers"]).json()["data"]["count"] == 0

    def test_other_users_notification_is_not_found(self, client):
        owner = register_user(client)
        friend = register_user(client)
        _reserve(client, owner, friend)
        notification_id = client.get("/api/notifications", headers=owner["headers"]).json()["data"]["notifications"][0]["id"]

        read = client.put(f"/api/notifications/{notification_id}/read", headers=friend["headers"])
        delete = client.delete(f"/api/notifications/{notification_id}", headers=friend["headers"])

        assert read.status_code == 404
        assert read.json()["message"] == "Notificación no encontrada"
        assert delete.status_code == 404

    def test_delete(self, client):
        owner = register_user(client)
        friend = register_user(client)
        _reserve(client, owner, friend)
        notification_id = client.get("/api/notifications", headers=owner["headers"]).json()["data"]["notifications"][0]["id"]

        response = client.delete(f"/api/notifications/{notification_id}", headers=owner["headers"])

        assert response.status_code == 200
        assert client.get("/api/notifications", headers=owner["headers"]).json()["data"]["total"] == 0

    def test_avisos_exclude_reservation_events(self, client):
        owner = register_user(client)
        friend = register_user(client)
        stranger = register_user(client)
        _reserve(client, owner, friend)
        client.post("/api/contacts/request", json={"userId": owner["user"]["id"]}, headers=stranger["headers"])

        response = client.get("/api/notifications/avisos", headers=owner["headers"])

        page = response.json()["data"]
        assert [item["type"] for item in page["avisos"]] == ["contact_request"]
        assert page["unreadCount"] == 1
        assert page["total"] == 1


class TestCleanupExamples:
    """Limpieza de notificaciones de ejemplo."""

    async def test_cleanup_examples(self, session_factory):
        async with session_factory() as db:
            user = User(
                email="cleanup@example.com",
                hashed_password="x",
                nickname="cleanup",
                real_name="Cleanup",
            )
            db.add(user)
            await db.flush()
            db.add_all(
                [
                    Notification(user_id=user.id, type="welcome", title="Hola", message="m"),
                    Notification(user_id=user.id, type="wish_added", title="Nuevo deseo", message="m"),
                    Notification(
                        user_id=user.id,
                        type=NotificationTypeEnum.WISH_RESERVED.value,
                        title="¡Tu deseo ha sido reservado!",
                        message="m",
                    ),
                ]
            )
            await db.commit()

            deleted = await notification_service.cleanup_example_notifications(db, user.id)
            rows, total = await notification_service.list_notifications(db, user.id, page=1, limit=10)

        assert deleted == 2
        assert total == 1
        assert rows[0].type == "wish_reserved"

    async def test_mark_read_unknown(self, session_factory):
        async with session_factory() as db:
            with pytest.raises(NotFoundError):
                await notification_service.mark_read(db, 1, 12345)
