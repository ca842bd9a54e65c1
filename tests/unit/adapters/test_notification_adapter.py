"""
Tests for notification adapter implementations.
"""
from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from fixdesk.adapters.mongodb_adapter import MongoDBAdapter
from fixdesk.adapters.notification_adapter import (
    MongoNotificationProvider,
    NullNotificationProvider,
)
from fixdesk.domains import Notification, NotificationPriority, NotificationType


@pytest.fixture
def db_adapter():
    client = mongomock.MongoClient()
    adapter = MongoDBAdapter(
        connection_string="mongodb://localhost:27017", database_name="fixdesk_test"
    )
    adapter.client = client
    adapter.db = client["fixdesk_test"]
    return adapter


@pytest.fixture
def mongo_provider(db_adapter):
    return MongoNotificationProvider(db_adapter)


def _notification(user_id="tech-1", **fields):
    return Notification(
        user_id=user_id,
        type=fields.pop("type", NotificationType.NEW_ASSIGNMENT),
        title="New Ticket Assigned",
        message="You have been assigned a new plumbing ticket: Leak",
        ticket_id="ticket-1",
        **fields,
    )


class TestNullNotificationProvider:
    @pytest.mark.asyncio
    async def test_send_notification(self):
        provider = NullNotificationProvider()

        result = await provider.send_notification(_notification())

        assert result.startswith("null_notification_")
        assert await provider.list_notifications("tech-1") == []
        assert await provider.mark_all_read("tech-1") == 0


class TestMongoNotificationProvider:
    @pytest.mark.asyncio
    async def test_send_records_plain_values(self, mongo_provider, db_adapter):
        notification_id = await mongo_provider.send_notification(
            _notification(priority=NotificationPriority.HIGH)
        )

        raw = db_adapter.db["notifications"].find_one({"_id": notification_id})
        assert raw["type"] == "new_assignment"
        assert raw["priority"] == "high"
        assert raw["read"] is False

    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, mongo_provider):
        earlier = datetime(2024, 3, 1, tzinfo=timezone.utc)
        await mongo_provider.send_notification(_notification(sent_at=earlier))
        await mongo_provider.send_notification(
            _notification(type=NotificationType.TICKET_STATUS, sent_at=earlier + timedelta(hours=1))
        )
        await mongo_provider.send_notification(_notification(user_id="resident-1"))

        notifications = await mongo_provider.list_notifications("tech-1")
        assert len(notifications) == 2
        assert notifications[0].type == NotificationType.TICKET_STATUS

        assert await mongo_provider.mark_all_read("tech-1") == 2
        assert await mongo_provider.list_notifications("tech-1", unread_only=True) == []
        assert len(await mongo_provider.list_notifications("resident-1", unread_only=True)) == 1

    @pytest.mark.asyncio
    async def test_keeps_existing_id(self, mongo_provider):
        assert await mongo_provider.send_notification(_notification(id="fixed")) == "fixed"
