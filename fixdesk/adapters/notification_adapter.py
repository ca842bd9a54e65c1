"""
Notification adapters for the FixDesk ticket engine.

These adapters implement the notification sink the engine triggers on
assignments and status changes. Delivery to devices and mailboxes happens
downstream of the sink.
"""
import logging
import uuid
from typing import List

from fixdesk.domains import Notification
from fixdesk.interfaces.providers.data_storage import DataStorageProvider
from fixdesk.interfaces.providers.notification import NotificationProvider

logger = logging.getLogger(__name__)


class NullNotificationProvider(NotificationProvider):
    """Null implementation of the NotificationProvider interface.

    This provider satisfies the interface but doesn't actually send any notifications.
    It's useful when notifications aren't needed or when running tests.
    """

    async def send_notification(self, notification: Notification) -> str:
        """Pretend to send a notification.

        Args:
            notification: Notification to send (ignored)

        Returns:
            A dummy notification ID
        """
        return f"null_notification_{uuid.uuid4().hex[:8]}"

    async def list_notifications(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        return []

    async def mark_all_read(self, user_id: str) -> int:
        return 0


class MongoNotificationProvider(NotificationProvider):
    """Notification sink that records notifications in MongoDB."""

    def __init__(self, db_adapter: DataStorageProvider):
        """Initialize the provider.

        Args:
            db_adapter: MongoDB adapter
        """
        self.db = db_adapter
        self.collection = "notifications"

        self.db.create_collection(self.collection)
        self.db.create_index(self.collection, [("user_id", 1)])
        self.db.create_index(self.collection, [("sent_at", -1)])

    async def send_notification(self, notification: Notification) -> str:
        if not notification.id:
            notification.id = str(uuid.uuid4())

        doc = notification.model_dump()
        doc["_id"] = notification.id
        doc["type"] = notification.type.value
        doc["priority"] = notification.priority.value
        self.db.insert_one(self.collection, doc)

        logger.info(
            f"Notification {notification.id} ({notification.type}) recorded for user {notification.user_id}"
        )
        return notification.id

    async def list_notifications(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = {"user_id": user_id}
        if unread_only:
            query["read"] = False

        docs = self.db.find(
            self.collection, query, sort=[("sent_at", -1)], limit=limit
        )
        return [Notification.model_validate(doc) for doc in docs]

    async def mark_all_read(self, user_id: str) -> int:
        return self.db.update_many(
            self.collection,
            {"user_id": user_id, "read": False},
            {"$set": {"read": True}},
        )
