"""
MongoDB adapter for the FixDesk ticket engine.

This adapter implements the DataStorageProvider interface for MongoDB.
Store failures are logged and re-raised; they are the only errors that
are allowed to fail a ticket submission.
"""
import logging
import uuid
from typing import Dict, List, Tuple, Optional

from pymongo import MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from fixdesk.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class MongoDBAdapter(DataStorageProvider):
    """MongoDB implementation of DataStorageProvider."""

    def __init__(self, connection_string: str, database_name: str):
        # Datetimes come back timezone aware so they compare with utcnow()
        self.client = MongoClient(connection_string, tz_aware=True)
        self.db = self.client[database_name]
        logger.info(f"MongoDB adapter using database '{database_name}'")

    def ping(self) -> bool:
        """Check that the server answers."""
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False

    def create_collection(self, name: str) -> None:
        if not self.collection_exists(name):
            self.db.create_collection(name)
            logger.info(f"Created collection '{name}'")

    def collection_exists(self, name: str) -> bool:
        return name in self.db.list_collection_names()

    def insert_one(self, collection: str, document: Dict) -> str:
        document.setdefault("_id", str(uuid.uuid4()))
        try:
            self.db[collection].insert_one(document)
        except PyMongoError as e:
            logger.error(f"Insert into '{collection}' failed: {e}")
            raise
        return document["_id"]

    def find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        return self.db[collection].find_one(query)

    def find(
        self,
        collection: str,
        query: Dict,
        sort: Optional[List[Tuple]] = None,
        limit: int = 0,
        skip: int = 0
    ) -> List[Dict]:
        cursor = self.db[collection].find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor)

    def update_one(self, collection: str, query: Dict, update: Dict, upsert: bool = False) -> bool:
        result = self.db[collection].update_one(query, update, upsert=upsert)
        return result.modified_count > 0 or (upsert and result.upserted_id is not None)

    def find_one_and_update(self, collection: str, query: Dict, update: Dict) -> Optional[Dict]:
        """Atomically update one document and return it as written."""
        try:
            return self.db[collection].find_one_and_update(
                query, update, return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"Atomic update in '{collection}' failed: {e}")
            raise

    def update_many(self, collection: str, query: Dict, update: Dict) -> int:
        result = self.db[collection].update_many(query, update)
        return result.modified_count

    def delete_one(self, collection: str, query: Dict) -> bool:
        result = self.db[collection].delete_one(query)
        return result.deleted_count == 1

    def count_documents(self, collection: str, query: Dict) -> int:
        return self.db[collection].count_documents(query)

    def create_index(self, collection: str, keys: List[Tuple], **kwargs) -> None:
        self.db[collection].create_index(keys, **kwargs)
