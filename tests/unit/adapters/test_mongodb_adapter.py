import os

import mongomock
import pytest
from pymongo import MongoClient
from pymongo.errors import DuplicateKeyError

from fixdesk.adapters.mongodb_adapter import MongoDBAdapter


@pytest.fixture
def mongo_client():
    """Fixture for MongoDB client (mock or real based on env var)."""
    if os.environ.get("MONGODB_REAL") == "1":
        client = MongoClient("mongodb://localhost:27017/")
        yield client
        client.drop_database("fixdesk_test")
    else:
        yield mongomock.MongoClient()


@pytest.fixture
def mongodb_adapter(mongo_client):
    """Fixture for MongoDB adapter."""
    adapter = MongoDBAdapter(
        connection_string="mongodb://localhost:27017", database_name="fixdesk_test"
    )
    adapter.client = mongo_client
    adapter.db = mongo_client["fixdesk_test"]
    return adapter


@pytest.fixture
def tickets(mongodb_adapter):
    for number, status in enumerate(["open", "open", "assigned", "resolved"]):
        mongodb_adapter.insert_one(
            "tickets", {"_id": f"t{number}", "number": number, "status": status, "read": False}
        )
    return mongodb_adapter


class TestMongoDBAdapter:
    """Test suite for the MongoDB adapter."""

    def test_init(self):
        adapter = MongoDBAdapter(
            connection_string="mongodb://localhost:27017", database_name="fixdesk_test"
        )
        assert adapter.db.name == "fixdesk_test"

    def test_create_collection_is_idempotent(self, mongodb_adapter):
        mongodb_adapter.create_collection("tickets")
        mongodb_adapter.create_collection("tickets")

        assert mongodb_adapter.collection_exists("tickets") is True
        assert mongodb_adapter.collection_exists("missing") is False

    def test_insert_generates_id(self, mongodb_adapter):
        doc_id = mongodb_adapter.insert_one("tickets", {"name": "Leak"})

        assert isinstance(doc_id, str)
        assert mongodb_adapter.find_one("tickets", {"_id": doc_id})["name"] == "Leak"

    def test_insert_duplicate_raises(self, mongodb_adapter):
        mongodb_adapter.insert_one("tickets", {"_id": "same"})

        with pytest.raises(DuplicateKeyError):
            mongodb_adapter.insert_one("tickets", {"_id": "same"})

    def test_find_sort_skip_limit(self, tickets):
        docs = tickets.find("tickets", {}, sort=[("number", -1)], skip=1, limit=2)

        assert [doc["number"] for doc in docs] == [2, 1]

    def test_update_one(self, tickets):
        assert tickets.update_one("tickets", {"_id": "t0"}, {"$set": {"status": "closed"}}) is True
        assert tickets.update_one("tickets", {"_id": "nope"}, {"$set": {"status": "closed"}}) is False
        assert tickets.update_one(
            "tickets", {"_id": "new"}, {"$set": {"status": "open"}}, upsert=True
        ) is True

    def test_find_one_and_update_returns_new_document(self, tickets):
        doc = tickets.find_one_and_update(
            "tickets", {"_id": "t0", "status": "open"}, {"$set": {"status": "assigned"}}
        )
        assert doc["status"] == "assigned"

        assert tickets.find_one_and_update(
            "tickets", {"_id": "t0", "status": "open"}, {"$set": {"status": "closed"}}
        ) is None

    def test_update_many_and_count(self, tickets):
        assert tickets.update_many("tickets", {"status": "open"}, {"$set": {"read": True}}) == 2
        assert tickets.count_documents("tickets", {"read": True}) == 2

    def test_delete_one(self, tickets):
        assert tickets.delete_one("tickets", {"_id": "t0"}) is True
        assert tickets.delete_one("tickets", {"_id": "t0"}) is False

    def test_create_index(self, mongodb_adapter):
        mongodb_adapter.create_collection("tickets")
        mongodb_adapter.create_index("tickets", [("id", 1)], unique=True)

        mongodb_adapter.insert_one("tickets", {"id": "ticket-1"})
        with pytest.raises(DuplicateKeyError):
            mongodb_adapter.insert_one("tickets", {"id": "ticket-1"})

    def test_ping(self, mongodb_adapter):
        assert mongodb_adapter.ping() is True
