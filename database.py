"""
MongoDB access for the Sports Plus API.

``Database`` owns the client and is created once per application; handlers
reach the four collections through its ``Collection`` accessors.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.server_api import ServerApi

import config
from errors import BadRequest

logger = logging.getLogger(__name__)


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise BadRequest("Invalid id")


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = doc.copy()
    if "_id" in d:
        d["_id"] = str(d["_id"])
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
        elif isinstance(v, ObjectId):
            d[k] = str(v)
    return d


class Collection:
    """Typed reads and writes against one collection, keyed by ``_id``."""

    def __init__(self, collection):
        self._collection = collection

    def find(self, filter: Optional[Dict[str, Any]] = None, sort: Optional[List[tuple]] = None) -> List[dict]:
        cursor = self._collection.find(filter or {})
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor)

    def find_one(self, filter: Dict[str, Any]) -> Optional[dict]:
        return self._collection.find_one(filter)

    def get(self, id_str: str) -> Optional[dict]:
        return self._collection.find_one({"_id": oid(id_str)})

    def insert(self, document: dict) -> str:
        result = self._collection.insert_one(dict(document))
        return str(result.inserted_id)

    def update(self, id_str: str, fields: Dict[str, Any]):
        return self._collection.update_one({"_id": oid(id_str)}, {"$set": fields})

    def push(self, id_str: str, field: str, value: Any):
        return self._collection.update_one({"_id": oid(id_str)}, {"$push": {field: value}})

    def delete(self, id_str: str):
        return self._collection.delete_one({"_id": oid(id_str)})

    def take_seat(self, id_str: str) -> Optional[dict]:
        # Single conditional update so concurrent enrollments cannot oversell.
        return self._collection.find_one_and_update(
            {"_id": oid(id_str), "seats": {"$gt": 0}},
            {"$inc": {"seats": -1, "student": 1}},
            return_document=ReturnDocument.AFTER,
        )


class Database:
    def __init__(self, client, name: str = config.DATABASE_NAME):
        self.client = client
        self.db = client[name]
        self.users = Collection(self.db["users"])
        self.classes = Collection(self.db["classes"])
        self.carts = Collection(self.db["carts"])
        self.payments = Collection(self.db["payments"])

    def ping(self) -> None:
        self.client.admin.command("ping")

    def ensure_indexes(self) -> None:
        self.db["users"].create_index([("email", ASCENDING)], unique=True)
        self.db["payments"].create_index([("id", ASCENDING)], unique=True)
        self.db["payments"].create_index([("email", ASCENDING)])
        self.db["classes"].create_index([("status", ASCENDING)])
        self.db["carts"].create_index([("email", ASCENDING)])

    def collection_names(self) -> List[str]:
        return self.db.list_collection_names()

    def close(self) -> None:
        self.client.close()


def connect(url: str = config.DATABASE_URL, name: str = config.DATABASE_NAME) -> Database:
    client = MongoClient(url, server_api=ServerApi("1"))
    logger.info("MongoDB client created for database %s", name)
    return Database(client, name)
