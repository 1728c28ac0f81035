"""
Database Helpers

A thin MongoDB adapter. One `Store` is created at startup and handed to every
service; collections are addressed by name and documents by filter.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument

import config

logger = logging.getLogger(__name__)


class Store:
    def __init__(self, client: MongoClient, database_name: str):
        self.client = client
        self.db = client[database_name]

    def collection(self, name: str):
        return self.db[name]

    def ping(self) -> None:
        self.client.admin.command("ping")

    def close(self) -> None:
        self.client.close()

    # CRUD helpers

    def insert_document(self, collection_name: str, document: dict) -> dict:
        self.collection(collection_name).insert_one(document)
        return document

    def find_document(self, collection_name: str, filter_dict: dict) -> Optional[dict]:
        return self.collection(collection_name).find_one(filter_dict)

    def find_documents(self, collection_name: str, filter_dict: Optional[dict] = None,
                       skip: int = 0, limit: Optional[int] = None) -> List[dict]:
        cursor = self.collection(collection_name).find(filter_dict or {})
        if skip:
            cursor = cursor.skip(int(skip))
        if limit:
            cursor = cursor.limit(int(limit))
        return list(cursor)

    def count_documents(self, collection_name: str, filter_dict: Optional[dict] = None) -> int:
        return self.collection(collection_name).count_documents(filter_dict or {})

    def update_document(self, collection_name: str, filter_dict: dict,
                        fields: Dict[str, Any], upsert: bool = False) -> Optional[dict]:
        """Merge `fields` into the matching document and return it as stored afterwards.

        Returns None when nothing matched and `upsert` is off.
        """
        return self.collection(collection_name).find_one_and_update(
            filter_dict,
            {"$set": fields},
            upsert=upsert,
            return_document=ReturnDocument.AFTER,
        )


def connect(database_url: Optional[str] = None, database_name: Optional[str] = None) -> Store:
    url = database_url or config.DATABASE_URL
    name = database_name or config.DATABASE_NAME
    client = MongoClient(
        url,
        timeoutMS=config.STORE_TIMEOUT_MS,
        maxPoolSize=50,
        minPoolSize=10,
        maxIdleTimeMS=30_000,
        connectTimeoutMS=10_000,
        serverSelectionTimeoutMS=5_000,
        tz_aware=True,
    )
    logger.info("MongoDB client created for database %r", name)
    return Store(client, name)


# Utility

def new_object_id() -> ObjectId:
    return ObjectId()


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
