"""
Path-keyed document store on top of MongoDB.

Documents are addressed the way the school data is laid out:
``schools/{schoolId}/plans/{planId}/days/{dayKey}``. A document path always has
an even number of segments; the second to last segment names the MongoDB
collection and the full path is the document ``_id``. ``_parent`` holds the
path of the owning document so sibling documents can be queried together.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL
from errors import ValidationError

client = MongoClient(DATABASE_URL) if DATABASE_URL else None
db = client[DATABASE_NAME] if client is not None else None


def doc_path(*segments: str) -> str:
    return "/".join(segments)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _split(path: str) -> List[str]:
    parts = path.split("/")
    if any(not p for p in parts):
        raise ValidationError(f"Invalid document path: {path!r}")
    return parts


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turn nested dicts into dotted ``$set`` keys so merges stay field-level."""
    out: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            out.update(_flatten(value, dotted + "."))
        else:
            out[dotted] = value
    return out


def _to_doc(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    d = {k: v for k, v in raw.items() if k not in ("_id", "_parent")}
    d["id"] = raw["_id"].rsplit("/", 1)[-1]
    return d


class DocumentStore:
    """get/set/update/push/add/query over hierarchical document paths."""

    def __init__(self, database: Database):
        self.database = database

    def _locate(self, path: str):
        parts = _split(path)
        if len(parts) % 2:
            raise ValidationError(f"Not a document path: {path!r}")
        return self.database[parts[-2]], "/".join(parts[:-2])

    def _collection(self, collection_path: str):
        parts = _split(collection_path)
        if not len(parts) % 2:
            raise ValidationError(f"Not a collection path: {collection_path!r}")
        return self.database[parts[-1]], "/".join(parts[:-1])

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        coll, _ = self._locate(path)
        return _to_doc(coll.find_one({"_id": path}))

    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        coll, parent = self._locate(path)
        if merge:
            fields = _flatten(data)
            fields["_parent"] = parent
            coll.update_one({"_id": path}, {"$set": fields}, upsert=True)
        else:
            coll.replace_one({"_id": path}, {**data, "_id": path, "_parent": parent}, upsert=True)

    def update(self, path: str, fields: Dict[str, Any], upsert: bool = False,
               inc: Optional[Dict[str, int]] = None, expect: Optional[Dict[str, Any]] = None) -> bool:
        """``$set`` dotted ``fields`` (and ``$inc`` counters).

        ``expect`` makes the write conditional: it only applies while those
        fields still hold the given values. Returns False when nothing matched
        and nothing was upserted.
        """
        coll, parent = self._locate(path)
        update: Dict[str, Any] = {"$set": dict(fields)}
        if inc:
            update["$inc"] = dict(inc)
        if upsert:
            update["$setOnInsert"] = {"_parent": parent}
        res = coll.update_one({**(expect or {}), "_id": path}, update, upsert=upsert)
        return upsert or res.matched_count > 0

    def push(self, path: str, field: str, item: Any, fields: Optional[Dict[str, Any]] = None) -> None:
        """Append ``item`` to the array at ``field`` in a single atomic update."""
        coll, parent = self._locate(path)
        update: Dict[str, Any] = {"$push": {field: item}, "$setOnInsert": {"_parent": parent}}
        if fields:
            update["$set"] = dict(fields)
        coll.update_one({"_id": path}, update, upsert=True)

    def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        coll, parent = self._collection(collection_path)
        new_id = str(ObjectId())
        coll.insert_one({**data, "_id": f"{collection_path}/{new_id}", "_parent": parent})
        return new_id

    def query(self, collection_path: str, filter_dict: Optional[Dict[str, Any]] = None,
              limit: Optional[int] = None) -> List[Dict[str, Any]]:
        coll, parent = self._collection(collection_path)
        cursor = coll.find({**(filter_dict or {}), "_parent": parent}).sort("_id", 1)
        if limit:
            cursor = cursor.limit(limit)
        return [_to_doc(d) for d in cursor]


def get_store() -> DocumentStore:
    """FastAPI dependency; tests override it with a mongomock-backed store."""
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return DocumentStore(db)
