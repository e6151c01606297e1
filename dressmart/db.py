from datetime import datetime

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .extensions import mongo

# ========== HELPER FUNCTIONS ==========

def get_db():
    """Get database instance"""
    return mongo.db


def get_collection(collection_name):
    return get_db()[collection_name]


def to_object_id(value):
    """Parse a document id, returning None for anything that is not one"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_doc(obj):
    """Recursively convert ObjectId and datetime values for JSON output"""
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {k: serialize_doc(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [serialize_doc(item) for item in obj]
    else:
        return obj


def next_sequence(name, seed=None):
    """Atomically increment and return the named counter.

    When the counter does not exist yet and ``seed`` is given, it is first
    initialised to ``seed()`` so numbering continues from existing data.
    """
    counters = get_collection('counters')
    if seed is not None and counters.find_one({'_id': name}) is None:
        try:
            counters.insert_one({'_id': name, 'seq': seed()})
        except DuplicateKeyError:
            # Seeded concurrently by another request
            pass

    counter = counters.find_one_and_update(
        {'_id': name},
        {'$inc': {'seq': 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return counter['seq']
