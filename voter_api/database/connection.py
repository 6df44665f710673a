from pymongo import MongoClient

from voter_api import config


def get_client(uri: str = None, timeout_ms: int = None) -> MongoClient:
    """Build a MongoClient that fails fast when the server is unreachable."""
    return MongoClient(
        uri or config.MONGO_URI,
        serverSelectionTimeoutMS=timeout_ms or config.MONGO_TIMEOUT_MS,
    )


def get_voter_collection(client: MongoClient, db_name: str = None, collection_name: str = None):
    db = client[db_name or config.MONGO_DB]
    return db[collection_name or config.COLLECTION_NAME]
