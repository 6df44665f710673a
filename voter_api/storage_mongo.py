# voter_api/storage_mongo.py
import functools
import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from voter_api.database.connection import get_client, get_voter_collection
from voter_api.errors import (
    DuplicatePoll,
    PollNotFound,
    StorageUnavailable,
    VoterAlreadyExists,
    VoterNotFound,
)
from voter_api.models.voter_model import HistoryEntry, Voter
from voter_api.storage import VoterStore, check_entry, check_id

logger = logging.getLogger(__name__)


class HistoryQuery:
    """
    Typed Mongo filters for a voter document and the entries of its history.

    Ids are validated here so no caller-supplied value ever reaches a query
    as anything but a plain integer. Every filter is pinned to one voter _id.
    """

    def __init__(self, voter_id: int, poll_id: Optional[int] = None):
        self.voter_id = check_id("voter_id", voter_id)
        self.poll_id = None if poll_id is None else check_id("poll_id", poll_id)

    def voter(self) -> Dict[str, Any]:
        return {"_id": self.voter_id}

    def poll(self) -> Dict[str, Any]:
        if self.poll_id is None:
            raise ValueError("poll_id is required for a poll filter")
        return {"_id": self.voter_id, "history.poll_id": self.poll_id}

    def pick(self, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """First history entry of the document matching poll_id, if any."""
        for entry in document.get("history", []):
            if entry.get("poll_id") == self.poll_id:
                return entry
        return None


def _to_document(voter: Voter) -> Dict[str, Any]:
    doc = voter.model_dump(mode="json")
    doc["_id"] = voter.id
    return doc


def _from_document(doc: Dict[str, Any]) -> Voter:
    doc = dict(doc)
    doc.pop("_id", None)
    return Voter.model_validate(doc)


def _translate_errors(method):
    """Re-raise lost-connection errors as StorageUnavailable."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except ConnectionFailure as e:
            logger.error(f"MongoDB unavailable during {method.__name__}: {e}")
            raise StorageUnavailable(str(e)) from e

    return wrapper


class MongoVoterStore(VoterStore):
    """
    Voters kept as JSON documents in a MongoDB collection, one per voter.

    Existence checks and writes are separate round trips, so two requests
    racing on the same voter can interleave between check and write. Creates
    are the exception: the unique _id makes a concurrent duplicate insert fail.
    """

    def __init__(self, client: Optional[MongoClient] = None, db_name: str = None, collection_name: str = None):
        self.client = client if client is not None else get_client()
        self.collection = get_voter_collection(self.client, db_name, collection_name)
        try:
            # Test connection
            self.client.server_info()
        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise StorageUnavailable(f"mongo session failed: {e}") from e
        logger.info(f"Connected to MongoDB, collection: {self.collection.full_name}")

    def _voter_exists(self, query: HistoryQuery) -> bool:
        return self.collection.find_one(query.voter(), {"_id": 1}) is not None

    def _missing(self, query: HistoryQuery):
        """Error for a poll filter that matched nothing."""
        if not self._voter_exists(query):
            return VoterNotFound(query.voter_id)
        return PollNotFound(query.voter_id, query.poll_id)

    @_translate_errors
    def add_voter(self, voter: Voter) -> Voter:
        try:
            self.collection.insert_one(_to_document(voter))
        except DuplicateKeyError:
            logger.warning(f"Voter {voter.id} already exists")
            raise VoterAlreadyExists(voter.id)
        logger.info(f"Voter {voter.id} saved successfully")
        return voter

    @_translate_errors
    def get_voter(self, voter_id: int) -> Voter:
        doc = self.collection.find_one(HistoryQuery(voter_id).voter())
        if doc is None:
            raise VoterNotFound(voter_id)
        return _from_document(doc)

    @_translate_errors
    def get_all_voters(self) -> List[Voter]:
        voters = [_from_document(doc) for doc in self.collection.find({})]
        logger.info(f"Retrieved {len(voters)} voters")
        return voters

    @_translate_errors
    def update_voter(self, voter: Voter) -> Voter:
        result = self.collection.replace_one(HistoryQuery(voter.id).voter(), _to_document(voter))
        if result.matched_count == 0:
            raise VoterNotFound(voter.id)
        logger.info(f"Voter {voter.id} updated successfully")
        return voter

    @_translate_errors
    def delete_voter(self, voter_id: int) -> None:
        result = self.collection.delete_one(HistoryQuery(voter_id).voter())
        if result.deleted_count == 0:
            raise VoterNotFound(voter_id)
        logger.info(f"Voter {voter_id} deleted successfully")

    @_translate_errors
    def delete_all(self) -> None:
        result = self.collection.delete_many({})
        logger.info(f"Deleted {result.deleted_count} voters")

    @_translate_errors
    def get_history_by_poll(self, voter_id: int, poll_id: int) -> HistoryEntry:
        query = HistoryQuery(voter_id, poll_id)
        doc = self.collection.find_one(query.poll(), {"_id": 0, "history": 1})
        entry = query.pick(doc) if doc is not None else None
        if entry is None:
            raise self._missing(query)
        return HistoryEntry.model_validate(entry)

    @_translate_errors
    def add_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        check_entry(poll_id, entry)
        query = HistoryQuery(voter_id, poll_id)
        if self.collection.find_one(query.poll(), {"_id": 1}) is not None:
            logger.warning(f"Voter {voter_id} already has history for poll {poll_id}")
            raise DuplicatePoll(voter_id, poll_id)

        result = self.collection.update_one(
            query.voter(),
            {"$push": {"history": entry.model_dump(mode="json")}},
        )
        if result.matched_count == 0:
            raise VoterNotFound(voter_id)
        logger.info(f"Added poll {poll_id} to voter {voter_id}")
        return entry

    @_translate_errors
    def update_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        check_entry(poll_id, entry)
        query = HistoryQuery(voter_id, poll_id)
        result = self.collection.update_one(
            query.poll(),
            {"$set": {"history.$": entry.model_dump(mode="json")}},
        )
        if result.matched_count == 0:
            raise self._missing(query)
        logger.info(f"Updated poll {poll_id} for voter {voter_id}")
        return entry

    @_translate_errors
    def delete_history_by_poll(self, voter_id: int, poll_id: int) -> None:
        query = HistoryQuery(voter_id, poll_id)
        result = self.collection.update_one(
            query.poll(),
            {"$pull": {"history": {"poll_id": query.poll_id}}},
        )
        if result.matched_count == 0:
            raise self._missing(query)
        logger.info(f"Deleted poll {poll_id} from voter {voter_id}")

    def health_check(self) -> str:
        try:
            self.client.server_info()
        except Exception as e:
            return str(e)
        return "ok"

    def close(self):
        """Close MongoDB connection"""
        self.client.close()
        logger.info("MongoDB connection closed")
