# voter_api/storage.py
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List

from voter_api.errors import DuplicatePoll, PollNotFound, VoterAlreadyExists, VoterNotFound
from voter_api.models.voter_model import MAX_ID, HistoryEntry, Voter

logger = logging.getLogger(__name__)


class VoterStore(ABC):
    """
    Contract shared by every voter backend.

    Voters are keyed by id. Each voter owns an ordered history list where
    poll_id is unique. Every method raises a StoreError subclass when its
    precondition fails, and ValueError for an id outside 0..MAX_ID or an
    entry whose poll_id differs from the one it is stored under.
    """

    @abstractmethod
    def add_voter(self, voter: Voter) -> Voter:
        """Store a new voter. Raises VoterAlreadyExists if the id is taken."""

    @abstractmethod
    def get_voter(self, voter_id: int) -> Voter:
        """Return the voter or raise VoterNotFound."""

    @abstractmethod
    def get_all_voters(self) -> List[Voter]:
        """Return every voter; an empty list when there are none."""

    @abstractmethod
    def update_voter(self, voter: Voter) -> Voter:
        """Replace the whole stored record, history included."""

    @abstractmethod
    def delete_voter(self, voter_id: int) -> None:
        """Remove a voter. Raises VoterNotFound if it does not exist."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every voter. Always succeeds."""

    def get_history(self, voter_id: int) -> List[HistoryEntry]:
        """The voter's history in insertion order."""
        return self.get_voter(voter_id).history

    @abstractmethod
    def get_history_by_poll(self, voter_id: int, poll_id: int) -> HistoryEntry:
        """Return the entry for poll_id. Raises VoterNotFound or PollNotFound."""

    @abstractmethod
    def add_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        """Append entry to the history. Raises VoterNotFound or DuplicatePoll."""

    @abstractmethod
    def update_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        """Replace the entry for poll_id in place. Raises VoterNotFound or PollNotFound."""

    @abstractmethod
    def delete_history_by_poll(self, voter_id: int, poll_id: int) -> None:
        """Remove the entry for poll_id. Raises VoterNotFound or PollNotFound."""

    @abstractmethod
    def health_check(self) -> str:
        """Return "ok" or a description of what is wrong. Never raises."""

    def close(self) -> None:
        pass


def check_id(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_ID:
        raise ValueError(f"{name} must be an integer in 0..{MAX_ID}, got {value!r}")
    return value


def check_entry(poll_id: int, entry: HistoryEntry) -> None:
    check_id("poll_id", poll_id)
    if entry.poll_id != poll_id:
        raise ValueError(f"entry poll_id {entry.poll_id} does not match poll {poll_id}")


def _find_poll(history: List[HistoryEntry], poll_id: int) -> int:
    """Index of the entry for poll_id, or -1."""
    for i, entry in enumerate(history):
        if entry.poll_id == poll_id:
            return i
    return -1


class InMemoryVoterStore(VoterStore):
    """Voters held in a dict owned by this object, guarded by one lock."""

    def __init__(self):
        self._voters: Dict[int, Voter] = {}
        self._lock = threading.RLock()

    def _fetch(self, voter_id: int) -> Voter:
        # caller holds the lock; returns a private copy of the stored record
        check_id("voter_id", voter_id)
        voter = self._voters.get(voter_id)
        if voter is None:
            raise VoterNotFound(voter_id)
        return voter.model_copy(deep=True)

    def add_voter(self, voter: Voter) -> Voter:
        with self._lock:
            if voter.id in self._voters:
                logger.warning(f"Voter {voter.id} already exists")
                raise VoterAlreadyExists(voter.id)
            self._voters[voter.id] = voter.model_copy(deep=True)
        logger.info(f"Voter {voter.id} saved successfully")
        return voter

    def get_voter(self, voter_id: int) -> Voter:
        with self._lock:
            return self._fetch(voter_id)

    def get_all_voters(self) -> List[Voter]:
        with self._lock:
            return [v.model_copy(deep=True) for v in self._voters.values()]

    def update_voter(self, voter: Voter) -> Voter:
        with self._lock:
            if voter.id not in self._voters:
                raise VoterNotFound(voter.id)
            self._voters[voter.id] = voter.model_copy(deep=True)
        logger.info(f"Voter {voter.id} updated successfully")
        return voter

    def delete_voter(self, voter_id: int) -> None:
        check_id("voter_id", voter_id)
        with self._lock:
            if self._voters.pop(voter_id, None) is None:
                raise VoterNotFound(voter_id)
        logger.info(f"Voter {voter_id} deleted successfully")

    def delete_all(self) -> None:
        with self._lock:
            self._voters = {}
        logger.info("All voters deleted")

    def get_history_by_poll(self, voter_id: int, poll_id: int) -> HistoryEntry:
        check_id("poll_id", poll_id)
        with self._lock:
            voter = self._fetch(voter_id)
        idx = _find_poll(voter.history, poll_id)
        if idx < 0:
            raise PollNotFound(voter_id, poll_id)
        return voter.history[idx]

    def add_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        check_entry(poll_id, entry)
        with self._lock:
            voter = self._fetch(voter_id)
            if _find_poll(voter.history, poll_id) >= 0:
                logger.warning(f"Voter {voter_id} already has history for poll {poll_id}")
                raise DuplicatePoll(voter_id, poll_id)
            voter.history.append(entry.model_copy())
            self._voters[voter_id] = voter
        logger.info(f"Added poll {poll_id} to voter {voter_id}")
        return entry

    def update_history_by_poll(self, voter_id: int, poll_id: int, entry: HistoryEntry) -> HistoryEntry:
        check_entry(poll_id, entry)
        with self._lock:
            voter = self._fetch(voter_id)
            idx = _find_poll(voter.history, poll_id)
            if idx < 0:
                raise PollNotFound(voter_id, poll_id)
            voter.history[idx] = entry.model_copy()
            self._voters[voter_id] = voter
        logger.info(f"Updated poll {poll_id} for voter {voter_id}")
        return entry

    def delete_history_by_poll(self, voter_id: int, poll_id: int) -> None:
        check_id("poll_id", poll_id)
        with self._lock:
            voter = self._fetch(voter_id)
            idx = _find_poll(voter.history, poll_id)
            if idx < 0:
                raise PollNotFound(voter_id, poll_id)
            del voter.history[idx]
            self._voters[voter_id] = voter
        logger.info(f"Deleted poll {poll_id} from voter {voter_id}")

    def health_check(self) -> str:
        return "ok"
