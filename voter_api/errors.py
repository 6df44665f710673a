"""Typed exceptions raised by the voter stores."""


class StoreError(Exception):
    """Base class for every store failure."""


class VoterNotFound(StoreError):
    """No voter with the requested id."""

    def __init__(self, voter_id: int):
        self.voter_id = voter_id
        super().__init__(f"voter {voter_id} does not exist")


class VoterAlreadyExists(StoreError):
    def __init__(self, voter_id: int):
        self.voter_id = voter_id
        super().__init__(f"voter {voter_id} already exists")


class PollNotFound(StoreError):
    """The voter exists but has no history entry for the poll."""

    def __init__(self, voter_id: int, poll_id: int):
        self.voter_id = voter_id
        self.poll_id = poll_id
        super().__init__(f"poll {poll_id} not found in history of voter {voter_id}")


class DuplicatePoll(StoreError):
    def __init__(self, voter_id: int, poll_id: int):
        self.voter_id = voter_id
        self.poll_id = poll_id
        super().__init__(f"voter {voter_id} already has history for poll {poll_id}")


class StorageUnavailable(StoreError):
    """Backend could not be reached."""
