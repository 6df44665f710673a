from voter_api.models.voter_model import HistoryEntry, Voter

__all__ = ["HistoryEntry", "Voter"]
