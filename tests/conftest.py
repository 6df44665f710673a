import uuid
from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from voter_api.main import create_app
from voter_api.models.voter_model import HistoryEntry, Voter
from voter_api.storage import InMemoryVoterStore
from voter_api.storage_mongo import MongoVoterStore


def make_entry(poll_id, vote_id=1, day=17):
    return HistoryEntry(
        poll_id=poll_id,
        vote_id=vote_id,
        vote_date=datetime(2020, 3, day, 15, 0, 0, tzinfo=timezone.utc),
    )


def make_voter(voter_id, name="Count Chocula", history=None):
    return Voter(
        id=voter_id,
        name=name,
        email=f"voter{voter_id}@example.com",
        history=history if history is not None else [],
    )


@pytest.fixture(params=["memory", "mongo"])
def store(request):
    if request.param == "memory":
        store = InMemoryVoterStore()
    else:
        # unique collection per test so mongomock's shared server state can't leak
        store = MongoVoterStore(
            client=mongomock.MongoClient(),
            db_name="voter_api_test",
            collection_name=f"voters_{uuid.uuid4().hex}",
        )
    yield store
    store.close()


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as client:
        yield client


@pytest.fixture
def test_voters():
    return [
        make_voter(1, "Count Chocula", [make_entry(1)]),
        make_voter(2, "Captain Crunch"),
        make_voter(3, "Tony the Tiger"),
    ]
