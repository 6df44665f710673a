from unittest.mock import MagicMock

import mongomock
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from conftest import make_entry, make_voter
from voter_api.main import create_app
from voter_api.models.voter_model import MAX_ID, HistoryEntry, Voter
from voter_api.storage import InMemoryVoterStore
from voter_api.storage_mongo import MongoVoterStore


def voter_json(voter):
    return voter.model_dump(mode="json")


def populate(client, voters):
    for v in voters:
        response = client.post(f"/voters/{v.id}", json=voter_json(v))
        assert response.status_code == 201


def test_health_before_activity(client):
    response = client.get("/voters/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "1.0.0"
    assert body["database_status"] == "ok"
    assert body["transaction_count"] == 0
    assert body["error_count"] == 0
    assert body["uptime_seconds"] >= 0


def test_get_all_voters_empty(client):
    response = client.get("/voters")

    assert response.status_code == 200
    assert response.json() == []


def test_populate_and_list(client, test_voters):
    populate(client, test_voters)

    response = client.get("/voters")

    assert response.status_code == 200
    assert len(response.json()) == 3


def test_get_voter(client, test_voters):
    populate(client, test_voters)

    for v in test_voters:
        response = client.get(f"/voters/{v.id}")
        assert response.status_code == 200
        assert Voter.model_validate(response.json()) == v


def test_get_voter_not_found(client):
    response = client.get("/voters/99")

    assert response.status_code == 404


def test_negative_id_is_rejected(client):
    response = client.get("/voters/-1")

    assert response.status_code == 422


def test_add_voter_id_mismatch(client):
    response = client.post("/voters/2", json=voter_json(make_voter(1)))

    assert response.status_code == 400
    assert client.get("/voters").json() == []


def test_add_voter_duplicate(client, test_voters):
    populate(client, test_voters)

    response = client.post("/voters/2", json=voter_json(make_voter(2, "Someone Else")))

    assert response.status_code == 409
    assert client.get("/voters/2").json()["name"] == "Captain Crunch"


def test_add_voter_with_defaults(client):
    response = client.post("/voters/7", json={"id": 7, "name": "Trix Rabbit"})

    assert response.status_code == 201
    assert response.json() == {"id": 7, "name": "Trix Rabbit", "email": "", "history": []}


def test_update_voter_preserves_history(client, test_voters):
    populate(client, test_voters)
    payload = voter_json(make_voter(1, "Count Chocula Jr.", [make_entry(50)]))

    response = client.put("/voters/1", json=payload)

    assert response.status_code == 200
    stored = Voter.model_validate(client.get("/voters/1").json())
    assert stored.name == "Count Chocula Jr."
    assert stored.history == test_voters[0].history


def test_update_voter_not_found(client):
    response = client.put("/voters/5", json=voter_json(make_voter(5)))

    assert response.status_code == 404


def test_update_voter_id_mismatch(client, test_voters):
    populate(client, test_voters)

    response = client.put("/voters/1", json=voter_json(make_voter(2)))

    assert response.status_code == 400


def test_delete_voter(client, test_voters):
    populate(client, test_voters)

    response = client.delete("/voters/1")

    assert response.status_code == 200
    assert response.text == "Delete OK"
    assert len(client.get("/voters").json()) == 2
    assert client.get("/voters/1").status_code == 404


def test_delete_voter_not_found(client):
    response = client.delete("/voters/1")

    assert response.status_code == 404


def test_delete_all_voters(client, test_voters):
    populate(client, test_voters)

    response = client.delete("/voters")

    assert response.status_code == 200
    assert client.get("/voters").json() == []


def test_get_voter_history(client, test_voters):
    populate(client, test_voters)

    response = client.get("/voters/1/polls")

    assert response.status_code == 200
    assert [HistoryEntry.model_validate(h) for h in response.json()] == test_voters[0].history
    assert client.get("/voters/9/polls").status_code == 404


def test_poll_history_scenario(client):
    populate(client, [make_voter(1)])
    entry = make_entry(5, vote_id=1)

    response = client.post("/voters/1/polls/5", json=voter_json(entry))
    assert response.status_code == 201
    assert HistoryEntry.model_validate(response.json()) == entry

    response = client.get("/voters/1/polls/5")
    assert response.status_code == 200
    assert HistoryEntry.model_validate(response.json()) == entry

    response = client.post("/voters/1/polls/5", json=voter_json(make_entry(5, vote_id=2)))
    assert response.status_code == 409

    replacement = make_entry(5, vote_id=3, day=21)
    response = client.put("/voters/1/polls/5", json=voter_json(replacement))
    assert response.status_code == 200
    assert HistoryEntry.model_validate(client.get("/voters/1/polls/5").json()) == replacement

    response = client.delete("/voters/1/polls/5")
    assert response.status_code == 200
    assert response.json() == {}

    assert client.get("/voters/1/polls/5").status_code == 404


def test_poll_id_mismatch(client):
    populate(client, [make_voter(1)])

    assert client.post("/voters/1/polls/5", json=voter_json(make_entry(6))).status_code == 400
    assert client.put("/voters/1/polls/5", json=voter_json(make_entry(6))).status_code == 400
    assert client.get("/voters/1/polls").json() == []


def test_poll_on_missing_voter(client):
    assert client.get("/voters/1/polls/5").status_code == 404
    assert client.post("/voters/1/polls/5", json=voter_json(make_entry(5))).status_code == 404
    assert client.put("/voters/1/polls/5", json=voter_json(make_entry(5))).status_code == 404
    assert client.delete("/voters/1/polls/5").status_code == 404


def test_invalid_history_payload(client):
    populate(client, [make_voter(1)])

    response = client.post("/voters/1/polls/5", json={"poll_id": 5, "vote_id": 1, "vote_date": "not a date"})

    assert response.status_code == 422


def test_health_counts_transactions_and_errors():
    with TestClient(create_app(InMemoryVoterStore())) as client:
        populate(client, [make_voter(1)])
        client.get("/voters/1")
        client.get("/voters/2")
        client.post("/voters/1/polls/3", json=voter_json(make_entry(4)))

        body = client.get("/voters/health").json()

    assert body["transaction_count"] == 4
    assert body["error_count"] == 2


def test_add_voter_with_repeated_poll_ids(client):
    payload = voter_json(make_voter(1))
    payload["history"] = [voter_json(make_entry(5)), voter_json(make_entry(5, vote_id=2))]

    response = client.post("/voters/1", json=payload)

    assert response.status_code == 422
    assert client.get("/voters").json() == []


def test_ids_at_bson_limit(client):
    populate(client, [make_voter(MAX_ID)])
    assert client.get(f"/voters/{MAX_ID}").status_code == 200

    assert client.get(f"/voters/{MAX_ID + 1}").status_code == 422
    assert client.get(f"/voters/1/polls/{MAX_ID + 1}").status_code == 422

    payload = voter_json(make_voter(1))
    payload["id"] = MAX_ID + 1
    assert client.post(f"/voters/{MAX_ID + 1}", json=payload).status_code == 422

    entry = voter_json(make_entry(5))
    entry["vote_id"] = MAX_ID + 1
    assert client.post(f"/voters/{MAX_ID}/polls/5", json=entry).status_code == 422
    assert client.get(f"/voters/{MAX_ID}/polls").json() == []


def test_storage_unavailable_maps_to_503():
    store = MongoVoterStore(client=mongomock.MongoClient(), db_name="voter_api_test", collection_name="voters_down")
    store.client = MagicMock()
    store.client.server_info.side_effect = ServerSelectionTimeoutError("connection refused")
    store.collection = MagicMock()
    store.collection.find_one.side_effect = ServerSelectionTimeoutError("connection refused")
    store.collection.find.side_effect = ServerSelectionTimeoutError("connection refused")

    with TestClient(create_app(store)) as client:
        assert client.get("/voters/1").status_code == 503
        assert client.get("/voters").status_code == 503

        body = client.get("/voters/health").json()

    assert body["status"] == "ok"
    assert body["database_status"] == "connection refused"
    assert body["transaction_count"] == 2
    assert body["error_count"] == 2
