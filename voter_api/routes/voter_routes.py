import logging
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import PlainTextResponse

from voter_api.errors import (
    DuplicatePoll,
    PollNotFound,
    StorageUnavailable,
    StoreError,
    VoterAlreadyExists,
    VoterNotFound,
)
from voter_api.models.voter_model import MAX_ID, HistoryEntry, Voter
from voter_api.routes.health_routes import ApiStats, get_stats, get_store
from voter_api.storage import VoterStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voters", tags=["Voters"])

STATUS_BY_ERROR = {
    VoterNotFound: 404,
    PollNotFound: 404,
    VoterAlreadyExists: 409,
    DuplicatePoll: 409,
    StorageUnavailable: 503,
}


def _fail(stats: ApiStats, status_code: int, detail: str) -> NoReturn:
    stats.error()
    logger.warning(detail)
    raise HTTPException(status_code=status_code, detail=detail)


def _store_failure(stats: ApiStats, exc: StoreError) -> NoReturn:
    _fail(stats, STATUS_BY_ERROR.get(type(exc), 500), str(exc))


def tracked(stats: ApiStats = Depends(get_stats)) -> ApiStats:
    stats.transaction()
    return stats


@router.get("", response_model=List[Voter])
def get_all_voters(store: VoterStore = Depends(get_store), stats: ApiStats = Depends(tracked)):
    try:
        return store.get_all_voters()
    except StoreError as e:
        _store_failure(stats, e)


@router.delete("", response_class=PlainTextResponse)
def delete_all_voters(store: VoterStore = Depends(get_store), stats: ApiStats = Depends(tracked)):
    try:
        store.delete_all()
    except StoreError as e:
        _store_failure(stats, e)
    return "I hope you meant to do that!"


@router.get("/{voter_id}", response_model=Voter)
def get_voter(voter_id: int = Path(..., ge=0, le=MAX_ID), store: VoterStore = Depends(get_store), stats: ApiStats = Depends(tracked)):
    try:
        return store.get_voter(voter_id)
    except StoreError as e:
        _store_failure(stats, e)


@router.post("/{voter_id}", response_model=Voter, status_code=201)
def add_voter(
    voter: Voter,
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    if voter.id != voter_id:
        _fail(stats, 400, f"id param {voter_id} does not match payload id {voter.id}")
    try:
        return store.add_voter(voter)
    except StoreError as e:
        _store_failure(stats, e)


@router.put("/{voter_id}", response_model=Voter)
def update_voter(
    voter: Voter,
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    if voter.id != voter_id:
        _fail(stats, 400, f"id param {voter_id} does not match payload id {voter.id}")
    try:
        # history is only changed through /polls; keep what is stored
        voter.history = store.get_voter(voter_id).history
        return store.update_voter(voter)
    except StoreError as e:
        _store_failure(stats, e)


@router.delete("/{voter_id}", response_class=PlainTextResponse)
def delete_voter(voter_id: int = Path(..., ge=0, le=MAX_ID), store: VoterStore = Depends(get_store), stats: ApiStats = Depends(tracked)):
    try:
        store.delete_voter(voter_id)
    except StoreError as e:
        _store_failure(stats, e)
    return "Delete OK"


@router.get("/{voter_id}/polls", response_model=List[HistoryEntry])
def get_voter_history(voter_id: int = Path(..., ge=0, le=MAX_ID), store: VoterStore = Depends(get_store), stats: ApiStats = Depends(tracked)):
    try:
        return store.get_history(voter_id)
    except StoreError as e:
        _store_failure(stats, e)


@router.get("/{voter_id}/polls/{poll_id}", response_model=HistoryEntry)
def get_voter_history_poll(
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    poll_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    try:
        return store.get_history_by_poll(voter_id, poll_id)
    except StoreError as e:
        _store_failure(stats, e)


@router.post("/{voter_id}/polls/{poll_id}", response_model=HistoryEntry, status_code=201)
def add_voter_history_poll(
    entry: HistoryEntry,
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    poll_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    if entry.poll_id != poll_id:
        _fail(stats, 400, f"poll id param {poll_id} does not match payload poll_id {entry.poll_id}")
    try:
        return store.add_history_by_poll(voter_id, poll_id, entry)
    except StoreError as e:
        _store_failure(stats, e)


@router.put("/{voter_id}/polls/{poll_id}", response_model=HistoryEntry)
def update_voter_history_poll(
    entry: HistoryEntry,
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    poll_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    if entry.poll_id != poll_id:
        _fail(stats, 400, f"poll id param {poll_id} does not match payload poll_id {entry.poll_id}")
    try:
        return store.update_history_by_poll(voter_id, poll_id, entry)
    except StoreError as e:
        _store_failure(stats, e)


@router.delete("/{voter_id}/polls/{poll_id}")
def delete_voter_history_poll(
    voter_id: int = Path(..., ge=0, le=MAX_ID),
    poll_id: int = Path(..., ge=0, le=MAX_ID),
    store: VoterStore = Depends(get_store),
    stats: ApiStats = Depends(tracked),
):
    try:
        store.delete_history_by_poll(voter_id, poll_id)
    except StoreError as e:
        _store_failure(stats, e)
    return {}
