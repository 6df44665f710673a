import threading
import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from voter_api import config
from voter_api.storage import VoterStore

health_router = APIRouter(prefix="/voters", tags=["Health"])


class ApiStats:
    """Request and error counters shared by every handler."""

    def __init__(self):
        self.boot_time = time.monotonic()
        self.transactions = 0
        self.errors = 0
        self._lock = threading.Lock()

    def transaction(self):
        with self._lock:
            self.transactions += 1

    def error(self):
        with self._lock:
            self.errors += 1

    def uptime(self) -> int:
        return int(time.monotonic() - self.boot_time)


class HealthCheckResult(BaseModel):
    status: str
    version: str
    uptime_seconds: int
    transaction_count: int
    error_count: int
    database_status: str


def get_store(request: Request) -> VoterStore:
    return request.app.state.store


def get_stats(request: Request) -> ApiStats:
    return request.app.state.stats


@health_router.get("/health", response_model=HealthCheckResult)
def health_check(store: VoterStore = Depends(get_store), stats: ApiStats = Depends(get_stats)):
    return HealthCheckResult(
        status="ok",
        version=config.VERSION,
        uptime_seconds=stats.uptime(),
        transaction_count=stats.transactions,
        error_count=stats.errors,
        database_status=store.health_check(),
    )
