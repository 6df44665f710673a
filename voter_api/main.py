# voter_api/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from voter_api import config
from voter_api.routes.health_routes import ApiStats, health_router
from voter_api.routes.voter_routes import router as voter_router
from voter_api.storage import InMemoryVoterStore, VoterStore

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_store(backend: str = None) -> VoterStore:
    """Create the voter store selected by VOTER_API_BACKEND."""
    backend = (backend or config.BACKEND).lower()
    if backend == "memory":
        logger.info("Using in-memory voter store")
        return InMemoryVoterStore()
    if backend == "mongo":
        from voter_api.storage_mongo import MongoVoterStore

        logger.info(f"Connecting to MongoDB at {config.MONGO_URI}")
        return MongoVoterStore()
    raise ValueError(f"Unknown storage backend: {backend!r} (expected 'memory' or 'mongo')")


def create_app(store: Optional[VoterStore] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.store.close()

    app = FastAPI(title="Voter API", version=config.VERSION, lifespan=lifespan)
    app.state.store = store if store is not None else build_store()
    app.state.stats = ApiStats()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def count_validation_errors(request: Request, exc: RequestValidationError):
        request.app.state.stats.error()
        logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        return await request_validation_exception_handler(request, exc)

    # health must be registered before /voters/{voter_id}
    app.include_router(health_router)
    app.include_router(voter_router)
    return app


def main():
    logger.info(f"Starting server on {config.HOST}:{config.PORT}")
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
