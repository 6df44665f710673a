# voter_api/config.py
# Central place for runtime settings, read from the environment / .env
import os

from dotenv import load_dotenv

load_dotenv()

# Storage backend: "memory" (in-process dict) or "mongo"
BACKEND = os.getenv("VOTER_API_BACKEND", "memory").lower()

# --- Database Config ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voter_api")
COLLECTION_NAME = os.getenv("VOTER_API_COLLECTION", "voters")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "2000"))

# --- Server Config ---
HOST = os.getenv("VOTER_API_HOST", "0.0.0.0")
PORT = int(os.getenv("VOTER_API_PORT", "1080"))
LOG_LEVEL = os.getenv("VOTER_API_LOG_LEVEL", "INFO").upper()

VERSION = "1.0.0"
