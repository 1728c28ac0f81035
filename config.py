"""
Runtime configuration

Values come from the environment (a .env file is loaded first) and fall back
to local development defaults when unset.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "restaurant")
PORT = int(os.getenv("PORT", 8080))

SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production")
ACCESS_TOKEN_HOURS = int(os.getenv("ACCESS_TOKEN_HOURS", 24))
REFRESH_TOKEN_HOURS = int(os.getenv("REFRESH_TOKEN_HOURS", 168))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 14))

# Every store operation gives up after this many milliseconds
STORE_TIMEOUT_MS = int(os.getenv("STORE_TIMEOUT_MS", 100_000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
