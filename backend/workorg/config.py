import os

from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
JWT_SECRET = os.getenv("JWT_SECRET", "secret")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# Sync behaviour
ECHO_SUPPRESSION_MS = int(os.getenv("ECHO_SUPPRESSION_MS", "500"))
DRIFT_THRESHOLD_SECONDS = float(os.getenv("DRIFT_THRESHOLD_SECONDS", "2"))

# When enabled a session is evicted from its previous room on join.
SINGLE_ROOM_PER_SESSION = os.getenv("SINGLE_ROOM_PER_SESSION", "false").lower() in ("1", "true", "yes")

FETCH_VIDEO_TITLES = os.getenv("FETCH_VIDEO_TITLES", "true").lower() in ("1", "true", "yes")

# Sync client defaults
API_URL = os.getenv("API_URL", "http://localhost:5000/api")
SOCKET_URL = os.getenv("SOCKET_URL", "http://localhost:5000")
