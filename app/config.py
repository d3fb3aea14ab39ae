import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Supabase (task store + identity provider)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
TODOS_TABLE = os.getenv("TODOS_TABLE", "todos")

# JWT verification
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")
JWKS_CACHE_SECONDS = int(os.getenv("JWKS_CACHE_SECONDS", str(60 * 60)))

# Sync
SYNC_STALENESS_WINDOW_MS = int(os.getenv("SYNC_STALENESS_WINDOW_MS", "30000"))
CLIENT_SYNC_INTERVAL_SECONDS = float(os.getenv("CLIENT_SYNC_INTERVAL_SECONDS", "15"))
CLIENT_REQUEST_TIMEOUT_SECONDS = float(os.getenv("CLIENT_REQUEST_TIMEOUT_SECONDS", "10"))

# HTTP
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

# Server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
