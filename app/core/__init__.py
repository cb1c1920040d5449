from app.core.security import create_access_token, decode_token
from app.core.dependencies import get_viewer, get_principal
from app.core.redis import redis_client, get_redis
from app.core.principal import Principal, Anonymous, ANONYMOUS, Viewer

__all__ = [
    "create_access_token", "decode_token",
    "get_viewer", "get_principal", "redis_client", "get_redis",
    "Principal", "Anonymous", "ANONYMOUS", "Viewer",
]
