"""Client identity used as the admission-control key."""

from __future__ import annotations

from starlette.requests import HTTPConnection


UNKNOWN_CLIENT = "unknown"


def get_client_ip(connection: HTTPConnection, trust_proxy_headers: bool = False) -> str:
    """
    Extract the client address from a request or websocket.

    Proxy headers are only honoured when the deployment sits behind a proxy
    that sets them; otherwise any client could pick its own identity.

    Priority (trusted): X-Forwarded-For > X-Real-IP > Direct
    """
    if trust_proxy_headers:
        # X-Forwarded-For (take first = original client)
        if forwarded := connection.headers.get("X-Forwarded-For"):
            first = forwarded.split(",")[0].strip()
            if first:
                return first

        # Nginx
        if real_ip := connection.headers.get("X-Real-IP"):
            return real_ip.strip()

    if connection.client:
        return connection.client.host

    return UNKNOWN_CLIENT
