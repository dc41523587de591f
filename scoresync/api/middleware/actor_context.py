"""
Actor context middleware.

The actor is the caller's network address. X-Forwarded-For is read only when
the socket peer is listed in TRUSTED_PROXIES; from any other peer the header
is ignored. The resolved actor is stored on request.state and in the logging
context for the duration of the request.
"""

import ipaddress
from collections.abc import Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import HTTPConnection
from starlette.responses import Response

from ...core.config.settings import settings
from ...core.logging.context import clear_actor_context, set_actor_context

ANONYMOUS_ACTOR = "anonymous"


class TrustedProxies:
    """
    Peers whose X-Forwarded-For header is believed.

    Entries are IP addresses, CIDR ranges ("10.0.0.0/8") or literal host names
    for peers that have no IP (e.g. a unix socket front end).
    """

    def __init__(self, entries: Iterable[str] = ()):
        self.networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
        self.hosts: set[str] = set()
        for entry in entries:
            entry = entry.strip()
            if not entry:
                continue
            try:
                self.networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                self.hosts.add(entry)

    def __contains__(self, host: str) -> bool:
        if host in self.hosts:
            return True
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            return False
        return any(address in network for network in self.networks)


def resolve_actor(connection: HTTPConnection, trusted: TrustedProxies | None = None) -> str:
    """
    Actor for a request or websocket.

    Untrusted peer: the peer address, whatever the headers say.
    Trusted peer: walk X-Forwarded-For from the right, skipping trusted hops;
    the first untrusted hop is the client. When every hop is trusted the
    left-most one is used.
    """
    if trusted is None:
        trusted = TrustedProxies(settings.trusted_proxies)

    peer = connection.client.host if connection.client else None
    if not peer:
        return ANONYMOUS_ACTOR
    if peer not in trusted:
        return peer

    forwarded = connection.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return hops[0] if hops else peer


class ActorContextMiddleware(BaseHTTPMiddleware):
    """Resolve the actor for every HTTP request and set it in context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        actor_id = resolve_actor(request)
        request.state.actor_id = actor_id
        set_actor_context(actor_id)
        try:
            return await call_next(request)
        finally:
            clear_actor_context()
