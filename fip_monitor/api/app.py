"""
Probe Responder — answers heartbeat probes from the peer.

Any GET path is accepted. With restrict_to_peer enabled, only requests whose
source address equals the configured peer address get 200 "OK"; everyone
else gets 403 "Forbidden". The responder holds no reference to the
liveness or acquisition state.
"""

import ipaddress
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from fip_monitor.models.config import MonitorConfig

logger = logging.getLogger(__name__)


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Canonical form of an IP address; IPv4-mapped IPv6 collapses to IPv4."""
    if address is None:
        return None
    try:
        ip = ipaddress.ip_address(address.strip("[]"))
    except ValueError:
        return address
    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return str(ip)


def create_app(config: MonitorConfig) -> FastAPI:
    """Create the heartbeat responder application."""

    app = FastAPI(
        title="fip-monitor heartbeat",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    peer_address = normalize_address(config.peer_address)
    restrict_to_peer = config.restrict_to_peer

    @app.get("/{path:path}", response_class=PlainTextResponse)
    def heartbeat(path: str, request: Request):
        """Respond to a heartbeat probe."""
        source = request.client.host if request.client else None

        if restrict_to_peer and normalize_address(source) != peer_address:
            logger.warning(
                "Rejected heartbeat request from unknown address (%s)", source
            )
            return PlainTextResponse("Forbidden", status_code=403)

        logger.info("Responded to heartbeat request from peer (%s)", source)
        return PlainTextResponse("OK")

    return app
