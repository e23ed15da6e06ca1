"""
DigitalOcean provider — droplet metadata and floating IP actions.

The metadata service answers only from inside the droplet; the actions API
is the arbiter of which droplet finally owns the floating IP.
"""

import logging
from typing import Union

from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeClient

logger = logging.getLogger(__name__)


class DigitalOceanProvider:
    """Request/response contract for the three provider calls the monitor needs."""

    def __init__(self, config: MonitorConfig, client: ProbeClient):
        self.config = config
        self.client = client

    @property
    def droplet_id_url(self) -> str:
        return f"{self.config.metadata_url}/id"

    @property
    def floating_ip_active_url(self) -> str:
        return f"{self.config.metadata_url}/floating_ip/ipv4/active"

    @property
    def assign_url(self) -> str:
        return (
            f"{self.config.api_url}/v2/floating_ips/"
            f"{self.config.floating_ip_address}/actions"
        )

    async def get_droplet_id(self) -> str:
        """Opaque identifier of the droplet this process runs on."""
        body = await self.client.request("get", self.droplet_id_url)
        return body.strip()

    async def is_floating_ip_active(self) -> bool:
        """True when the metadata service reports the floating IP on this droplet."""
        body = await self.client.request("get", self.floating_ip_active_url)
        return body.strip() == "true"

    async def assign_floating_ip(self, droplet_id: str) -> str:
        """Ask the API to move the floating IP to ``droplet_id``. Expects 201."""
        payload = {"type": "assign", "droplet_id": _droplet_id_value(droplet_id)}
        headers = {
            "Authorization": f"Bearer {self.config.api_token.get_secret_value()}",
            "Content-Type": "application/json",
        }
        return await self.client.request(
            "post",
            self.assign_url,
            headers=headers,
            json_body=payload,
            expected_status=201,
        )


def _droplet_id_value(droplet_id: str) -> Union[int, str]:
    # The API documents droplet_id as an integer.
    return int(droplet_id) if droplet_id.isdigit() else droplet_id
