"""Monitor configuration."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


class MonitorConfig(BaseModel):
    """
    Settings for one failover agent.

    Field aliases accept the camelCase keys used by older config.json files
    (bindIPAddress, peerIPAddress, acquireIPAfterMs, ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Heartbeat endpoints
    bind_address: str = Field(alias="bindIPAddress")
    bind_port: int = Field(default=8080, gt=0, lt=65536, alias="bindPort")
    peer_address: str = Field(alias="peerIPAddress")
    peer_port: Optional[int] = Field(default=None, gt=0, lt=65536, alias="peerPort")
    heartbeat_expected_status: int = Field(default=200, ge=100, lt=600, alias="heartbeatExpectedStatus")
    restrict_to_peer: bool = Field(default=False, alias="restrictToPeer")

    # DigitalOcean
    floating_ip_address: str = Field(alias="floatingIPAddress")
    api_token: SecretStr = Field(alias="apiToken")
    droplet_id: Optional[str] = Field(default=None, alias="dropletId")
    metadata_url: str = Field(default="http://169.254.169.254/metadata/v1", alias="metadataUrl")
    api_url: str = Field(default="https://api.digitalocean.com", alias="apiUrl")

    # Timing (milliseconds)
    http_request_timeout_ms: int = Field(default=20000, gt=0, alias="httpRequestTimeoutMs")
    heartbeat_interval_ms: int = Field(default=30000, gt=0, alias="heartbeatIntervalMs")
    heartbeat_initial_delay_ms: int = Field(default=30000, ge=0, alias="heartbeatInitialDelayMs")
    acquire_ip_after_ms: int = Field(default=120000, gt=0, alias="acquireIPAfterMs")
    acquire_ip_delay_ms: int = Field(default=60000, ge=0, alias="acquireIPDelayMs")
    panic_threshold: int = Field(default=3, ge=1, alias="panicThreshold")

    # Pushover
    alerts_enabled: bool = Field(default=False, alias="alertsEnabled")
    pushover_token: Optional[SecretStr] = Field(default=None, alias="pushoverToken")
    pushover_user_key: Optional[SecretStr] = Field(default=None, alias="pushoverUserGroupKey")
    alert_url: str = Field(default="https://api.pushover.net", alias="alertUrl")
    alert_retries: int = Field(default=5, ge=0, alias="alertRetries")
    alert_retry_delay_ms: int = Field(default=30000, ge=0, alias="alertRetryDelayMs")

    @field_validator("bind_address", "peer_address", "floating_ip_address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("api_token")
    @classmethod
    def _token_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("metadata_url", "api_url", "alert_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _check_consistency(self) -> "MonitorConfig":
        # Otherwise every missed beat would trigger an acquisition.
        if self.acquire_ip_after_ms <= self.heartbeat_interval_ms:
            raise ValueError(
                f"acquire_ip_after_ms ({self.acquire_ip_after_ms}) must be greater "
                f"than heartbeat_interval_ms ({self.heartbeat_interval_ms})"
            )
        if self.alerts_enabled:
            if self.pushover_token is None or not self.pushover_token.get_secret_value():
                raise ValueError("pushover_token is required when alerts_enabled is set")
            if self.pushover_user_key is None or not self.pushover_user_key.get_secret_value():
                raise ValueError("pushover_user_key is required when alerts_enabled is set")
        return self

    @property
    def effective_peer_port(self) -> int:
        """Peers listen on the same port unless told otherwise."""
        return self.peer_port if self.peer_port is not None else self.bind_port

    @property
    def peer_url(self) -> str:
        host = self.peer_address
        # IPv6 literals need brackets to be told apart from the port.
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{self.effective_peer_port}/"

    @property
    def http_request_timeout(self) -> float:
        return self.http_request_timeout_ms / 1000.0
