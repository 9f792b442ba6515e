"""
Connection Schema Types
=======================

Bounded Context: MQTT Session Configuration

Types:
- ConnectionSettings: Everything the session client needs to open a session
- ConnectResult: Outcome of a connect attempt (broker reason code)
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConnectionSettings:
    """
    Immutable MQTT connection parameters.

    Credential files are passed as paths only; the session client reads them.

    Attributes:
        host: MQTT broker hostname
        port: MQTT broker port
        client_id: MQTT client identifier
        use_tls: Enable TLS on the connection
        username: MQTT authentication username (optional)
        password_file: File holding the password (optional)
        sat_auth_file: File holding a short-lived service account token (optional)
        ca_file: CA certificate bundle used to verify the broker (optional)
        keep_alive_seconds: MQTT keep alive interval
        clean_start: Start a new session on first connect
    """
    host: str
    port: int
    client_id: str
    use_tls: bool = False
    username: Optional[str] = None
    password_file: Optional[str] = None
    sat_auth_file: Optional[str] = None
    ca_file: Optional[str] = None
    keep_alive_seconds: int = 60
    clean_start: bool = True

    def __post_init__(self):
        """Validate invariants."""
        if not self.host:
            raise ValueError("ConnectionSettings host cannot be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"MQTT port must be in [1, 65535], got {self.port}")
        if not self.client_id:
            raise ValueError("ConnectionSettings client_id cannot be empty")

    @property
    def broker(self) -> str:
        """host:port string for logs."""
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ConnectResult:
    """
    Outcome of a broker connect.

    Attributes:
        reason_code: MQTT CONNACK reason code (0 = success)
        reason: Human-readable reason
    """
    reason_code: int
    reason: str = ""

    @property
    def is_success(self) -> bool:
        return self.reason_code == 0

    def __str__(self) -> str:
        return f"{self.reason_code} ({self.reason})" if self.reason else str(self.reason_code)
