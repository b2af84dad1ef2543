"""Network configuration constants for the assessment server."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3001
API_PREFIX: str = "/api"
