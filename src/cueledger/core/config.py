"""
Runtime configuration read from the environment.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import os

DEFAULT_ADMIN_KEY = "admin-key-change-in-production"
DEFAULT_CASHIER_KEY = "cashier-key-change-in-production"


@dataclass
class LedgerConfig:
    """Settings for the API server and CLI."""
    database_url: str = "sqlite:///cueledger.db"
    admin_api_key: str = DEFAULT_ADMIN_KEY
    cashier_api_key: str = DEFAULT_CASHIER_KEY
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "LedgerConfig":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL", "sqlite:///cueledger.db"),
            admin_api_key=env.get("ADMIN_API_KEY", DEFAULT_ADMIN_KEY),
            cashier_api_key=env.get("CASHIER_API_KEY", DEFAULT_CASHIER_KEY),
            cors_origins=env.get("CORS_ORIGINS", "*").split(","),
            port=int(env.get("PORT", 8000)),
            debug=env.get("DEBUG", "false").lower() == "true",
        )

    def role_for_key(self, api_key: str) -> Optional[str]:
        """Map an API key to its role, or None if unknown."""
        if api_key == self.admin_api_key:
            return "admin"
        if api_key == self.cashier_api_key:
            return "cashier"
        return None
