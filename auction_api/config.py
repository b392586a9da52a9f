"""
Auction backend configuration
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class BackendConfig:
    """Configuration for the remote auction API and the staff user pool"""
    api_base_url: str = ""
    image_base_url: str = ""
    timeout: int = 60  # seconds

    # Cognito user pool
    cognito_region: str = "us-east-1"
    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    admin_group: str = "admin"

    # Batch status page refresh while a batch is still running
    batch_poll_seconds: int = 5

    @property
    def cognito_endpoint(self) -> str:
        return f"https://cognito-idp.{self.cognito_region}.amazonaws.com/"

    def validate(self) -> List[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        if not self.api_base_url:
            errors.append("AUCTION_API_URL is required")
        if not self.cognito_client_id:
            errors.append("COGNITO_CLIENT_ID is required for staff login")
        if self.timeout <= 0:
            errors.append("AUCTION_API_TIMEOUT must be positive")
        if self.batch_poll_seconds <= 0:
            errors.append("BATCH_POLL_SECONDS must be positive")
        return errors


_config: Optional[BackendConfig] = None


def get_config() -> BackendConfig:
    """Get or create the backend configuration"""
    global _config

    if _config is None:
        _config = BackendConfig(
            api_base_url=os.getenv('AUCTION_API_URL', '').rstrip('/'),
            image_base_url=os.getenv('S3_BUCKET_URL', '').rstrip('/'),
            timeout=int(os.getenv('AUCTION_API_TIMEOUT', '60')),
            cognito_region=os.getenv('COGNITO_REGION', 'us-east-1'),
            cognito_user_pool_id=os.getenv('COGNITO_USER_POOL_ID', ''),
            cognito_client_id=os.getenv('COGNITO_CLIENT_ID', ''),
            admin_group=os.getenv('COGNITO_ADMIN_GROUP', 'admin'),
            batch_poll_seconds=int(os.getenv('BATCH_POLL_SECONDS', '5')),
        )

    return _config


def reload_config() -> BackendConfig:
    """Force reload configuration from environment"""
    global _config
    _config = None
    return get_config()
