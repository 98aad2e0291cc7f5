"""
Shared configuration for the action entry points and the action server.
"""
import os
import logging
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Centralized configuration loaded from environment variables."""

    # Document store transport
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "30"))

    # IAM token exchange (used when iamUrl is not supplied with the request)
    IAM_TOKEN_URL = os.getenv("IAM_TOKEN_URL", "https://iam.cloud.ibm.com/identity/token")

    # Action server
    ACTION_HOST = os.getenv("ACTION_HOST", "127.0.0.1")
    ACTION_PORT = int(os.getenv("ACTION_PORT", "8080"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging():
    """Configure logging based on LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)
