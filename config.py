import logging
import os
from datetime import timedelta


class Config:
    """Configuration management for the authorization code grant"""

    def __init__(self):
        self.environment = os.getenv("ENVIRONMENT", "production")

        # Token lifetimes
        self.oauth_token_expiry = int(os.getenv("OAUTH_TOKEN_EXPIRY", 3600))  # 1 hour
        self.oauth_refresh_token_expiry = int(os.getenv("OAUTH_REFRESH_TOKEN_EXPIRY", 86400))  # 24 hours
        self.issue_refresh_token = os.getenv("OAUTH_ISSUE_REFRESH_TOKEN", "true").lower() == "true"

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_format = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        # Development vs Production settings
        if self.environment == "development":
            self.oauth_token_expiry = 7200  # 2 hours for dev

        self._validate_config()

    def _validate_config(self):
        """Validate configuration values"""
        if self.oauth_token_expiry < 300:  # 5 minutes minimum
            raise ValueError("OAUTH_TOKEN_EXPIRY must be at least 300 seconds")

        if self.issue_refresh_token and self.oauth_refresh_token_expiry <= self.oauth_token_expiry:
            raise ValueError("OAUTH_REFRESH_TOKEN_EXPIRY must be greater than OAUTH_TOKEN_EXPIRY")

        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL is not a valid logging level: {self.log_level}")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == "production"

    def get_oauth_token_expiry_delta(self) -> timedelta:
        """Get OAuth access token expiry as timedelta"""
        return timedelta(seconds=self.oauth_token_expiry)

    def get_oauth_refresh_token_expiry_delta(self) -> timedelta:
        """Get OAuth refresh token expiry as timedelta"""
        return timedelta(seconds=self.oauth_refresh_token_expiry)

    def configure_logging(self):
        """Apply the configured level and format to the root logger"""
        logging.basicConfig(level=self.log_level.upper(), format=self.log_format)
