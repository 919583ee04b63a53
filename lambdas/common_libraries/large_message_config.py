"""Configuration for the SQS large message layer."""

import os
from typing import Dict, Mapping, Optional

from botocore.config import Config
from pydantic import BaseModel, Field, field_validator

# Environment variable -> config field
ENV_VARS: Dict[str, str] = {
    "LARGE_MESSAGE_DELETE_PAYLOADS": "delete_payloads",
    "LARGE_MESSAGE_S3_MAX_ATTEMPTS": "s3_max_attempts",
    "LARGE_MESSAGE_S3_CONNECT_TIMEOUT": "s3_connect_timeout",
    "LARGE_MESSAGE_S3_READ_TIMEOUT": "s3_read_timeout",
    "LARGE_MESSAGE_S3_RETRY_MODE": "s3_retry_mode",
}


class LargeMessageConfig(BaseModel):
    delete_payloads: bool = True
    s3_max_attempts: int = Field(default=3, ge=1)
    s3_connect_timeout: float = Field(default=5.0, gt=0)
    s3_read_timeout: float = Field(default=30.0, gt=0)
    s3_retry_mode: str = "standard"

    @field_validator("s3_retry_mode")
    @classmethod
    def validate_retry_mode(cls, v):
        valid_modes = ["legacy", "standard", "adaptive"]
        if v.lower() not in valid_modes:
            raise ValueError(f"Retry mode must be one of {valid_modes}")
        return v.lower()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None):
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``

        Returns:
            LargeMessageConfig: validated configuration, defaults for unset variables

        Raises:
            pydantic.ValidationError: When a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {
            field_name: environ[env_var]
            for env_var, field_name in ENV_VARS.items()
            if environ.get(env_var, "") != ""
        }
        return cls(**values)

    def boto_config(self) -> Config:
        return Config(
            retries={"max_attempts": self.s3_max_attempts, "mode": self.s3_retry_mode},
            connect_timeout=self.s3_connect_timeout,
            read_timeout=self.s3_read_timeout,
        )
