"""Custom exceptions for SQS large message handling."""

from typing import Optional


class LargePayloadError(Exception):
    """Base exception for offloaded payload errors."""

    def __init__(
        self,
        message: str,
        bucket_name: Optional[str] = None,
        key: Optional[str] = None,
    ):
        self.message = message
        self.bucket_name = bucket_name
        self.key = key
        super().__init__(self.message)

    def __str__(self):
        if self.bucket_name and self.key:
            return f"{self.message}: s3://{self.bucket_name}/{self.key}"
        return self.message


class FailedProcessingLargePayloadError(LargePayloadError):
    """
    Raised when an offloaded payload could not be fetched, read or deleted.

    The original exception is always chained as ``__cause__`` so callers can
    tell a broken claim-check apart from errors raised by handler code.
    """

    def __init__(
        self,
        message: str = "Failed processing large payload",
        bucket_name: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message, bucket_name, key)
