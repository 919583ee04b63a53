"""
S3 access for offloaded message payloads.

Fetches and deletes the objects referenced by pointer records. Every S3 or
stream failure is translated into FailedProcessingLargePayloadError with the
original exception chained, so a broken claim-check is never mistaken for an
error in handler code.
"""

from contextlib import closing
from typing import Any, Optional

import boto3
from aws_lambda_powertools import Logger, Tracer
from botocore.exceptions import BotoCoreError, ClientError
from large_message_config import LargeMessageConfig
from large_message_errors import FailedProcessingLargePayloadError
from payload_pointer import PayloadS3Pointer

logger = Logger(service="sqs-large-message", child=True)
tracer = Tracer(service="sqs-large-message")


class PayloadStore:
    """
    Reads and deletes offloaded payloads in S3.

    Usage:
        store = PayloadStore()
        body = store.get_payload(pointer)
        store.delete_payload(pointer)

    The S3 client is created on first use unless one is injected.
    """

    def __init__(
        self,
        s3_client: Any = None,
        config: Optional[LargeMessageConfig] = None,
    ):
        self.config = config or LargeMessageConfig()
        self._s3_client = s3_client

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client("s3", config=self.config.boto_config())
            logger.debug("S3 client created")
        return self._s3_client

    @tracer.capture_method
    def get_payload(self, pointer: PayloadS3Pointer) -> str:
        """
        Download an offloaded payload.

        Args:
            pointer: Location of the payload

        Returns:
            The payload decoded as UTF-8

        Raises:
            FailedProcessingLargePayloadError: If the object cannot be fetched,
                read, decoded or its stream cannot be closed
        """
        logger.info(
            "Fetching offloaded payload",
            extra={"bucket": pointer.bucket_name, "key": pointer.key},
        )
        try:
            response = self.s3_client.get_object(
                Bucket=pointer.bucket_name, Key=pointer.key
            )
        except (ClientError, BotoCoreError) as exc:
            logger.exception(
                f"Failed to fetch offloaded payload: {exc}",
                extra={"bucket": pointer.bucket_name, "key": pointer.key},
            )
            raise FailedProcessingLargePayloadError(
                "Failed fetching large payload from S3",
                bucket_name=pointer.bucket_name,
                key=pointer.key,
            ) from exc

        try:
            with closing(response["Body"]) as stream:
                raw = stream.read()
            payload = raw.decode("utf-8")
        except (OSError, BotoCoreError, UnicodeDecodeError) as exc:
            logger.exception(
                f"Failed to read offloaded payload: {exc}",
                extra={"bucket": pointer.bucket_name, "key": pointer.key},
            )
            raise FailedProcessingLargePayloadError(
                "Failed reading large payload from S3",
                bucket_name=pointer.bucket_name,
                key=pointer.key,
            ) from exc

        logger.debug(
            "Offloaded payload fetched",
            extra={
                "bucket": pointer.bucket_name,
                "key": pointer.key,
                "size_bytes": len(raw),
            },
        )
        return payload

    @tracer.capture_method
    def delete_payload(self, pointer: PayloadS3Pointer) -> None:
        """
        Delete an offloaded payload once its message has been processed.

        Raises:
            FailedProcessingLargePayloadError: If S3 rejects the deletion
        """
        logger.info(
            "Deleting offloaded payload",
            extra={"bucket": pointer.bucket_name, "key": pointer.key},
        )
        try:
            self.s3_client.delete_object(Bucket=pointer.bucket_name, Key=pointer.key)
        except (ClientError, BotoCoreError) as exc:
            logger.exception(
                f"Failed to delete offloaded payload: {exc}",
                extra={"bucket": pointer.bucket_name, "key": pointer.key},
            )
            raise FailedProcessingLargePayloadError(
                "Failed deleting large payload from S3",
                bucket_name=pointer.bucket_name,
                key=pointer.key,
            ) from exc
