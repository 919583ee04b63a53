"""
S3 payload pointer records.

Producers using the SQS Extended Client replace oversized message bodies with
a two-element JSON array: the pointer class name followed by the S3 location
of the real payload, e.g.

    ["software.amazon.payloadoffloading.PayloadS3Pointer",
     {"s3BucketName": "bucket", "s3Key": "c71eb2ae-..."}]

This module recognises and builds those records.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Final, Optional

from aws_lambda_powertools import Logger

logger = Logger(service="sqs-large-message", child=True)

MESSAGE_POINTER_CLASS: Final[str] = "software.amazon.payloadoffloading.PayloadS3Pointer"
LEGACY_MESSAGE_POINTER_CLASS: Final[str] = "com.amazon.sqs.javamessaging.MessageS3Pointer"
POINTER_CLASSES: Final[tuple[str, ...]] = (
    MESSAGE_POINTER_CLASS,
    LEGACY_MESSAGE_POINTER_CLASS,
)

BUCKET_NAME_FIELD = "s3BucketName"
KEY_FIELD = "s3Key"


def looks_like_pointer(body: Any) -> bool:
    """Cheap check for a pointer class marker before parsing any JSON."""
    if not isinstance(body, str):
        return False
    stripped = body.lstrip()
    if not stripped.startswith("["):
        return False
    return any(pointer_class in stripped for pointer_class in POINTER_CLASSES)


@dataclass(frozen=True)
class PayloadS3Pointer:
    """Location of an offloaded message payload.

    Attributes:
        bucket_name: Bucket holding the payload
        key: Object key of the payload
    """

    bucket_name: str
    key: str

    @property
    def s3_uri(self) -> str:
        return f"s3://{self.bucket_name}/{self.key}"

    @classmethod
    def from_json(cls, body: Any) -> Optional[PayloadS3Pointer]:
        """
        Parse a message body into a pointer.

        Args:
            body: Raw SQS message body

        Returns:
            PayloadS3Pointer, or None when the body is a literal payload
        """
        if not looks_like_pointer(body):
            return None

        try:
            parsed = json.loads(body)
        except ValueError:
            logger.warning(
                "Message body carries a pointer marker but is not valid JSON",
                extra={"body_prefix": body[:100]},
            )
            return None

        if (
            not isinstance(parsed, list)
            or len(parsed) != 2
            or parsed[0] not in POINTER_CLASSES
            or not isinstance(parsed[1], dict)
        ):
            logger.warning(
                "Message body is not a pointer record",
                extra={"body_prefix": body[:100]},
            )
            return None

        location = parsed[1]
        bucket_name = location.get(BUCKET_NAME_FIELD)
        key = location.get(KEY_FIELD)
        if not isinstance(bucket_name, str) or not bucket_name:
            logger.warning(
                f"Pointer record is missing {BUCKET_NAME_FIELD}",
                extra={"body_prefix": body[:100]},
            )
            return None
        if not isinstance(key, str) or not key:
            logger.warning(
                f"Pointer record is missing {KEY_FIELD}",
                extra={"body_prefix": body[:100]},
            )
            return None

        return cls(bucket_name=bucket_name, key=key)

    def to_json(self, pointer_class: str = MESSAGE_POINTER_CLASS) -> str:
        if pointer_class not in POINTER_CLASSES:
            raise ValueError(f"Unknown pointer class: {pointer_class}")
        return json.dumps(
            [pointer_class, {BUCKET_NAME_FIELD: self.bucket_name, KEY_FIELD: self.key}]
        )
