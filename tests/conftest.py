"""
Test configuration and fixtures for the SQS large message layer.
"""

import os
from dataclasses import dataclass
from io import BytesIO
from unittest.mock import Mock

import pytest

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "sqs-large-message")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")

BUCKET_NAME = "bucketname"
BUCKET_KEY = "c71eb2ae-37e0-4265-8909-32f4153faddf"
LARGE_MESSAGE = "A big message"
POINTER_BODY = (
    '["software.amazon.payloadoffloading.PayloadS3Pointer",'
    f'{{"s3BucketName":"{BUCKET_NAME}","s3Key":"{BUCKET_KEY}"}}]'
)


@dataclass
class LambdaContext:
    function_name: str = "testFunction"
    function_version: str = "1"
    memory_limit_in_mb: int = 10
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:testFunction"
    aws_request_id: str = "da658bd3-2d6f-4e7b-8ec2-937234644fdc"

    def get_remaining_time_in_millis(self) -> int:
        return 30000


def sqs_record(body: str, message_id: str = "059f36b4-87a3-44ab-83d2-661975830a7d") -> dict:
    """Build an SQS record as delivered to Lambda."""
    return {
        "messageId": message_id,
        "receiptHandle": "AQEBwJnKyrHigUMZj6rYigCgxlaS3SLy0a...",
        "body": body,
        "attributes": {
            "ApproximateReceiveCount": "1",
            "SentTimestamp": "1545082649183",
            "SenderId": "AIDAIENQZJOLO23YVJ4VO",
            "ApproximateFirstReceiveTimestamp": "1545082649185",
        },
        "messageAttributes": {},
        "md5OfBody": "e4e68fb7bd0e697a0ae8f1bb342846b3",
        "eventSource": "aws:sqs",
        "eventSourceARN": "arn:aws:sqs:us-east-1:123456789012:my-queue",
        "awsRegion": "us-east-1",
    }


def sqs_event(*bodies: str) -> dict:
    return {
        "Records": [
            sqs_record(body, message_id=f"message-{index}")
            for index, body in enumerate(bodies)
        ]
    }


def s3_object(content: str = LARGE_MESSAGE) -> dict:
    """get_object response with a readable body."""
    return {"Body": BytesIO(content.encode("utf-8")), "ContentLength": len(content)}


@pytest.fixture
def lambda_context():
    return LambdaContext()


@pytest.fixture
def s3_client():
    """Mock S3 client returning the large message for any key."""
    client = Mock()
    client.get_object.side_effect = lambda **kwargs: s3_object()
    client.delete_object.return_value = {}
    return client


@pytest.fixture
def pointer_event():
    return sqs_event(POINTER_BODY)
