# sqs_large_message.py
"""
Claim-check middleware for SQS triggered Lambda handlers.

When a producer offloads an oversized message to S3 the SQS body only holds a
pointer record. The middleware swaps every pointer for the real payload before
the handler runs and deletes the S3 objects once the handler has returned.

Usage:
    @sqs_large_message()
    @logger.inject_lambda_context
    def lambda_handler(event, context):
        ...

    @sqs_large_message(delete_payloads=False)
    def keep_payloads_handler(event, context):
        ...
"""

import copy
import hashlib
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from aws_lambda_powertools import Logger
from aws_lambda_powertools.middleware_factory import lambda_handler_decorator
from aws_lambda_powertools.utilities.data_classes import SQSEvent, SQSRecord
from large_message_config import LargeMessageConfig
from payload_pointer import PayloadS3Pointer
from payload_store import PayloadStore

logger = Logger(service="sqs-large-message", child=True)

R = TypeVar("R")

SQS_EVENT_SOURCE = "aws:sqs"

Cleanup = Callable[[], None]


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def is_sqs_event(event: Any) -> bool:
    """True when every record of the event was delivered by SQS."""
    if not isinstance(event, dict):
        return False
    records = event.get("Records")
    if not isinstance(records, list) or not records:
        return False
    return all(
        isinstance(record, dict) and record.get("eventSource") == SQS_EVENT_SOURCE
        for record in records
    )


def _md5_of_body(body: str) -> str:
    return hashlib.md5(body.encode("utf-8"), usedforsecurity=False).hexdigest()


def resolve_payload(
    record: Dict[str, Any], store: PayloadStore
) -> Tuple[Any, Optional[Cleanup]]:
    """
    Resolve the effective body of a single SQS record.

    Args:
        record: Raw SQS record
        store: Store used to fetch the offloaded payload

    Returns:
        (body, cleanup): the body to hand to the handler and a callable deleting
        the offloaded object, or None when the body was literal

    Raises:
        FailedProcessingLargePayloadError: If the offloaded payload cannot be fetched
    """
    body = record.get("body")
    pointer = PayloadS3Pointer.from_json(body)
    if pointer is None:
        return body, None

    payload = store.get_payload(pointer)

    def cleanup() -> None:
        store.delete_payload(pointer)

    logger.info(
        "Resolved offloaded payload",
        extra={
            "message_id": record.get("messageId", ""),
            "bucket": pointer.bucket_name,
            "key": pointer.key,
        },
    )
    return payload, cleanup


def resolve_event(
    event: Dict[str, Any], store: PayloadStore
) -> Tuple[Dict[str, Any], List[Cleanup]]:
    """
    Copy an SQS event with every pointer record replaced by its payload.

    Resolved records also get a fresh ``md5OfBody``. The first failure aborts
    the whole batch.

    Returns:
        (resolved_event, cleanups) with one cleanup per resolved record, in record order
    """
    resolved = copy.deepcopy(event)
    cleanups: List[Cleanup] = []

    for record in resolved["Records"]:
        body, cleanup = resolve_payload(record, store)
        if cleanup is None:
            continue
        record["body"] = body
        record["md5OfBody"] = _md5_of_body(body)
        cleanups.append(cleanup)

    logger.debug(
        "SQS batch resolved",
        extra={
            "total_records": len(resolved["Records"]),
            "offloaded_records": len(cleanups),
        },
    )
    return resolved, cleanups


def _run_cleanups(cleanups: List[Cleanup]) -> None:
    for cleanup in cleanups:
        cleanup()


# ──────────────────────────────────────────────────────────────────────────────
# Middleware
# ──────────────────────────────────────────────────────────────────────────────
class SqsLargeMessageMiddleware:
    """
    Resolves offloaded SQS payloads around a Lambda handler.

    Events that are not SQS batches reach the handler untouched. Offloaded
    objects are deleted only after the handler returns, and only when
    deletion is enabled.
    """

    def __init__(
        self,
        delete_payloads: Optional[bool] = None,
        s3_client: Any = None,
        config: Optional[LargeMessageConfig] = None,
    ):
        self.config = config or LargeMessageConfig.from_env()
        self.delete_payloads = (
            self.config.delete_payloads if delete_payloads is None else delete_payloads
        )
        self.store = PayloadStore(s3_client=s3_client, config=self.config)

    def __call__(self, handler: Callable[..., R]) -> Callable[..., R]:
        @lambda_handler_decorator
        def wrap(inner, event, ctx):
            if not is_sqs_event(event):
                logger.debug("Not an SQS event, skipping payload resolution")
                return inner(event, ctx)

            resolved_event, cleanups = resolve_event(event, self.store)
            result = inner(resolved_event, ctx)

            if not self.delete_payloads:
                logger.debug(
                    "Payload deletion disabled",
                    extra={"offloaded_records": len(cleanups)},
                )
                return result

            _run_cleanups(cleanups)
            return result

        return wrap(handler)


# ──────────────────────────────────────────────────────────────────────────────
# Factory helper
# ──────────────────────────────────────────────────────────────────────────────
def sqs_large_message(**kw):
    mw = SqsLargeMessageMiddleware(**kw)
    return lambda handler: mw(handler)


def process_large_messages(
    event: Dict[str, Any],
    record_handler: Callable[[SQSRecord], R],
    store: Optional[PayloadStore] = None,
    delete_payloads: Optional[bool] = None,
    config: Optional[LargeMessageConfig] = None,
) -> List[R]:
    """
    Handle an SQS batch one record at a time.

    Each record is resolved and passed to ``record_handler``. Offloaded
    objects are deleted only once every record has been handled, so a failing
    record leaves the whole batch intact for redrive.

    Args:
        event: Raw Lambda event
        record_handler: Called with each resolved record
        store: Payload store, built from ``config`` when omitted
        delete_payloads: Overrides ``config.delete_payloads`` when given
        config: Defaults to ``LargeMessageConfig.from_env()``

    Returns:
        Handler results in record order, empty for non-SQS events
    """
    if not is_sqs_event(event):
        logger.debug("Not an SQS event, nothing to process")
        return []

    config = config or LargeMessageConfig.from_env()
    if delete_payloads is None:
        delete_payloads = config.delete_payloads
    store = store or PayloadStore(config=config)
    results: List[R] = []
    cleanups: List[Cleanup] = []

    for record in SQSEvent(copy.deepcopy(event)).records:
        body, cleanup = resolve_payload(record.raw_event, store)
        if cleanup is not None:
            record.raw_event["body"] = body
            record.raw_event["md5OfBody"] = _md5_of_body(body)
            cleanups.append(cleanup)

        results.append(record_handler(record))

    if delete_payloads:
        _run_cleanups(cleanups)
    else:
        logger.debug(
            "Payload deletion disabled",
            extra={"offloaded_records": len(cleanups)},
        )
    return results
