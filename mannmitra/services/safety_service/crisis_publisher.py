"""Crisis event publisher for downstream follow-up.

Publishes logged crisis events to a Kinesis stream so follow-up workflows
(counsellor review, analytics) consume them without coupling to the chat
turn. Publishing is best-effort: a failure never blocks the chat response.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from mannmitra.shared.models import CrisisEvent
from mannmitra.shared.utils import hash_pii
from .config import PublisherConfig

logger = logging.getLogger(__name__)


EVENT_TYPE = "safety.crisis.logged"


def to_kinesis_payload(event_id: str, event: CrisisEvent) -> Dict[str, Any]:
    """Convert a logged event to a Kinesis record payload.

    The raw user id and trigger message stay in the event log; the stream
    only carries the hashed user id and the categories.
    """
    return {
        "event_id": event_id,
        "event_type": EVENT_TYPE,
        "timestamp": event.timestamp.isoformat() + "Z",
        "source": "safety-service",
        "data": {
            "user_id_hash": hash_pii(event.user_id),
            "session_id": event.session_id,
            "severity": event.severity.value,
            "detected_indicators": sorted(event.detected_indicators),
            "professional_referral": event.professional_referral,
            "follow_up_scheduled": event.follow_up_scheduled,
            "resolution": event.resolution.value,
        }
    }


class CrisisEventPublisher:
    """Publishes crisis events to Kinesis.

    Failure Handling:
        - Publishing failure does NOT raise
        - Crisis resources are shown even if publish fails
        - Failures are logged at CRITICAL level for alerting
    """

    def __init__(self, config: Optional[PublisherConfig] = None):
        """Initialize publisher.

        Args:
            config: Stream name, enabled flag and region
        """
        self.config = config or PublisherConfig()
        self._kinesis_client = None

        logger.info(
            "CRISIS_PUBLISHER_INITIALIZED",
            extra={
                "stream_name": self.config.stream_name,
                "enabled": self.config.enabled,
                "region": self.config.region,
            }
        )

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.enabled:
            try:
                import boto3
                self._kinesis_client = boto3.client(
                    "kinesis",
                    region_name=self.config.region,
                )
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e), "error_type": type(e).__name__}
                )
        return self._kinesis_client

    def publish(self, event_id: str, event: CrisisEvent) -> bool:
        """Publish one logged crisis event.

        Args:
            event_id: Id assigned by the crisis event log
            event: The logged event

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.info(
                "CRISIS_PUBLISH_SKIPPED",
                extra={"event_id": event_id, "reason": "publishing_disabled"}
            )
            return False

        payload = None
        try:
            payload = to_kinesis_payload(event_id, event)

            if self.kinesis_client is None:
                logger.critical(
                    "CRISIS_EVENT_FALLBACK_LOG",
                    extra={
                        "event_id": event_id,
                        "payload": json.dumps(payload),
                        "reason": "kinesis_client_unavailable",
                        "action": "MANUAL_PROCESSING_REQUIRED",
                    }
                )
                return False

            response = self.kinesis_client.put_record(
                StreamName=self.config.stream_name,
                Data=json.dumps(payload),
                PartitionKey=payload["data"]["user_id_hash"],  # Same user -> same shard
            )

            logger.info(
                "CRISIS_EVENT_PUBLISHED",
                extra={
                    "event_id": event_id,
                    "severity": event.severity.value,
                    "shard_id": response.get("ShardId"),
                    "sequence_number": response.get("SequenceNumber"),
                }
            )
            return True

        except Exception as e:
            logger.critical(
                "CRISIS_EVENT_PUBLISH_FAILED",
                extra={
                    "event_id": event_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                    "payload": json.dumps(payload) if payload else None,
                }
            )
            return False

    def publish_batch(self, events: List[Tuple[str, CrisisEvent]]) -> int:
        """Publish several logged events in one call.

        Args:
            events: (event_id, event) pairs

        Returns:
            Number of successfully published events
        """
        if not self.enabled or not events:
            return 0

        if self.kinesis_client is None:
            logger.error(
                "CRISIS_BATCH_PUBLISH_FAILED",
                extra={"reason": "kinesis_client_unavailable"}
            )
            return 0

        try:
            records = []
            for event_id, event in events:
                payload = to_kinesis_payload(event_id, event)
                records.append({
                    "Data": json.dumps(payload),
                    "PartitionKey": payload["data"]["user_id_hash"],
                })

            response = self.kinesis_client.put_records(
                StreamName=self.config.stream_name,
                Records=records,
            )
        except Exception as e:
            logger.critical(
                "CRISIS_BATCH_PUBLISH_FAILED",
                extra={"error": str(e), "event_count": len(events)}
            )
            return 0

        failed_count = response.get("FailedRecordCount", 0)
        success_count = len(events) - failed_count

        logger.info(
            "CRISIS_BATCH_PUBLISHED",
            extra={
                "total": len(events),
                "success": success_count,
                "failed": failed_count,
            }
        )
        return success_count
