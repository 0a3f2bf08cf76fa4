from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Self, final

from formwork.aws.iam import PolicyDocument
from formwork.aws.types import DeduplicationScope, FifoThroughputLimit
from formwork.exceptions import ConfigurationError
from formwork.ids import child_id
from formwork.intrinsic import Reference
from formwork.resource import Resource

FIFO_SUFFIX = ".fifo"


@final
@dataclass(frozen=True, kw_only=True)
class Queue(Resource):
    TYPE = "AWS::SQS::Queue"
    KIND = "SqsQueue"

    @property
    def is_fifo(self) -> bool:
        return self.properties.get("FifoQueue") is True

    def url(self) -> Reference:
        return self.ref()

    def queue_name(self) -> Reference:
        return self.get_att("QueueName")



@final
@dataclass(frozen=True, kw_only=True)
class QueuePolicy(Resource):
    TYPE = "AWS::SQS::QueuePolicy"
    KIND = "QueuePolicy"


@dataclass(kw_only=True)
class _QueueSettings:
    resource_id: str
    queue_name: str | None = None
    delay_seconds: int | None = None
    maximum_message_size: int | None = None
    message_retention_period: int | None = None
    receive_message_wait_time_seconds: int | None = None
    visibility_timeout: int | None = None
    sqs_managed_sse_enabled: bool | None = None
    dead_letter_queue: Queue | None = None
    max_receive_count: int | None = None
    redrive_allow_policy: Mapping[str, Any] | None = None


class _QueueOptions:
    """Settings shared by standard and FIFO queues."""

    def __init__(self, settings: _QueueSettings):
        self._settings = settings

    def queue_name(self, name: str) -> Self:
        self._settings.queue_name = name
        return self

    def delay_seconds(self, seconds: int) -> Self:
        self._settings.delay_seconds = seconds
        return self

    def maximum_message_size(self, size: int) -> Self:
        self._settings.maximum_message_size = size
        return self

    def message_retention_period(self, seconds: int) -> Self:
        self._settings.message_retention_period = seconds
        return self

    def receive_message_wait_time_seconds(self, seconds: int) -> Self:
        self._settings.receive_message_wait_time_seconds = seconds
        return self

    def visibility_timeout(self, seconds: int) -> Self:
        self._settings.visibility_timeout = seconds
        return self

    def sqs_managed_sse_enabled(self, enabled: bool = True) -> Self:  # noqa: FBT001, FBT002
        self._settings.sqs_managed_sse_enabled = enabled
        return self

    def dead_letter_queue(self, queue: Queue, max_receive_count: int) -> Self:
        self._settings.dead_letter_queue = queue
        self._settings.max_receive_count = max_receive_count
        return self

    def redrive_allow_policy(self, policy: Mapping[str, Any]) -> Self:
        """Which source queues may use this queue as their dead-letter queue, e.g.
        ``{"redrivePermission": "byQueue", "sourceQueueArns": [source.arn()]}``."""
        self._settings.redrive_allow_policy = policy
        return self

    def _properties(self, *, fifo: bool) -> dict[str, Any]:
        settings = self._settings
        dead_letter_queue = settings.dead_letter_queue
        if dead_letter_queue is not None and dead_letter_queue.is_fifo != fifo:
            expected = "a FIFO" if fifo else "a standard"
            raise ConfigurationError(
                f"Queue '{settings.resource_id}' needs {expected} dead-letter queue, "
                f"'{dead_letter_queue.resource_id}' is not one"
            )

        redrive_policy = None
        if dead_letter_queue is not None:
            redrive_policy = {
                "deadLetterTargetArn": dead_letter_queue.arn(),
                "maxReceiveCount": settings.max_receive_count,
            }
        return {
            "QueueName": settings.queue_name,
            "DelaySeconds": settings.delay_seconds,
            "MaximumMessageSize": settings.maximum_message_size,
            "MessageRetentionPeriod": settings.message_retention_period,
            "ReceiveMessageWaitTimeSeconds": settings.receive_message_wait_time_seconds,
            "VisibilityTimeout": settings.visibility_timeout,
            "SqsManagedSseEnabled": settings.sqs_managed_sse_enabled,
            "RedrivePolicy": redrive_policy,
            "RedriveAllowPolicy": settings.redrive_allow_policy,
        }


@final
class QueueBuilder(_QueueOptions):
    """Start state of an SQS queue. Choose ``standard_queue`` or ``fifo_queue`` to build.

    Example:
        dead_letters = QueueBuilder("ordersDlq").fifo_queue().build()
        orders = (
            QueueBuilder("orders")
            .fifo_queue()
            .content_based_deduplication()
            .dead_letter_queue(dead_letters, max_receive_count=3)
            .build()
        )
    """

    def __init__(self, resource_id: str):
        super().__init__(_QueueSettings(resource_id=resource_id))

    def standard_queue(self) -> "StandardQueueBuilder":
        return StandardQueueBuilder(replace(self._settings))

    def fifo_queue(self) -> "FifoQueueBuilder":
        return FifoQueueBuilder(replace(self._settings))


@final
class StandardQueueBuilder(_QueueOptions):
    def build(self) -> Queue:
        return Queue.create(self._settings.resource_id, self._properties(fifo=False))


@final
class FifoQueueBuilder(_QueueOptions):
    """FIFO queue. The queue name, when set, gets the mandatory ``.fifo`` suffix."""

    def __init__(self, settings: _QueueSettings):
        super().__init__(settings)
        self._content_based_deduplication: bool | None = None
        self._deduplication_scope: DeduplicationScope | None = None
        self._fifo_throughput_limit: FifoThroughputLimit | None = None

    def content_based_deduplication(self, enabled: bool = True) -> Self:  # noqa: FBT001, FBT002
        self._content_based_deduplication = enabled
        return self

    def deduplication_scope(self, scope: DeduplicationScope) -> Self:
        self._deduplication_scope = scope
        return self

    def fifo_throughput_limit(self, limit: FifoThroughputLimit) -> Self:
        self._fifo_throughput_limit = limit
        return self

    def high_throughput_fifo(self) -> Self:
        """Deduplicate and scale throughput per message group instead of per queue."""
        self._deduplication_scope = "messageGroup"
        self._fifo_throughput_limit = "perMessageGroupId"
        return self

    def build(self) -> Queue:
        if (
            self._fifo_throughput_limit == "perMessageGroupId"
            and self._deduplication_scope != "messageGroup"
        ):
            raise ConfigurationError(
                "fifo throughput limit 'perMessageGroupId' requires deduplication scope "
                "'messageGroup'"
            )

        properties = self._properties(fifo=True)
        name = properties["QueueName"]
        if name is not None and not name.endswith(FIFO_SUFFIX):
            properties["QueueName"] = f"{name}{FIFO_SUFFIX}"
        return Queue.create(
            self._settings.resource_id,
            {
                **properties,
                "FifoQueue": True,
                "ContentBasedDeduplication": self._content_based_deduplication,
                "DeduplicationScope": self._deduplication_scope,
                "FifoThroughputLimit": self._fifo_throughput_limit,
            },
        )


@final
class QueuePolicyBuilder:
    """Resource policy of a queue. Every statement of the document applies to the queue.

    Example:
        policy = QueuePolicyBuilder(
            queue,
            PolicyDocument(
                [
                    Statement(
                        actions=["sqs:SendMessage"],
                        principal=Principal.service("sns.amazonaws.com"),
                    )
                ]
            ),
        ).build()
    """

    def __init__(self, queue: Queue, document: PolicyDocument):
        self._queue = queue
        self._document = document

    def build(self) -> QueuePolicy:
        document = self._document.with_resources([self._queue.arn()])
        return QueuePolicy.create(
            child_id(self._queue.resource_id, "Policy"),
            {
                "PolicyDocument": document.to_properties(),
                "Queues": [self._queue.url()],
            },
        )
