from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Any, Self, final

from formwork.aws.function import Function, LambdaPermission, PermissionBuilder
from formwork.aws.iam import PolicyDocument
from formwork.aws.types import FifoThroughputScope
from formwork.ids import child_id, combine_ids
from formwork.intrinsic import Reference
from formwork.resource import Resource

FIFO_SUFFIX = ".fifo"


@final
@dataclass(frozen=True, kw_only=True)
class Topic(Resource):
    TYPE = "AWS::SNS::Topic"
    KIND = "SnsTopic"

    def arn(self) -> Reference:
        # Ref of a topic is its ARN
        return self.ref()

    def topic_name(self) -> Reference:
        return self.get_att("TopicName")


@final
@dataclass(frozen=True, kw_only=True)
class Subscription(Resource):
    TYPE = "AWS::SNS::Subscription"
    KIND = "SnsSubscription"



@final
@dataclass(frozen=True, kw_only=True)
class TopicPolicy(Resource):
    TYPE = "AWS::SNS::TopicPolicy"
    KIND = "TopicPolicy"


@dataclass(kw_only=True)
class _TopicSettings:
    resource_id: str
    topic_name: str | None = None
    display_name: str | None = None


class _TopicOptions:
    def __init__(self, settings: _TopicSettings):
        self._settings = settings

    def topic_name(self, name: str) -> Self:
        self._settings.topic_name = name
        return self

    def display_name(self, name: str) -> Self:
        self._settings.display_name = name
        return self

    def _properties(self) -> dict[str, Any]:
        return {"TopicName": self._settings.topic_name, "DisplayName": self._settings.display_name}


@final
class TopicBuilder(_TopicOptions):
    """Standard SNS topic. Call ``fifo`` to switch to a FIFO topic.

    Example:
        topic = TopicBuilder("orderEvents").build()
        subscription, permission = LambdaSubscriptionBuilder(topic, function).build()
    """

    def __init__(self, resource_id: str):
        super().__init__(_TopicSettings(resource_id=resource_id))

    def fifo(self) -> "FifoTopicBuilder":
        return FifoTopicBuilder(replace(self._settings))

    def build(self) -> Topic:
        return Topic.create(self._settings.resource_id, self._properties())


@final
class FifoTopicBuilder(_TopicOptions):
    def __init__(self, settings: _TopicSettings):
        super().__init__(settings)
        self._content_based_deduplication: bool | None = None
        self._fifo_throughput_scope: FifoThroughputScope | None = None

    def content_based_deduplication(self, enabled: bool = True) -> Self:  # noqa: FBT001, FBT002
        self._content_based_deduplication = enabled
        return self

    def fifo_throughput_scope(self, scope: FifoThroughputScope) -> Self:
        self._fifo_throughput_scope = scope
        return self

    def build(self) -> Topic:
        properties = self._properties()
        name = properties["TopicName"]
        if name is not None and not name.endswith(FIFO_SUFFIX):
            properties["TopicName"] = f"{name}{FIFO_SUFFIX}"
        return Topic.create(
            self._settings.resource_id,
            {
                **properties,
                "FifoTopic": True,
                "ContentBasedDeduplication": self._content_based_deduplication,
                "FifoThroughputScope": self._fifo_throughput_scope,
            },
        )


@final
@dataclass(frozen=True)
class SubscriptionResources:
    """A Lambda subscription and the permission that lets SNS invoke the function.

    Both have to be registered, ``StackBuilder.register_many`` takes this directly.
    """

    subscription: Subscription
    permission: LambdaPermission

    def __iter__(self) -> Iterator[Resource]:
        yield self.subscription
        yield self.permission


@final
class LambdaSubscriptionBuilder:
    def __init__(self, topic: Topic, function: Function):
        self._topic = topic
        self._function = function
        self._filter_policy: Mapping[str, Any] | None = None

    def filter_policy(self, policy: Mapping[str, Any]) -> Self:
        self._filter_policy = policy
        return self

    def build(self) -> SubscriptionResources:
        subscription_id = combine_ids(self._topic.resource_id, self._function.resource_id)
        permission = (
            PermissionBuilder(
                child_id(subscription_id, "Permission"),
                "lambda:InvokeFunction",
                self._function.arn(),
                "sns.amazonaws.com",
            )
            .source_arn(self._topic.arn())
            .build()
        )
        subscription = Subscription.create(
            subscription_id,
            {
                "Protocol": "lambda",
                "Endpoint": self._function.arn(),
                "TopicArn": self._topic.arn(),
                "FilterPolicy": self._filter_policy,
            },
        )
        return SubscriptionResources(subscription, permission)


@final
class TopicPolicyBuilder:
    """Resource policy of a topic. Every statement of the document applies to the topic."""

    def __init__(self, topic: Topic, document: PolicyDocument):
        self._topic = topic
        self._document = document

    def build(self) -> TopicPolicy:
        document = self._document.with_resources([self._topic.arn()])
        return TopicPolicy.create(
            child_id(self._topic.resource_id, "Policy"),
            {"PolicyDocument": document.to_properties(), "Topics": [self._topic.arn()]},
        )
