"""AWS resource builders for formwork."""

from formwork.aws.cloudwatch import LogGroup, LogGroupBuilder
from formwork.aws.dynamodb import (
    Key,
    PayPerRequestTableBuilder,
    ProvisionedTableBuilder,
    Table,
    TableBuilder,
)
from formwork.aws.function import (
    EventSourceMapping,
    EventSourceMappingBuilder,
    Function,
    FunctionBuilder,
    Image,
    ImageFunctionBuilder,
    Inline,
    LambdaPermission,
    PackagedFunctionBuilder,
    PermissionBuilder,
    Zip,
)
from formwork.aws.iam import (
    Permission,
    Policy,
    PolicyDocument,
    Principal,
    Role,
    RoleBuilder,
    Statement,
)
from formwork.aws.s3 import Bucket, BucketBuilder
from formwork.aws.sns import (
    FifoTopicBuilder,
    LambdaSubscriptionBuilder,
    Subscription,
    SubscriptionResources,
    Topic,
    TopicBuilder,
    TopicPolicy,
    TopicPolicyBuilder,
)
from formwork.aws.sqs import (
    FifoQueueBuilder,
    Queue,
    QueueBuilder,
    QueuePolicy,
    QueuePolicyBuilder,
    StandardQueueBuilder,
)

__all__ = [
    "Bucket",
    "BucketBuilder",
    "EventSourceMapping",
    "EventSourceMappingBuilder",
    "FifoQueueBuilder",
    "FifoTopicBuilder",
    "Function",
    "FunctionBuilder",
    "Image",
    "ImageFunctionBuilder",
    "Inline",
    "Key",
    "LambdaPermission",
    "LambdaSubscriptionBuilder",
    "LogGroup",
    "LogGroupBuilder",
    "PackagedFunctionBuilder",
    "PayPerRequestTableBuilder",
    "Permission",
    "PermissionBuilder",
    "Policy",
    "PolicyDocument",
    "Principal",
    "ProvisionedTableBuilder",
    "Queue",
    "QueueBuilder",
    "QueuePolicy",
    "QueuePolicyBuilder",
    "Role",
    "RoleBuilder",
    "StandardQueueBuilder",
    "Statement",
    "Subscription",
    "SubscriptionResources",
    "Table",
    "TableBuilder",
    "Topic",
    "TopicBuilder",
    "TopicPolicy",
    "TopicPolicyBuilder",
    "Zip",
]
