from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Self, final

from formwork.aws.types import Effect
from formwork.exceptions import ConfigurationError
from formwork.intrinsic import AWS_PARTITION, join
from formwork.resource import Resource

POLICY_VERSION = "2012-10-17"
LAMBDA_BASIC_EXECUTION_POLICY = "policy/service-role/AWSLambdaBasicExecutionRole"

type PrincipalKind = Literal["service", "aws", "literal"]


@final
@dataclass(frozen=True, kw_only=True)
class Role(Resource):
    TYPE = "AWS::IAM::Role"
    KIND = "Role"

    def granted_services(self) -> frozenset[str]:
        """Services the inline policies allow at least one action of, e.g. ``dynamodb`` for
        ``dynamodb:Query``. Managed policies are not inspected."""
        return frozenset(
            action.split(":")[0]
            for policy in self.properties.get("Policies") or ()
            for statement in policy["PolicyDocument"]["Statement"]
            if statement.get("Effect") == "Allow"
            for action in statement.get("Action") or ()
        )


@final
@dataclass(frozen=True)
class Principal:
    """Who a statement applies to.

    The kind decides the rendering: ``{"Service": ...}``, ``{"AWS": ...}`` or the literal
    value itself (e.g. ``"*"``).
    """

    kind: PrincipalKind
    value: Any

    @classmethod
    def service(cls, name: str) -> "Principal":
        return cls("service", name)

    @classmethod
    def aws(cls, value: Any) -> "Principal":  # noqa: ANN401
        return cls("aws", value)

    @classmethod
    def literal(cls, value: str) -> "Principal":
        return cls("literal", value)

    @classmethod
    def from_template(cls, value: Any) -> "Principal":  # noqa: ANN401
        """Read a principal back from template data, choosing the kind by its shape."""
        if isinstance(value, str):
            return cls.literal(value)
        if isinstance(value, Mapping) and len(value) == 1:
            if "Service" in value:
                return cls.service(value["Service"])
            if "AWS" in value:
                return cls.aws(value["AWS"])
        raise ValueError(f"Unsupported principal: {value!r}")

    def to_properties(self) -> Any:  # noqa: ANN401
        if self.kind == "service":
            return {"Service": self.value}
        if self.kind == "aws":
            return {"AWS": self.value}
        return self.value


@final
@dataclass(frozen=True, kw_only=True)
class Statement:
    actions: Sequence[str]
    effect: Effect = "Allow"
    resources: Sequence[Any] | None = None
    principal: Principal | None = None
    condition: Mapping[str, Any] | None = None

    def to_properties(self) -> dict[str, Any]:
        return {
            "Effect": self.effect,
            "Action": list(self.actions),
            "Principal": self.principal.to_properties() if self.principal else None,
            "Resource": list(self.resources) if self.resources is not None else None,
            "Condition": self.condition,
        }


@final
@dataclass(frozen=True)
class PolicyDocument:
    statements: Sequence[Statement]
    version: str = POLICY_VERSION

    def to_properties(self) -> dict[str, Any]:
        return {
            "Version": self.version,
            "Statement": [statement.to_properties() for statement in self.statements],
        }

    def with_resources(self, resources: Sequence[Any]) -> "PolicyDocument":
        """Copy of the document with every statement applying to ``resources``."""
        return PolicyDocument(
            [replace(statement, resources=list(resources)) for statement in self.statements],
            self.version,
        )


@final
@dataclass(frozen=True)
class Policy:
    """An inline policy of a role."""

    policy_name: str
    document: PolicyDocument

    def to_properties(self) -> dict[str, Any]:
        return {"PolicyName": self.policy_name, "PolicyDocument": self.document.to_properties()}


def _policy(name: str, actions: list[str], resources: list[Any]) -> Policy:
    return Policy(name, PolicyDocument([Statement(actions=actions, resources=resources)]))


class Permission:
    """Ready-made inline policies granting access to other resources of the stack.

    Each policy references the resource by ARN, so the resource has to be registered in
    the same stack.
    """

    @staticmethod
    def dynamodb_read(table: Resource) -> Policy:
        return _policy(
            f"{table.resource_id}Read",
            [
                "dynamodb:Get*",
                "dynamodb:DescribeTable",
                "dynamodb:BatchGetItem",
                "dynamodb:ConditionCheckItem",
                "dynamodb:Query",
                "dynamodb:Scan",
            ],
            [table.arn()],
        )

    @staticmethod
    def dynamodb_read_write(table: Resource) -> Policy:
        return _policy(
            f"{table.resource_id}ReadWrite",
            [
                "dynamodb:Get*",
                "dynamodb:DescribeTable",
                "dynamodb:BatchGetItem",
                "dynamodb:BatchWriteItem",
                "dynamodb:ConditionCheckItem",
                "dynamodb:Query",
                "dynamodb:Scan",
                "dynamodb:DeleteItem",
                "dynamodb:PutItem",
                "dynamodb:UpdateItem",
            ],
            [table.arn()],
        )

    @staticmethod
    def sqs_read(queue: Resource) -> Policy:
        return _policy(
            f"{queue.resource_id}Read",
            [
                "sqs:ChangeMessageVisibility",
                "sqs:DeleteMessage",
                "sqs:GetQueueAttributes",
                "sqs:GetQueueUrl",
                "sqs:ReceiveMessage",
            ],
            [queue.arn()],
        )

    @staticmethod
    def sqs_send(queue: Resource) -> Policy:
        return _policy(
            f"{queue.resource_id}Send",
            ["sqs:GetQueueAttributes", "sqs:GetQueueUrl", "sqs:SendMessage"],
            [queue.arn()],
        )

    @staticmethod
    def sns_publish(topic: Resource) -> Policy:
        return _policy(f"{topic.resource_id}Publish", ["sns:Publish"], [topic.arn()])

    @staticmethod
    def s3_read_write(bucket: Resource) -> Policy:
        arn = bucket.arn()
        return _policy(
            f"{bucket.resource_id}ReadWrite",
            [
                "s3:Abort*",
                "s3:DeleteObject*",
                "s3:GetBucket*",
                "s3:GetObject*",
                "s3:List*",
                "s3:PutObject",
                "s3:PutObjectLegalHold",
                "s3:PutObjectRetention",
                "s3:PutObjectTagging",
                "s3:PutObjectVersionTagging",
            ],
            [arn, join("/", arn, "*")],
        )

    @staticmethod
    def custom(policy_name: str, statement: Statement) -> Policy:
        return Policy(policy_name, PolicyDocument([statement]))


@final
@dataclass
class RoleBuilder:
    resource_id: str
    assume_role_policy: PolicyDocument
    _managed_policy_arns: list[Any] = field(default_factory=list, init=False)
    _policies: list[Policy] = field(default_factory=list, init=False)
    _role_name: str | None = field(default=None, init=False)

    @classmethod
    def for_lambda(cls, resource_id: str) -> "RoleBuilder":
        """Role Lambda can assume, with the basic execution policy (CloudWatch Logs) attached."""
        assume_role_policy = PolicyDocument(
            [
                Statement(
                    actions=["sts:AssumeRole"],
                    principal=Principal.service("lambda.amazonaws.com"),
                )
            ]
        )
        builder = cls(resource_id, assume_role_policy)
        return builder.managed_policy_arn(
            join("", "arn:", AWS_PARTITION, ":iam::aws:", LAMBDA_BASIC_EXECUTION_POLICY)
        )

    def role_name(self, name: str) -> Self:
        self._role_name = name
        return self

    def managed_policy_arn(self, arn: Any) -> Self:  # noqa: ANN401
        self._managed_policy_arns.append(arn)
        return self

    def add_policy(self, policy: Policy) -> Self:
        self._policies.append(policy)
        return self

    def add_permission(self, permission: Policy) -> Self:
        return self.add_policy(permission)

    def build(self) -> Role:
        names = [policy.policy_name for policy in self._policies]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Role '{self.resource_id}' has more than one policy named: "
                f"{', '.join(duplicates)}"
            )

        return Role.create(
            self.resource_id,
            {
                "RoleName": self._role_name,
                "AssumeRolePolicyDocument": self.assume_role_policy.to_properties(),
                "ManagedPolicyArns": list(self._managed_policy_arns) or None,
                "Policies": [policy.to_properties() for policy in self._policies] or None,
            },
        )
