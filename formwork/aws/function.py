import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Self, final

from formwork.aws.cloudwatch import LogGroup
from formwork.aws.iam import Role
from formwork.aws.sqs import Queue
from formwork.aws.types import Architecture, Runtime
from formwork.exceptions import ConfigurationError
from formwork.intrinsic import AWS_ACCOUNT_ID
from formwork.resource import Resource
from formwork.stack.assets import Asset

MIN_MAXIMUM_CONCURRENCY = 2
MAX_MAXIMUM_CONCURRENCY = 1000


@final
@dataclass(frozen=True, kw_only=True)
class Function(Resource):
    TYPE = "AWS::Lambda::Function"
    KIND = "LambdaFunction"

    used_services: tuple[str, ...] = ()

    def required_services(self) -> dict[str, tuple[str, ...]]:
        if not self.used_services:
            return {}
        return {self.properties["Role"].synthesized_id: self.used_services}


@final
@dataclass(frozen=True, kw_only=True)
class LambdaPermission(Resource):
    TYPE = "AWS::Lambda::Permission"
    KIND = "LambdaPermission"


@final
@dataclass(frozen=True, kw_only=True)
class EventSourceMapping(Resource):
    TYPE = "AWS::Lambda::EventSourceMapping"
    KIND = "EventSourceMapping"


def _archive_hash(path: str) -> str:
    try:
        content = Path(path).read_bytes()
    except OSError:
        # Not built yet, the upload reports it. Fall back to a key derived from the path.
        content = path.encode()
    return hashlib.sha256(content).hexdigest()


@final
@dataclass(frozen=True)
class Zip:
    """Deployment package: a local zip archive uploaded to ``bucket`` before deploying."""

    bucket: str
    path: str

    def asset(self) -> Asset:
        key = f"{_archive_hash(self.path)}.zip"
        return Asset(path=self.path, s3_bucket=self.bucket, s3_key=key)

    def to_properties(self) -> dict[str, Any]:
        return _s3_location(self.asset())


def _s3_location(asset: Asset) -> dict[str, Any]:
    return {"S3Bucket": asset.s3_bucket, "S3Key": asset.s3_key}


@final
@dataclass(frozen=True)
class Inline:
    source: str

    def to_properties(self) -> dict[str, Any]:
        return {"ZipFile": self.source}


@final
@dataclass(frozen=True)
class Image:
    uri: str

    def to_properties(self) -> dict[str, Any]:
        return {"ImageUri": self.uri}


type Code = Zip | Inline | Image


@dataclass(kw_only=True)
class _FunctionSettings:
    resource_id: str
    architecture: Architecture
    memory: int
    timeout: int
    role: Role | None = None
    function_name: str | None = None
    environment: dict[str, Any] | None = None
    reserved_concurrent_executions: int | None = None
    log_group: LogGroup | None = None
    used_services: tuple[str, ...] = ()


class _FunctionOptions:
    """Settings available in every function builder state."""

    def __init__(self, settings: _FunctionSettings):
        self._settings = settings

    def role(self, role: Role) -> Self:
        self._settings.role = role
        return self

    def function_name(self, name: str) -> Self:
        self._settings.function_name = name
        return self

    def env_var(self, key: str, value: Any) -> Self:  # noqa: ANN401
        self._settings.environment = {**(self._settings.environment or {}), key: value}
        return self

    def reserved_concurrent_executions(self, executions: int) -> Self:
        self._settings.reserved_concurrent_executions = executions
        return self

    def log_group(self, log_group: LogGroup) -> Self:
        self._settings.log_group = log_group
        return self

    def uses_services(self, services: Iterable[str]) -> Self:
        """Services the code talks to, e.g. ``["dynamodb", "sqs"]``. Finalizing the stack
        fails unless the function's role allows at least one action of each."""
        self._settings.used_services = tuple(dict.fromkeys(services))
        return self

    def _build(self, code: Code, extra: dict[str, Any]) -> Function:
        settings = self._settings
        if settings.role is None:
            raise ConfigurationError(f"Function '{settings.resource_id}' requires a role")

        asset = code.asset() if isinstance(code, Zip) else None
        return Function.create(
            settings.resource_id,
            {
                "FunctionName": settings.function_name,
                "Architectures": [settings.architecture],
                "MemorySize": settings.memory,
                "Timeout": settings.timeout,
                "Role": settings.role.arn(),
                "Code": _s3_location(asset) if asset else code.to_properties(),
                "Environment": (
                    {"Variables": settings.environment} if settings.environment else None
                ),
                "ReservedConcurrentExecutions": settings.reserved_concurrent_executions,
                "LoggingConfig": (
                    {"LogGroup": settings.log_group.ref()} if settings.log_group else None
                ),
                **extra,
            },
            asset=asset,
            used_services=settings.used_services,
        )


@final
class FunctionBuilder(_FunctionOptions):
    """Start state of a Lambda function. Choosing the code decides what else is needed.

    ``Zip`` and ``Inline`` code need a handler and a runtime, ``Image`` code brings both
    with the container image and accepts neither.

    Example:
        role = RoleBuilder.for_lambda("ordersFunctionRole").build()
        function = (
            FunctionBuilder("ordersFunction", "arm64", memory=512, timeout=30)
            .role(role)
            .code(Zip("my-artifacts", "dist/orders.zip"))
            .handler("orders.handler")
            .runtime("python3.13")
            .build()
        )
    """

    def __init__(self, resource_id: str, architecture: Architecture, memory: int, timeout: int):
        super().__init__(
            _FunctionSettings(
                resource_id=resource_id, architecture=architecture, memory=memory, timeout=timeout
            )
        )

    def code(self, code: Code) -> "PackagedFunctionBuilder | ImageFunctionBuilder":
        if isinstance(code, Image):
            return ImageFunctionBuilder(replace(self._settings), code)
        return PackagedFunctionBuilder(replace(self._settings), code)


@final
class PackagedFunctionBuilder(_FunctionOptions):
    """Function whose code is a zip archive or inline source."""

    def __init__(self, settings: _FunctionSettings, code: Zip | Inline):
        super().__init__(settings)
        self._code = code
        self._handler: str | None = None
        self._runtime: Runtime | None = None

    def handler(self, handler: str) -> Self:
        self._handler = handler
        return self

    def runtime(self, runtime: Runtime) -> Self:
        self._runtime = runtime
        return self

    def build(self) -> Function:
        if self._handler is None:
            raise ConfigurationError(
                f"Function '{self._settings.resource_id}' requires a handler for zip and "
                "inline code"
            )
        if self._runtime is None:
            raise ConfigurationError(
                f"Function '{self._settings.resource_id}' requires a runtime for zip and "
                "inline code"
            )
        return self._build(
            self._code,
            {"PackageType": "Zip", "Handler": self._handler, "Runtime": self._runtime},
        )


@final
class ImageFunctionBuilder(_FunctionOptions):
    """Function packaged as a container image. Handler and runtime come from the image."""

    def __init__(self, settings: _FunctionSettings, code: Image):
        super().__init__(settings)
        self._code = code

    def build(self) -> Function:
        return self._build(self._code, {"PackageType": "Image"})


@final
class PermissionBuilder:
    """Resource policy statement allowing a principal to invoke a function."""

    def __init__(
        self, resource_id: str, action: str, function_name: Any, principal: str  # noqa: ANN401
    ):
        self._resource_id = resource_id
        self._action = action
        self._function_name = function_name
        self._principal = principal
        self._source_arn: Any = None
        self._source_account: Any = None

    def source_arn(self, arn: Any) -> Self:  # noqa: ANN401
        self._source_arn = arn
        return self

    def current_account(self) -> Self:
        self._source_account = AWS_ACCOUNT_ID
        return self

    def build(self) -> LambdaPermission:
        return LambdaPermission.create(
            self._resource_id,
            {
                "Action": self._action,
                "FunctionName": self._function_name,
                "Principal": self._principal,
                "SourceArn": self._source_arn,
                "SourceAccount": self._source_account,
            },
        )


@final
class EventSourceMappingBuilder:
    """Lets a function poll an SQS queue."""

    def __init__(self, resource_id: str, queue: Queue, function: Function):
        self._resource_id = resource_id
        self._queue = queue
        self._function = function
        self._batch_size: int | None = None
        self._maximum_concurrency: int | None = None
        self._enabled: bool | None = None

    def batch_size(self, size: int) -> Self:
        self._batch_size = size
        return self

    def maximum_concurrency(self, concurrency: int) -> Self:
        self._maximum_concurrency = concurrency
        return self

    def enabled(self, enabled: bool) -> Self:  # noqa: FBT001
        self._enabled = enabled
        return self

    def build(self) -> EventSourceMapping:
        concurrency = self._maximum_concurrency
        if concurrency is not None and not (
            MIN_MAXIMUM_CONCURRENCY <= concurrency <= MAX_MAXIMUM_CONCURRENCY
        ):
            raise ConfigurationError(
                f"maximum concurrency must be between {MIN_MAXIMUM_CONCURRENCY} and "
                f"{MAX_MAXIMUM_CONCURRENCY}, got {concurrency}"
            )

        return EventSourceMapping.create(
            self._resource_id,
            {
                "EventSourceArn": self._queue.arn(),
                "FunctionName": self._function.ref(),
                "BatchSize": self._batch_size,
                "Enabled": self._enabled,
                "ScalingConfig": (
                    {"MaximumConcurrency": concurrency} if concurrency is not None else None
                ),
            },
        )
