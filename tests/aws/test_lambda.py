import hashlib
from unittest.mock import patch

import pytest

from formwork.aws.cloudwatch import LogGroupBuilder
from formwork.aws.function import (
    EventSourceMappingBuilder,
    FunctionBuilder,
    Image,
    Inline,
    PermissionBuilder,
    Zip,
    _archive_hash,
)
from formwork.aws.sqs import QueueBuilder
from formwork.exceptions import ConfigurationError


@pytest.fixture
def start() -> FunctionBuilder:
    return FunctionBuilder("fn", "x86_64", memory=512, timeout=30)


def test_inline_function(start, role):
    function = (
        start.role(role)
        .function_name("my-function")
        .env_var("TABLE", "orders")
        .reserved_concurrent_executions(2)
        .code(Inline("code"))
        .handler("index.handler")
        .runtime("python3.13")
        .build()
    )

    assert function.synthesized_id.startswith("LambdaFunction")
    assert function.asset is None
    assert function.to_template() == {
        "Type": "AWS::Lambda::Function",
        "Properties": {
            "FunctionName": "my-function",
            "Architectures": ["x86_64"],
            "MemorySize": 512,
            "Timeout": 30,
            "Role": {"Fn::GetAtt": [role.synthesized_id, "Arn"]},
            "Code": {"ZipFile": "code"},
            "Environment": {"Variables": {"TABLE": "orders"}},
            "ReservedConcurrentExecutions": 2,
            "PackageType": "Zip",
            "Handler": "index.handler",
            "Runtime": "python3.13",
        },
    }


def test_zip_function_uses_content_hash_as_key(start, role, tmp_path):
    archive = tmp_path / "app.zip"
    archive.write_bytes(b"zip content")
    expected_key = f"{hashlib.sha256(b'zip content').hexdigest()}.zip"

    function = (
        start.code(Zip("artifacts", str(archive)))
        .role(role)
        .handler("app.handler")
        .runtime("python3.12")
        .build()
    )

    assert function.properties["Code"] == {"S3Bucket": "artifacts", "S3Key": expected_key}
    assert function.asset.path == str(archive)
    assert function.asset.s3_key == expected_key


def test_zip_archive_is_hashed_once_per_build(start, role, tmp_path):
    archive = tmp_path / "app.zip"
    archive.write_bytes(b"zip content")
    builder = (
        start.code(Zip("artifacts", str(archive)))
        .role(role)
        .handler("app.handler")
        .runtime("python3.12")
    )

    with patch("formwork.aws.function._archive_hash", wraps=_archive_hash) as archive_hash:
        function = builder.build()

    archive_hash.assert_called_once_with(str(archive))
    assert function.properties["Code"]["S3Key"] == function.asset.s3_key


def test_used_services_are_required_from_the_role(start, role):
    function = (
        start.role(role)
        .code(Inline("code"))
        .handler("index.handler")
        .runtime("python3.13")
        .uses_services(["dynamodb", "sqs", "dynamodb"])
        .build()
    )

    assert function.used_services == ("dynamodb", "sqs")
    assert function.required_services() == {role.synthesized_id: ("dynamodb", "sqs")}
    assert "used_services" not in function.to_template()["Properties"]


def test_function_without_used_services_requires_nothing(function):
    assert function.required_services() == {}


def test_identical_archives_share_a_key(tmp_path):
    first = tmp_path / "first.zip"
    second = tmp_path / "second.zip"
    first.write_bytes(b"same")
    second.write_bytes(b"same")

    assert Zip("b", str(first)).asset().s3_key == Zip("b", str(second)).asset().s3_key


def test_unreadable_archive_key_falls_back_to_path():
    asset = Zip("b", "missing.zip").asset()

    assert asset.s3_key == f"{hashlib.sha256(b'missing.zip').hexdigest()}.zip"


def test_image_function_has_no_handler_or_runtime(start, role):
    builder = start.role(role).code(Image("123.dkr.ecr.eu-west-1.amazonaws.com/app:latest"))

    with pytest.raises(AttributeError):
        builder.handler("index.handler")
    with pytest.raises(AttributeError):
        builder.runtime("python3.13")

    properties = builder.build().to_template()["Properties"]
    assert properties["PackageType"] == "Image"
    assert properties["Code"] == {"ImageUri": "123.dkr.ecr.eu-west-1.amazonaws.com/app:latest"}
    assert "Handler" not in properties


@pytest.mark.parametrize(
    ("handler", "runtime", "message"),
    [
        (None, "python3.13", "requires a handler"),
        ("index.handler", None, "requires a runtime"),
    ],
)
def test_packaged_function_requires_handler_and_runtime(start, role, handler, runtime, message):
    builder = start.role(role).code(Inline("code"))
    if handler:
        builder.handler(handler)
    if runtime:
        builder.runtime(runtime)

    with pytest.raises(ConfigurationError, match=message):
        builder.build()


def test_function_requires_role(start):
    builder = start.code(Inline("code")).handler("index.handler").runtime("python3.13")

    with pytest.raises(ConfigurationError, match="requires a role"):
        builder.build()


def test_start_state_cannot_build(start):
    with pytest.raises(AttributeError):
        start.build()


def test_log_group_is_referenced(start, role):
    log_group = LogGroupBuilder("fnLogs").retention_in_days(7).build()

    function = (
        start.role(role)
        .log_group(log_group)
        .code(Inline("code"))
        .handler("index.handler")
        .runtime("python3.13")
        .build()
    )

    assert function.properties["LoggingConfig"]["LogGroup"] == log_group.ref()
    assert function.referenced_ids() == [role.synthesized_id, log_group.synthesized_id]


def test_permission_builder(function):
    permission = (
        PermissionBuilder("invoke", "lambda:InvokeFunction", function.arn(), "s3.amazonaws.com")
        .source_arn("arn:aws:s3:::bucket")
        .current_account()
        .build()
    )

    assert permission.synthesized_id.startswith("LambdaPermission")
    assert permission.to_template()["Properties"] == {
        "Action": "lambda:InvokeFunction",
        "FunctionName": {"Fn::GetAtt": [function.synthesized_id, "Arn"]},
        "Principal": "s3.amazonaws.com",
        "SourceArn": "arn:aws:s3:::bucket",
        "SourceAccount": {"Ref": "AWS::AccountId"},
    }


def test_event_source_mapping(function):
    queue = QueueBuilder("jobs").standard_queue().build()

    mapping = (
        EventSourceMappingBuilder("jobsMapping", queue, function)
        .batch_size(10)
        .maximum_concurrency(5)
        .build()
    )

    assert mapping.synthesized_id.startswith("EventSourceMapping")
    assert mapping.to_template()["Properties"] == {
        "EventSourceArn": {"Fn::GetAtt": [queue.synthesized_id, "Arn"]},
        "FunctionName": {"Ref": function.synthesized_id},
        "BatchSize": 10,
        "ScalingConfig": {"MaximumConcurrency": 5},
    }


@pytest.mark.parametrize("concurrency", [1, 1001])
def test_event_source_mapping_concurrency_range(function, concurrency):
    queue = QueueBuilder("jobs").standard_queue().build()
    builder = EventSourceMappingBuilder("m", queue, function).maximum_concurrency(concurrency)

    with pytest.raises(ConfigurationError, match="between 2 and 1000"):
        builder.build()
