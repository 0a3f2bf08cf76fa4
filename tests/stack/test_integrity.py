import pytest

from formwork.aws.dynamodb import Key, TableBuilder
from formwork.aws.function import FunctionBuilder, Inline
from formwork.aws.iam import Permission, Role, RoleBuilder
from formwork.exceptions import DuplicateIdError, MissingPermissionsError, MissingReferenceError
from formwork.intrinsic import Reference
from formwork.resource import RawResource
from formwork.stack.integrity import (
    check_integrity,
    find_missing_permissions,
    find_missing_references,
)


def _function(resource_id: str, role: Role, services: list[str]):
    return (
        FunctionBuilder(resource_id, "arm64", memory=128, timeout=3)
        .role(role)
        .code(Inline("def handler(event, context): ..."))
        .handler("index.handler")
        .runtime("python3.13")
        .uses_services(services)
        .build()
    )


def _resource(resource_id: str, synthesized_id: str, **properties) -> RawResource:
    return RawResource(
        resource_id=resource_id,
        synthesized_id=synthesized_id,
        properties=properties,
        raw_type="AWS::Test::Thing",
    )


def test_valid_references_pass():
    target = _resource("target", "Target1")
    source = _resource("source", "Source1", Target=Reference("Target1", "Arn"))

    check_integrity([source, target])


def test_missing_reference_reports_first_offender_in_registration_order():
    first = _resource("first", "First1", Ref=Reference("Missing1"))
    second = _resource("second", "Second1", Ref=Reference("Missing2"))

    with pytest.raises(MissingReferenceError) as exc_info:
        check_integrity([first, second])

    assert exc_info.value.synthesized_id == "Missing1"
    assert exc_info.value.referenced_by == "first"
    assert exc_info.value.kind == "Missing"


def test_removing_any_referenced_resource_names_exactly_that_resource():
    role = Role.create("role", {})
    table = _resource("table", "DynamoDBTable7")
    function = _resource(
        "fn", "LambdaFunction1", Role=role.arn(), Env={"TABLE": table.ref()}
    )
    resources = [role, table, function]

    for removed in (role, table):
        remaining = [r for r in resources if r is not removed]
        with pytest.raises(MissingReferenceError) as exc_info:
            check_integrity(remaining)
        assert exc_info.value.synthesized_id == removed.synthesized_id


def test_find_missing_references_lists_all_pairs():
    source = _resource("source", "Source1", A=Reference("X1"), B=[Reference("Y2")])

    assert find_missing_references([source]) == [("source", "X1"), ("source", "Y2")]


def test_duplicate_synthesized_ids_are_rejected_before_references():
    first = _resource("first", "Same1", Ref=Reference("Missing1"))
    second = _resource("second", "Same1")

    with pytest.raises(DuplicateIdError) as exc_info:
        check_integrity([first, second])

    assert exc_info.value.duplicate_id == "Same1"
    assert exc_info.value.id_type == "synthesized id"


def test_duplicate_resource_ids_are_rejected():
    first = _resource("orders", "Table1")
    second = _resource("orders", "Table2")

    with pytest.raises(DuplicateIdError) as exc_info:
        check_integrity([first, second])

    assert exc_info.value.duplicate_id == "orders"
    assert exc_info.value.id_type == "resource id"


def test_role_allowing_every_used_service_passes():
    table = TableBuilder("orders", Key("pk")).pay_per_request_billing().build()
    role = RoleBuilder.for_lambda("role").add_permission(Permission.dynamodb_read(table)).build()
    function = _function("fn", role, ["dynamodb"])

    check_integrity([table, role, function])


def test_role_missing_a_used_service_is_rejected():
    table = TableBuilder("orders", Key("pk")).pay_per_request_billing().build()
    role = RoleBuilder.for_lambda("role").add_permission(Permission.dynamodb_read(table)).build()
    function = _function("fn", role, ["dynamodb", "sqs"])

    with pytest.raises(MissingPermissionsError, match="role: sqs") as exc_info:
        check_integrity([table, role, function])

    assert exc_info.value.roles == ["role: sqs"]


def test_missing_services_of_a_shared_role_are_merged():
    role = RoleBuilder.for_lambda("shared").build()
    first = _function("first", role, ["sqs"])
    second = _function("second", role, ["sns", "sqs"])

    assert find_missing_permissions([role, first, second]) == ["shared: sqs,sns"]


def test_unregistered_role_is_reported_as_missing_reference_first():
    role = RoleBuilder.for_lambda("role").build()
    function = _function("fn", role, ["dynamodb"])

    with pytest.raises(MissingReferenceError):
        check_integrity([function])
