import pytest

from formwork.aws.iam import RoleBuilder
from formwork.exceptions import DuplicateIdError, IntegrityError, MissingReferenceError
from formwork.stack.builder import StackBuilder
from formwork.stack.stack import Stack


def test_resources_without_references_always_finalize(table):
    queue_role = RoleBuilder.for_lambda("other").build()

    stack = StackBuilder().register(table).register(queue_role).finalize()

    assert isinstance(stack, Stack)
    assert len(stack) == 2


def test_empty_builder_finalizes_to_empty_stack():
    stack = StackBuilder().finalize()

    assert len(stack) == 0
    assert stack.to_template() == {"Resources": {}, "Metadata": {}}


def test_table_role_and_function_give_three_entries(table, role, function):
    stack = StackBuilder().register(table).register(role).register(function).finalize()

    assert len(stack) == 3
    assert set(stack.resources) == {
        table.synthesized_id,
        role.synthesized_id,
        function.synthesized_id,
    }


def test_function_with_unregistered_role_fails_naming_the_role(table, role, function):
    stack_builder = StackBuilder().register(table).register(function)

    with pytest.raises(MissingReferenceError) as exc_info:
        stack_builder.finalize()

    error = exc_info.value
    assert error.synthesized_id == role.synthesized_id
    assert error.synthesized_id.startswith("Role")
    assert error.kind == "Role"
    assert error.referenced_by == "fn"
    assert "Did you forget to register the Role?" in str(error)
    assert isinstance(error, IntegrityError)


@pytest.mark.parametrize("reverse", [False, True])
def test_registration_order_does_not_matter(role, function, reverse):
    resources = [role, function]
    if reverse:
        resources.reverse()

    stack = StackBuilder().register_many(resources).finalize()

    assert len(stack) == 2


def test_registration_order_is_kept_in_stack(table, role, function):
    stack = StackBuilder().register_many([function, table, role]).finalize()

    assert list(stack.resources) == [
        function.synthesized_id,
        table.synthesized_id,
        role.synthesized_id,
    ]


def test_register_returns_builder_for_chaining(table):
    stack_builder = StackBuilder()

    assert stack_builder.register(table) is stack_builder
    assert stack_builder.register_many([]) is stack_builder
    assert stack_builder.add_tag("team", "orders") is stack_builder
    assert len(stack_builder) == 1


def test_registering_same_resource_twice_is_rejected(table):
    with pytest.raises(DuplicateIdError, match="synthesized id"):
        StackBuilder().register(table).register(table).finalize()


def test_failed_finalize_keeps_builder_usable(role, function):
    stack_builder = StackBuilder().register(function)
    with pytest.raises(MissingReferenceError):
        stack_builder.finalize()

    stack = stack_builder.register(role).finalize()

    assert len(stack) == 2


def test_tags_are_carried_on_the_stack(table):
    stack = (
        StackBuilder().register(table).add_tag("team", "orders").add_tag("env", "prod").finalize()
    )

    assert stack.tags == (("team", "orders"), ("env", "prod"))
