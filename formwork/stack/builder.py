import logging
from collections.abc import Iterable
from typing import Self

from formwork.resource import Resource
from formwork.stack.integrity import check_integrity
from formwork.stack.stack import Stack

logger = logging.getLogger(__name__)


class StackBuilder:
    """Collects resources and turns them into a Stack.

    Registration order does not matter and registering never fails. All checks happen in
    ``finalize``, which either returns a complete Stack or raises, never a partial one.

    Example:
        stack_builder = StackBuilder()
        role = RoleBuilder.for_lambda("fnRole").build()
        function = (
            FunctionBuilder("fn", "arm64", memory=512, timeout=30)
            .role(role)
            .code(Inline("def handler(event, context): ..."))
            .handler("index.handler")
            .runtime("python3.13")
            .build()
        )
        stack = stack_builder.register_many([function, role]).finalize()
    """

    def __init__(self) -> None:
        self._resources: list[Resource] = []
        self._tags: list[tuple[str, str]] = []

    def __len__(self) -> int:
        return len(self._resources)

    def register(self, resource: Resource) -> Self:
        self._resources.append(resource)
        return self

    def register_many(self, resources: Iterable[Resource]) -> Self:
        self._resources.extend(resources)
        return self

    def add_tag(self, key: str, value: str) -> Self:
        """Add a tag CloudFormation propagates to all resources that support tags."""
        self._tags.append((key, value))
        return self

    def finalize(self) -> Stack:
        """Check the registered resources and close them into an immutable Stack.

        Raises:
            DuplicateIdError: If a resource id or synthesized id is registered twice.
            MissingReferenceError: If a resource references an unregistered resource.
            MissingPermissionsError: If a role lacks a service a function using it needs.
        """
        logger.debug("Finalizing stack with %d resources", len(self._resources))
        check_integrity(self._resources)
        return Stack(
            resources={r.synthesized_id: r for r in self._resources},
            tags=tuple(self._tags),
        )
