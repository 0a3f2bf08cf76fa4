import logging
from collections.abc import Sequence

from formwork.exceptions import (
    DuplicateIdError,
    MissingPermissionsError,
    MissingReferenceError,
)
from formwork.ids import kind_hint
from formwork.resource import Resource

logger = logging.getLogger(__name__)


def _check_unique(ids: Sequence[str], id_type: str) -> None:
    seen = set()
    for id_ in ids:
        if id_ in seen:
            raise DuplicateIdError(id_, id_type)
        seen.add(id_)


def find_missing_references(resources: Sequence[Resource]) -> list[tuple[str, str]]:
    """Return (referencing resource id, missing synthesized id) pairs in registration order."""
    registered = {r.synthesized_id for r in resources}
    return [
        (resource.resource_id, referenced_id)
        for resource in resources
        for referenced_id in resource.referenced_ids()
        if referenced_id not in registered
    ]


def find_missing_permissions(resources: Sequence[Resource]) -> list[str]:
    """Return "role: service,service" entries for roles that don't allow a service a resource
    using them needs. References must already be checked, every role is registered."""
    by_synthesized_id = {r.synthesized_id: r for r in resources}
    required: dict[str, dict[str, None]] = {}
    for resource in resources:
        for role_id, services in resource.required_services().items():
            required.setdefault(role_id, {}).update(dict.fromkeys(services))

    missing = []
    for role_id, services in required.items():
        role = by_synthesized_id[role_id]
        granted = role.granted_services()
        lacking = [service for service in services if service not in granted]
        if lacking:
            missing.append(f"{role.resource_id}: {','.join(lacking)}")
    return missing


def check_integrity(resources: Sequence[Resource]) -> None:
    """Validate a set of resources before they are turned into a stack.

    Raises:
        DuplicateIdError: If two resources share a synthesized id or a resource id.
        MissingReferenceError: For the first reference (in registration order) to a
            resource that was not registered.
        MissingPermissionsError: If a role doesn't allow a service that a resource using it
            declared it needs.
    """
    _check_unique([r.synthesized_id for r in resources], "synthesized id")
    _check_unique([r.resource_id for r in resources], "resource id")

    missing = find_missing_references(resources)
    if missing:
        logger.debug("Missing references: %s", missing)
        referenced_by, synthesized_id = missing[0]
        raise MissingReferenceError(synthesized_id, referenced_by, kind_hint(synthesized_id))

    missing_permissions = find_missing_permissions(resources)
    if missing_permissions:
        raise MissingPermissionsError(missing_permissions)
