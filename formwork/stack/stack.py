import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, final

from formwork.exceptions import DiffError
from formwork.intrinsic import NO_RENAME, Rename
from formwork.resource import RawResource, Resource
from formwork.stack.assets import Asset, collect_assets
from formwork.stack.diff import StackDiff, diff

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class Stack:
    """A finalized, integrity-checked collection of resources.

    Created by ``StackBuilder.finalize`` (or ``parse_template`` for a deployed template) and
    never modified afterwards, so it can be shared freely.

    Serialized as a CloudFormation template with:
    - ``Resources``: resources keyed by their synthesized id
    - ``Metadata``: resource id -> synthesized id, used to recognize resources across deploys
    Tags are not part of the template, they are passed to CloudFormation on deploy.
    A stack hashes by its tags only, resources still take part in equality.
    """

    resources: Mapping[str, Resource] = field(default_factory=dict, hash=False)
    tags: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "resources", MappingProxyType(dict(self.resources)))

    def __len__(self) -> int:
        return len(self.resources)

    def __contains__(self, synthesized_id: object) -> bool:
        return synthesized_id in self.resources

    @property
    def metadata(self) -> dict[str, str]:
        return {r.resource_id: r.synthesized_id for r in self.resources.values()}

    def get_assets(self) -> list[Asset]:
        return collect_assets(self)

    def to_template(self, rename: Rename = NO_RENAME) -> dict[str, Any]:
        return {
            "Resources": {
                rename.get(synthesized_id, synthesized_id): resource.to_template(rename)
                for synthesized_id, resource in self.resources.items()
            },
            "Metadata": {
                resource_id: rename.get(synthesized_id, synthesized_id)
                for resource_id, synthesized_id in self.metadata.items()
            },
        }

    def synth(self) -> str:
        """Render the stack as a CloudFormation template JSON string."""
        return json.dumps(self.to_template())

    def ids_for_existing(self, existing: "Stack") -> dict[str, str]:
        """Map synthesized ids of this stack to the ids the deployed stack uses for the same
        resource ids, so CloudFormation updates those resources instead of replacing them.

        Only resources of the same type keep their id.
        """
        existing_ids = existing.metadata
        rename = {}
        for resource in self.resources.values():
            existing_id = existing_ids.get(resource.resource_id)
            if existing_id is None or existing_id == resource.synthesized_id:
                continue
            if existing.resources[existing_id].resource_type != resource.resource_type:
                logger.debug(
                    "Resource '%s' changed type from %s to %s, it will be replaced",
                    resource.resource_id,
                    existing.resources[existing_id].resource_type,
                    resource.resource_type,
                )
                continue
            rename[resource.synthesized_id] = existing_id
        return rename

    def synth_for_existing(self, existing_template: str) -> str:
        """Render the stack, reusing the ids of an already deployed template.

        Raises:
            DiffError: If the deployed template cannot be read.
        """
        existing = parse_template(existing_template)
        rename = self.ids_for_existing(existing)
        logger.debug("Reusing %d existing ids", len(rename))
        return json.dumps(self.to_template(rename))

    def get_diff(self, existing_template: str) -> StackDiff:
        return diff(self, parse_template(existing_template))


def _parse_metadata(metadata: Any, resources: Mapping[str, Any]) -> dict[str, str]:  # noqa: ANN401
    if not isinstance(metadata, Mapping):
        raise DiffError("Template 'Metadata' must be an object")

    ids_by_synthesized_id = {}
    for resource_id, synthesized_id in metadata.items():
        if not isinstance(synthesized_id, str):
            # CloudFormation's own metadata keys (e.g. AWS::CloudFormation::Interface)
            if resource_id.startswith("AWS::"):
                continue
            raise DiffError(f"Metadata entry '{resource_id}' must map to a resource id")
        if synthesized_id not in resources:
            raise DiffError(
                f"Metadata entry '{resource_id}' points to '{synthesized_id}', "
                "which is not in 'Resources'"
            )
        if synthesized_id in ids_by_synthesized_id:
            raise DiffError(
                f"Metadata entries '{ids_by_synthesized_id[synthesized_id]}' and "
                f"'{resource_id}' both point to '{synthesized_id}'"
            )
        ids_by_synthesized_id[synthesized_id] = resource_id
    return ids_by_synthesized_id


def parse_template(template: str | Mapping[str, Any]) -> Stack:
    """Read a previously synthesized (usually deployed) JSON template back into a Stack.

    Resources without a metadata entry use their synthesized id as resource id. Every
    resource id must end up unique.

    Raises:
        DiffError: If the template is not valid JSON or not shaped like a template.
    """
    if isinstance(template, str):
        try:
            template = json.loads(template)
        except json.JSONDecodeError as e:
            raise DiffError(f"Template is not valid JSON: {e}") from e

    if not isinstance(template, Mapping):
        raise DiffError("Template must be a JSON object")

    raw_resources = template.get("Resources")
    if not isinstance(raw_resources, Mapping):
        raise DiffError("Template has no 'Resources' object")

    resource_ids = _parse_metadata(template.get("Metadata", {}), raw_resources)

    resources = {}
    used_ids = set(resource_ids.values())
    for synthesized_id, entry in raw_resources.items():
        if not isinstance(entry, Mapping) or not isinstance(entry.get("Type"), str):
            raise DiffError(f"Resource '{synthesized_id}' has no 'Type'")
        resource_id = resource_ids.get(synthesized_id)
        if resource_id is None:
            if synthesized_id in used_ids:
                raise DiffError(
                    f"Resource '{synthesized_id}' has no metadata entry and its id is already "
                    "used by another resource"
                )
            resource_id = synthesized_id
        resources[synthesized_id] = RawResource(
            resource_id=resource_id,
            synthesized_id=synthesized_id,
            properties=entry.get("Properties") or {},
            raw_type=entry["Type"],
        )
    return Stack(resources)
