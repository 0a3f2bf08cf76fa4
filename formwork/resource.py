from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Self, final

from formwork.ids import generate_id
from formwork.intrinsic import NO_RENAME, Join, Reference, Rename, iter_references, render

if TYPE_CHECKING:
    from formwork.stack.assets import Asset


def freeze(value: Any) -> Any:  # noqa: ANN401
    """Read-only copy of a property value: mappings become proxies, lists become tuples."""
    if isinstance(value, Join):
        return Join(value.delimiter, tuple(freeze(part) for part in value.parts))
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, Sequence) and not isinstance(value, str | bytes):
        return tuple(freeze(item) for item in value)
    return value


@dataclass(frozen=True, kw_only=True)
class Resource:
    """A single declared infrastructure unit.

    ``resource_id`` is chosen by the user and stays the same across deploys.
    ``synthesized_id`` is generated once, when the resource is built, and is the key of the
    resource in the template.
    ``properties`` are frozen all the way down, so a built resource can't be changed through
    nested lists or mappings either. They don't take part in hashing.
    """

    TYPE: ClassVar[str]
    KIND: ClassVar[str]

    resource_id: str
    synthesized_id: str
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)
    asset: "Asset | None" = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", freeze(self.properties))

    @classmethod
    def create(
        cls,
        resource_id: str,
        properties: Mapping[str, Any],
        asset: "Asset | None" = None,
        **fields: Any,  # noqa: ANN401
    ) -> Self:
        return cls(
            resource_id=resource_id,
            synthesized_id=generate_id(cls.KIND),
            properties=properties,
            asset=asset,
            **fields,
        )

    @property
    def resource_type(self) -> str:
        return self.TYPE

    def ref(self) -> Reference:
        return Reference(self.synthesized_id)

    def arn(self) -> Reference:
        return Reference(self.synthesized_id, "Arn")

    def get_att(self, attribute: str) -> Reference:
        return Reference(self.synthesized_id, attribute)

    def referenced_ids(self) -> list[str]:
        """Synthesized ids this resource points at, in property order, without duplicates."""
        return list(dict.fromkeys(r.synthesized_id for r in iter_references(self.properties)))

    def required_services(self) -> dict[str, tuple[str, ...]]:
        """Services this resource needs access to, keyed by the synthesized id of the role
        that has to grant them."""
        return {}

    def granted_services(self) -> frozenset[str]:
        return frozenset()

    def to_template(self, rename: Rename = NO_RENAME) -> dict[str, Any]:
        return {"Type": self.resource_type, "Properties": render(self.properties, rename)}


@final
@dataclass(frozen=True, kw_only=True)
class RawResource(Resource):
    """A resource read back from a JSON template. Its properties are kept as parsed."""

    TYPE: ClassVar[str] = ""
    KIND: ClassVar[str] = ""

    raw_type: str

    @property
    def resource_type(self) -> str:
        return self.raw_type
