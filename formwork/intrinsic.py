"""CloudFormation intrinsic values that can be embedded in resource properties.

A ``Reference`` points at another resource of the same stack by its synthesized id. It is
only handed out by the accessors of a built resource (``ref``, ``arn``, ``get_att``), so
builders can depend on other resources by identity without caring about construction order.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, final

type Rename = Mapping[str, str]

NO_RENAME: Rename = {}


@final
@dataclass(frozen=True)
class Reference:
    synthesized_id: str
    attribute: str | None = None

    def to_template(self, rename: Rename = NO_RENAME) -> dict[str, Any]:
        target = rename.get(self.synthesized_id, self.synthesized_id)
        if self.attribute is None:
            return {"Ref": target}
        return {"Fn::GetAtt": [target, self.attribute]}


@final
@dataclass(frozen=True)
class PseudoParameter:
    """A value CloudFormation resolves at deploy time, e.g. ``AWS::Region``."""

    name: str

    def to_template(self, rename: Rename = NO_RENAME) -> dict[str, str]:  # noqa: ARG002
        return {"Ref": self.name}


AWS_ACCOUNT_ID = PseudoParameter("AWS::AccountId")
AWS_PARTITION = PseudoParameter("AWS::Partition")
AWS_REGION = PseudoParameter("AWS::Region")


@final
@dataclass(frozen=True)
class Join:
    delimiter: str
    parts: tuple[Any, ...]

    def to_template(self, rename: Rename = NO_RENAME) -> dict[str, Any]:
        return {"Fn::Join": [self.delimiter, [render(part, rename) for part in self.parts]]}


def join(delimiter: str, *parts: Any) -> Join:  # noqa: ANN401
    return Join(delimiter, tuple(parts))


type Intrinsic = Reference | PseudoParameter | Join


def render(value: Any, rename: Rename = NO_RENAME) -> Any:  # noqa: ANN401
    """Turn a property value into plain JSON data, dropping ``None`` entries of mappings."""
    if isinstance(value, Reference | PseudoParameter | Join):
        return value.to_template(rename)
    if isinstance(value, Mapping):
        return {key: render(item, rename) for key, item in value.items() if item is not None}
    if isinstance(value, Sequence) and not isinstance(value, str | bytes):
        return [render(item, rename) for item in value]
    return value


def iter_references(value: Any) -> Iterator[Reference]:  # noqa: ANN401
    """Yield every Reference embedded in a property value, depth first, in document order."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, Join):
        for part in value.parts:
            yield from iter_references(part)
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, Sequence) and not isinstance(value, str | bytes):
        for item in value:
            yield from iter_references(item)
