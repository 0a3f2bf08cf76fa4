from dataclasses import dataclass
from typing import TYPE_CHECKING, final

if TYPE_CHECKING:
    from formwork.stack.stack import Stack


@final
@dataclass(frozen=True)
class Asset:
    """A local build artifact that has to be uploaded before the stack is deployed."""

    path: str
    s3_bucket: str
    s3_key: str

    def __str__(self) -> str:
        return f"{self.path} -> s3://{self.s3_bucket}/{self.s3_key}"


def collect_assets(stack: "Stack") -> list[Asset]:
    """Collect the assets of all resources once, in registration order.

    Resources sharing an archive share one Asset. Whether the local path exists is left to
    the uploader.
    """
    return list(dict.fromkeys(r.asset for r in stack.resources.values() if r.asset is not None))
