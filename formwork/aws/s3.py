from dataclasses import dataclass
from typing import Self, final

from formwork.intrinsic import Reference
from formwork.resource import Resource


@final
@dataclass(frozen=True, kw_only=True)
class Bucket(Resource):
    TYPE = "AWS::S3::Bucket"
    KIND = "S3Bucket"

    def bucket_name(self) -> Reference:
        return self.ref()


@final
class BucketBuilder:
    def __init__(self, resource_id: str):
        self._resource_id = resource_id
        self._name: str | None = None
        self._versioning = False

    def bucket_name(self, name: str) -> Self:
        self._name = name
        return self

    def versioning(self, enabled: bool = True) -> Self:  # noqa: FBT001, FBT002
        self._versioning = enabled
        return self

    def build(self) -> Bucket:
        return Bucket.create(
            self._resource_id,
            {
                "BucketName": self._name,
                "VersioningConfiguration": {"Status": "Enabled"} if self._versioning else None,
            },
        )
