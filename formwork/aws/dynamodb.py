from dataclasses import dataclass, replace
from typing import Any, Self, final

from formwork.aws.types import AttributeType
from formwork.exceptions import ConfigurationError
from formwork.intrinsic import Reference
from formwork.resource import Resource


@final
@dataclass(frozen=True, kw_only=True)
class Table(Resource):
    TYPE = "AWS::DynamoDB::Table"
    KIND = "DynamoDBTable"

    def stream_arn(self) -> Reference:
        return self.get_att("StreamArn")


@final
@dataclass(frozen=True)
class Key:
    name: str
    attribute_type: AttributeType = "S"


def _as_key(key: Key | str) -> Key:
    return key if isinstance(key, Key) else Key(key)


def _require_positive(name: str, value: int | None) -> None:
    if value is not None and value <= 0:
        raise ConfigurationError(f"{name} must be a positive number, got {value}")


@dataclass(kw_only=True)
class _TableSettings:
    resource_id: str
    partition_key: Key
    sort_key: Key | None = None
    table_name: str | None = None


class _TableOptions:
    """Settings shared by every table builder state."""

    def __init__(self, settings: _TableSettings):
        self._settings = settings

    def sort_key(self, key: Key | str) -> Self:
        self._settings.sort_key = _as_key(key)
        return self

    def table_name(self, name: str) -> Self:
        self._settings.table_name = name
        return self

    def _key_properties(self) -> dict[str, Any]:
        keys = [(self._settings.partition_key, "HASH")]
        if self._settings.sort_key is not None:
            keys.append((self._settings.sort_key, "RANGE"))
        return {
            "TableName": self._settings.table_name,
            "KeySchema": [{"AttributeName": key.name, "KeyType": kind} for key, kind in keys],
            "AttributeDefinitions": [
                {"AttributeName": key.name, "AttributeType": key.attribute_type}
                for key, _ in keys
            ],
        }


@final
class TableBuilder(_TableOptions):
    """Start state of a DynamoDB table. A billing mode has to be chosen before building.

    Example:
        table = (
            TableBuilder("orders", Key("orderId"))
            .provisioned_billing()
            .read_capacity(5)
            .write_capacity(5)
            .build()
        )
    """

    def __init__(self, resource_id: str, partition_key: Key | str):
        super().__init__(
            _TableSettings(resource_id=resource_id, partition_key=_as_key(partition_key))
        )

    def pay_per_request_billing(self) -> "PayPerRequestTableBuilder":
        return PayPerRequestTableBuilder(replace(self._settings))

    def provisioned_billing(self) -> "ProvisionedTableBuilder":
        return ProvisionedTableBuilder(replace(self._settings))


@final
class PayPerRequestTableBuilder(_TableOptions):
    """On-demand billing. Capacity ceilings are optional, fixed capacities do not exist here."""

    def __init__(self, settings: _TableSettings):
        super().__init__(settings)
        self._max_read_capacity: int | None = None
        self._max_write_capacity: int | None = None

    def max_read_capacity(self, capacity: int) -> Self:
        self._max_read_capacity = capacity
        return self

    def max_write_capacity(self, capacity: int) -> Self:
        self._max_write_capacity = capacity
        return self

    def build(self) -> Table:
        _require_positive("max read capacity", self._max_read_capacity)
        _require_positive("max write capacity", self._max_write_capacity)

        throughput = None
        if self._max_read_capacity is not None or self._max_write_capacity is not None:
            throughput = {
                "MaxReadRequestUnits": self._max_read_capacity,
                "MaxWriteRequestUnits": self._max_write_capacity,
            }
        return Table.create(
            self._settings.resource_id,
            {
                **self._key_properties(),
                "BillingMode": "PAY_PER_REQUEST",
                "OnDemandThroughput": throughput,
            },
        )


@final
class ProvisionedTableBuilder(_TableOptions):
    """Provisioned billing. Read and write capacity are required, ceilings do not exist here."""

    def __init__(self, settings: _TableSettings):
        super().__init__(settings)
        self._read_capacity: int | None = None
        self._write_capacity: int | None = None

    def read_capacity(self, capacity: int) -> Self:
        self._read_capacity = capacity
        return self

    def write_capacity(self, capacity: int) -> Self:
        self._write_capacity = capacity
        return self

    def build(self) -> Table:
        if self._read_capacity is None:
            raise ConfigurationError("read capacity required when using provisioned billing")
        if self._write_capacity is None:
            raise ConfigurationError("write capacity required when using provisioned billing")
        _require_positive("read capacity", self._read_capacity)
        _require_positive("write capacity", self._write_capacity)

        return Table.create(
            self._settings.resource_id,
            {
                **self._key_properties(),
                "BillingMode": "PROVISIONED",
                "ProvisionedThroughput": {
                    "ReadCapacityUnits": self._read_capacity,
                    "WriteCapacityUnits": self._write_capacity,
                },
            },
        )
