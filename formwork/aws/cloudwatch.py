from dataclasses import dataclass
from typing import Self, final

from formwork.resource import Resource


@final
@dataclass(frozen=True, kw_only=True)
class LogGroup(Resource):
    TYPE = "AWS::Logs::LogGroup"
    KIND = "LogGroup"


@final
class LogGroupBuilder:
    def __init__(self, resource_id: str):
        self._resource_id = resource_id
        self._name: str | None = None
        self._retention_in_days: int | None = None

    def log_group_name(self, name: str) -> Self:
        self._name = name
        return self

    def retention_in_days(self, days: int) -> Self:
        self._retention_in_days = days
        return self

    def build(self) -> LogGroup:
        return LogGroup.create(
            self._resource_id,
            {"LogGroupName": self._name, "RetentionInDays": self._retention_in_days},
        )
