from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from formwork.aws.dynamodb import Key, Table, TableBuilder
from formwork.aws.function import Function, FunctionBuilder, Inline
from formwork.aws.iam import Role, RoleBuilder
from formwork.project import get_project_root


@pytest.fixture(autouse=True)
def clean_project_root_cache():
    get_project_root.cache_clear()
    yield
    get_project_root.cache_clear()


@pytest.fixture
def table() -> Table:
    return (
        TableBuilder("table", Key("pk"))
        .provisioned_billing()
        .read_capacity(5)
        .write_capacity(5)
        .build()
    )


@pytest.fixture
def role() -> Role:
    return RoleBuilder.for_lambda("role").build()


@pytest.fixture
def make_function(role: Role) -> Callable[..., Function]:
    def make(resource_id: str = "fn", function_role: Role | None = None) -> Function:
        return (
            FunctionBuilder(resource_id, "arm64", memory=256, timeout=10)
            .role(function_role or role)
            .code(Inline("def handler(event, context):\n    return event\n"))
            .handler("index.handler")
            .runtime("python3.13")
            .build()
        )

    return make


@pytest.fixture
def function(make_function) -> Function:
    return make_function()


@pytest.fixture
def mock_session():
    """boto3 session whose clients are MagicMocks, one per service name."""
    session = MagicMock()
    clients: dict[str, MagicMock] = {}

    def client(service_name: str) -> MagicMock:
        return clients.setdefault(service_name, MagicMock(name=service_name))

    session.client.side_effect = client
    session.clients = clients
    return session
