import re
from unittest.mock import patch

import pytest

from formwork.ids import SUFFIX_BITS, child_id, combine_ids, generate_id, kind_hint


def test_generate_id_is_kind_followed_by_number():
    synthesized_id = generate_id("Role")

    match = re.fullmatch(r"Role(\d+)", synthesized_id)
    assert match is not None
    assert 0 <= int(match.group(1)) < 2**SUFFIX_BITS


def test_generate_id_uses_32_random_bits():
    with patch("formwork.ids.secrets.randbits", return_value=1234) as randbits:
        assert generate_id("SqsQueue") == "SqsQueue1234"
    randbits.assert_called_once_with(32)


def test_generate_id_differs_between_calls():
    ids = {generate_id("LambdaFunction") for _ in range(50)}
    assert len(ids) > 1


@pytest.mark.parametrize(
    ("synthesized_id", "expected"),
    [
        ("Role1234", "Role"),
        ("DynamoDBTable42", "DynamoDBTable"),
        ("LogGroup0", "LogGroup"),
        ("NoDigits", "NoDigits"),
        ("123", "123"),
    ],
)
def test_kind_hint(synthesized_id, expected):
    assert kind_hint(synthesized_id) == expected


def test_kind_hint_recovers_generated_kind():
    assert kind_hint(generate_id("SnsSubscription")) == "SnsSubscription"


def test_child_and_combined_ids():
    assert child_id("orders", "Permission") == "ordersPermission"
    assert combine_ids("topic", "fn") == "topicfn"
