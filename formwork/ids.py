import re
import secrets

SUFFIX_BITS = 32

_TRAILING_DIGITS = re.compile(r"\d+$")


def generate_id(kind: str) -> str:
    """Create a synthesized id: the resource kind followed by a random 32-bit number.

    Uniqueness is probabilistic only. ``StackBuilder.finalize`` rejects the (unlikely)
    collisions explicitly.
    """
    return f"{kind}{secrets.randbits(SUFFIX_BITS)}"


def kind_hint(synthesized_id: str) -> str:
    """Recover the resource kind from a synthesized id, e.g. 'Role' from 'Role1234'."""
    return _TRAILING_DIGITS.sub("", synthesized_id) or synthesized_id


def child_id(resource_id: str, suffix: str) -> str:
    """ResourceId for a resource a builder creates on behalf of another one."""
    return f"{resource_id}{suffix}"


def combine_ids(first: str, second: str) -> str:
    """ResourceId for a resource linking two others, e.g. the subscription of a function to a
    topic. Both parts are resource ids, the result belongs to neither of them."""
    return f"{first}{second}"
