import json
import logging
from pathlib import Path
from typing import Protocol

import boto3
from appdirs import user_cache_dir
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ("404", "NoSuchBucket", "NotFound")


class LookupCache(Protocol):
    """Key-value store for answers of slow lookups. Dumb I/O, no domain logic."""

    def read(self, key: str) -> str | None: ...
    def write(self, key: str, value: str) -> None: ...


class MemoryLookupCache:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        self._values[key] = value


class FileLookupCache:
    """Lookup cache kept as a JSON file, by default in the user cache dir."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path(user_cache_dir("formwork")) / "lookups.json"

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt lookup cache %s", self._path)
            return {}

    def read(self, key: str) -> str | None:
        return self._load().get(key)

    def write(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(values, indent=2), encoding="utf-8")


class BucketLookup:
    """Answers whether an S3 bucket exists and is reachable with the session's credentials.

    Positive answers are cached, negative ones are asked again next time since the bucket
    may have been created in the meantime.
    """

    def __init__(self, session: boto3.Session, cache: LookupCache) -> None:
        self._s3 = session.client("s3")
        self._cache = cache

    def bucket_exists(self, name: str) -> bool:
        key = f"bucket:{name}"
        if self._cache.read(key) == "exists":
            logger.debug("Bucket %s known to exist", name)
            return True

        try:
            self._s3.head_bucket(Bucket=name)
        except ClientError as e:
            if e.response["Error"]["Code"] in NOT_FOUND_CODES:
                logger.debug("Bucket %s does not exist", name)
                return False
            raise

        self._cache.write(key, "exists")
        return True
