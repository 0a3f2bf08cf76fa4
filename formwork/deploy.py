"""Deploying, destroying and diffing stacks with CloudFormation.

Everything here talks to AWS through boto3. Stack operations are asynchronous on the AWS
side, so after each request the stack status is polled every
``FormworkConfig.poll_interval_seconds`` until it settles, for at most
``FormworkConfig.max_polls`` checks. API calls are not retried.
"""

import json
import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from formwork.aws.lookups import BucketLookup, FileLookupCache
from formwork.config import FormworkConfig
from formwork.exceptions import (
    AssetError,
    DeployError,
    DestroyError,
    StackCreateError,
    StackDeleteError,
    StackUpdateError,
)
from formwork.stack.assets import Asset
from formwork.stack.diff import StackDiff, format_diff
from formwork.stack.stack import Stack

logger = logging.getLogger(__name__)

type StatusCallback = Callable[[str], None]

CAPABILITIES = ["CAPABILITY_NAMED_IAM"]
NO_UPDATES_MESSAGE = "No updates are to be performed"
NO_CHANGES = "NO_CHANGES"

DEPLOY_COMPLETE = frozenset(
    {"CREATE_COMPLETE", "UPDATE_COMPLETE", "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS"}
)
DEPLOY_FAILED = frozenset(
    {
        "CREATE_FAILED",
        "ROLLBACK_COMPLETE",
        "ROLLBACK_FAILED",
        "UPDATE_FAILED",
        "UPDATE_ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
    }
)

__all__ = ["create_session", "deploy", "destroy", "format_diff", "remote_diff", "upload_assets"]


def _notify(on_status: StatusCallback | None, message: str) -> None:
    logger.info("%s", message)
    if on_status is not None:
        on_status(message)


def create_session(config: FormworkConfig) -> boto3.Session:
    return boto3.Session(profile_name=config.aws.profile, region_name=config.aws.region)


def _is_missing_stack(error: ClientError) -> bool:
    err = error.response["Error"]
    return err["Code"] == "ValidationError" and "does not exist" in err.get("Message", "")


def _get_existing_template(cloudformation: Any, name: str) -> str | None:  # noqa: ANN401
    """Body of the deployed template, None when there is no such stack."""
    try:
        response = cloudformation.get_template(StackName=name, TemplateStage="Original")
    except ClientError as e:
        if _is_missing_stack(e):
            return None
        raise DeployError(f"Unable to fetch template of stack '{name}': {e}") from e

    body = response["TemplateBody"]
    # boto3 hands JSON templates back already parsed
    return body if isinstance(body, str) else json.dumps(body)


def _get_stack_status(cloudformation: Any, name: str) -> str | None:  # noqa: ANN401
    try:
        response = cloudformation.describe_stacks(StackName=name)
    except ClientError as e:
        if _is_missing_stack(e):
            return None
        raise
    stacks = response.get("Stacks", [])
    return stacks[0]["StackStatus"] if stacks else None


def upload_assets(
    session: boto3.Session,
    assets: Sequence[Asset],
    config: FormworkConfig,
    lookup: BucketLookup | None = None,
) -> None:
    """Upload all assets in parallel and wait for every upload to finish.

    Raises:
        AssetError: If a bucket or a local file is missing, or for the first failed upload.
    """
    if not assets:
        return
    lookup = lookup or BucketLookup(session, FileLookupCache())

    for bucket in dict.fromkeys(asset.s3_bucket for asset in assets):
        try:
            exists = lookup.bucket_exists(bucket)
        except ClientError as e:
            raise AssetError(f"Unable to check asset bucket '{bucket}': {e}") from e
        if not exists:
            raise AssetError(f"Asset bucket '{bucket}' does not exist")

    for asset in assets:
        if not Path(asset.path).is_file():
            raise AssetError(f"Asset file '{asset.path}' does not exist")

    s3 = session.client("s3")
    with ThreadPoolExecutor(max_workers=config.upload_workers) as executor:
        futures = [
            (asset, executor.submit(s3.upload_file, asset.path, asset.s3_bucket, asset.s3_key))
            for asset in assets
        ]
    # Leaving the executor waits for all uploads, report the first failure
    for asset, future in futures:
        error = future.exception()
        if error is not None:
            raise AssetError(f"Unable to upload asset {asset}: {error}") from error
        logger.debug("Uploaded %s", asset)


def _wait_for_stack(
    cloudformation: Any,  # noqa: ANN401
    name: str,
    config: FormworkConfig,
    error_class: type[StackCreateError] | type[StackUpdateError],
    on_status: StatusCallback | None,
) -> str:
    for _ in range(config.max_polls):
        status = _get_stack_status(cloudformation, name)
        if status is None:
            raise DeployError(f"Stack '{name}' disappeared while deploying")
        _notify(on_status, f"Stack '{name}': {status}")

        if status in DEPLOY_COMPLETE:
            return status
        if status in DEPLOY_FAILED:
            raise error_class(name, status)
        if not status.endswith("_IN_PROGRESS"):
            raise DeployError(f"Stack '{name}' is in unexpected status {status}")
        time.sleep(config.poll_interval_seconds)

    raise DeployError(f"Gave up waiting for stack '{name}' after {config.max_polls} checks")


def deploy(
    name: str,
    stack: Stack,
    config: FormworkConfig | None = None,
    *,
    session: boto3.Session | None = None,
    lookup: BucketLookup | None = None,
    on_status: StatusCallback | None = None,
) -> str:
    """Upload the stack's assets, then create or update the CloudFormation stack ``name``.

    An existing stack keeps the synthesized ids of resources it already has, so those are
    updated in place. Returns the final stack status, or NO_CHANGES when the deployed stack
    already matches.

    Raises:
        AssetError: If an asset cannot be uploaded. Nothing is submitted in that case.
        StackCreateError: If the creation fails or is rolled back.
        StackUpdateError: If the update fails or is rolled back.
        DeployError: For any other CloudFormation error.
    """
    config = config or FormworkConfig()
    session = session or create_session(config)
    cloudformation = session.client("cloudformation")

    assets = stack.get_assets()
    if assets:
        _notify(on_status, f"Uploading {len(assets)} asset(s)")
        upload_assets(session, assets, config, lookup)

    tags = [{"Key": key, "Value": value} for key, value in stack.tags]
    existing = _get_existing_template(cloudformation, name)
    if existing is None:
        _notify(on_status, f"Creating stack '{name}'")
        error_class = StackCreateError
        request = cloudformation.create_stack
        body = stack.synth()
    else:
        _notify(on_status, f"Updating stack '{name}'")
        error_class = StackUpdateError
        request = cloudformation.update_stack
        body = stack.synth_for_existing(existing)

    try:
        request(StackName=name, TemplateBody=body, Capabilities=CAPABILITIES, Tags=tags)
    except ClientError as e:
        if NO_UPDATES_MESSAGE in e.response["Error"].get("Message", ""):
            _notify(on_status, f"Stack '{name}' is up to date")
            return NO_CHANGES
        raise DeployError(f"Unable to deploy stack '{name}': {e}") from e

    try:
        return _wait_for_stack(cloudformation, name, config, error_class, on_status)
    except ClientError as e:
        raise DeployError(f"Unable to check status of stack '{name}': {e}") from e


def destroy(
    name: str,
    config: FormworkConfig | None = None,
    *,
    session: boto3.Session | None = None,
    on_status: StatusCallback | None = None,
) -> None:
    """Delete the stack ``name`` and wait until it is gone.

    Raises:
        StackDeleteError: If CloudFormation reports DELETE_FAILED.
        DestroyError: For any other CloudFormation error or when the deletion takes too long.
    """
    config = config or FormworkConfig()
    session = session or create_session(config)
    cloudformation = session.client("cloudformation")

    _notify(on_status, f"Deleting stack '{name}'")
    try:
        cloudformation.delete_stack(StackName=name)
        for _ in range(config.max_polls):
            status = _get_stack_status(cloudformation, name)
            if status is None or status == "DELETE_COMPLETE":
                _notify(on_status, f"Stack '{name}' deleted")
                return
            _notify(on_status, f"Stack '{name}': {status}")
            if status == "DELETE_FAILED":
                raise StackDeleteError(name, status)
            if not status.endswith("_IN_PROGRESS"):
                raise DestroyError(f"Stack '{name}' is in unexpected status {status}")
            time.sleep(config.poll_interval_seconds)
    except ClientError as e:
        raise DestroyError(f"Unable to delete stack '{name}': {e}") from e

    raise DestroyError(f"Gave up waiting for stack '{name}' after {config.max_polls} checks")


def remote_diff(
    name: str,
    stack: Stack,
    config: FormworkConfig | None = None,
    *,
    session: boto3.Session | None = None,
) -> StackDiff:
    """Compare ``stack`` with the template currently deployed as ``name``.

    Raises:
        DeployError: If there is no such stack.
        DiffError: If the deployed template cannot be read.
    """
    config = config or FormworkConfig()
    session = session or create_session(config)
    existing = _get_existing_template(session.client("cloudformation"), name)
    if existing is None:
        raise DeployError(f"Stack '{name}' does not exist")
    return stack.get_diff(existing)
