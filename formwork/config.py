from dataclasses import dataclass, field


@dataclass(frozen=True, kw_only=True)
class AwsConfig:
    """AWS credentials and region used for deploying.

    Both are optional. When not set, boto3 resolves them the usual way:

    Credentials: environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
    AWS_SESSION_TOKEN), web identity / assumed roles, SSO, ~/.aws/credentials,
    ~/.aws/config and finally the instance or task role.

    Profile: this ``profile``, then AWS_PROFILE, then the "default" profile.

    Region: this ``region``, then AWS_REGION / AWS_DEFAULT_REGION, then the region of the
    selected profile. Without any of them AWS calls fail.

    Example:
        ```python
        # formwork_app.py
        config = FormworkConfig(aws=AwsConfig(profile="prod", region="eu-west-1"))
        ```
    """

    profile: str | None = None
    region: str | None = None


@dataclass(frozen=True, kw_only=True)
class FormworkConfig:
    """Settings for deploying a stack.

    Attributes:
        aws: AWS credentials and region configuration.
        poll_interval_seconds: Delay between two stack status checks.
        max_polls: Number of status checks before giving up on a stack operation.
        upload_workers: Number of assets uploaded in parallel.
    """

    aws: AwsConfig = field(default_factory=AwsConfig)
    poll_interval_seconds: float = 10
    max_polls: int = 360
    upload_workers: int = 8

    def __post_init__(self) -> None:
        if self.poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds cannot be negative")
        if self.max_polls < 1:
            raise ValueError("max_polls must be at least 1")
        if self.upload_workers < 1:
            raise ValueError("upload_workers must be at least 1")
