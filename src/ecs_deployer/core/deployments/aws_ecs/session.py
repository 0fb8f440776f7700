"""AWS session helpers."""

import boto3
from botocore.exceptions import ClientError


def create_session(region: str, profile: str | None = None) -> boto3.session.Session:
    """Create a boto3 session."""
    if profile:
        return boto3.session.Session(profile_name=profile, region_name=region)

    return boto3.session.Session(region_name=region)


def get_identity(session: boto3.session.Session) -> dict[str, str]:
    """Fetch the current AWS identity."""
    client = session.client("sts")
    try:
        response = client.get_caller_identity()
    except ClientError as exc:
        raise RuntimeError(f"Failed to read AWS identity: {exc}") from exc

    return {
        "Account": str(response.get("Account", "")),
        "Arn": str(response.get("Arn", "")),
        "UserId": str(response.get("UserId", "")),
    }
