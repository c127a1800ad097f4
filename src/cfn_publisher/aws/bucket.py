"""Bucket provisioning for the publication target."""
import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from cfn_publisher.errors import BucketProvisioningError

try:
    from mypy_boto3_s3 import S3Client
except ImportError:
    ...

logger = logging.getLogger(__name__)

MISSING_BUCKET_CODES = ("404", "NoSuchBucket", "NotFound")


def bucket_exists(bucket_name: str, s3_client: "S3Client") -> bool:
    """
    Check whether a bucket exists and is reachable.

    :param bucket_name: The name of the S3 bucket.
    :param s3_client: A boto3 S3 client.
    :return: False only when S3 reports the bucket as missing.
    :raises BucketProvisioningError: for any other error (e.g. access denied).
    """
    try:
        s3_client.head_bucket(Bucket=bucket_name)
        return True
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code")
        if error_code in MISSING_BUCKET_CODES:
            return False
        raise BucketProvisioningError(
            f"Cannot access bucket {bucket_name}: {error_code}"
        ) from e
    except BotoCoreError as e:
        raise BucketProvisioningError(f"Cannot access bucket {bucket_name}: {e}") from e


def ensure_bucket(
    bucket_name: str,
    region: str,
    s3_client: Optional["S3Client"] = None,
) -> bool:
    """
    Create the bucket in the given region unless it already exists.

    Safe to call on every run. Creation failures are fatal, there is no retry.

    :param bucket_name: The name of the S3 bucket.
    :param region: Region to create the bucket in.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    :return: True if the bucket was created by this call.
    """
    if s3_client is None:
        from cfn_publisher.aws.clients import get_s3_client
        s3_client = get_s3_client(region)

    if bucket_exists(bucket_name, s3_client):
        logger.info(f"Using existing S3 bucket: {bucket_name}")
        return False

    logger.info(f"Creating Amazon S3 bucket {bucket_name} in {region}")
    try:
        # us-east-1 rejects an explicit LocationConstraint
        if region == "us-east-1":
            s3_client.create_bucket(Bucket=bucket_name)
        else:
            s3_client.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": region}
            )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "BucketAlreadyOwnedByYou":
            logger.info(f"S3 bucket already owned by you: {bucket_name}")
            return False
        raise BucketProvisioningError(
            f"Failed to create bucket {bucket_name}: {e}"
        ) from e
    except BotoCoreError as e:
        raise BucketProvisioningError(
            f"Failed to create bucket {bucket_name}: {e}"
        ) from e

    logger.info(f"✅ Created S3 bucket: {bucket_name}")
    return True
