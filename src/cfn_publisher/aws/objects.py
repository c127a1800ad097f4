"""Functions for deleting, uploading and tagging objects under a project prefix."""
import logging
from pathlib import Path
from typing import Dict, List

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from cfn_publisher.errors import PublishError

try:
    from mypy_boto3_s3 import S3Client
except ImportError:
    ...

logger = logging.getLogger(__name__)

# delete_objects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


def list_keys(bucket_name: str, prefix: str, s3_client: "S3Client") -> List[str]:
    """
    List every object key under a prefix.

    :param bucket_name: The name of the S3 bucket.
    :param prefix: Key prefix, e.g. "sagemaker-mlops/".
    :param s3_client: A boto3 S3 client.
    """
    keys = []
    paginator = s3_client.get_paginator('list_objects_v2')
    for page in paginator.paginate(Bucket=bucket_name, Prefix=prefix):
        for obj in page.get('Contents', []):
            keys.append(obj['Key'])
    return keys


def clear_prefix(bucket_name: str, prefix: str, s3_client: "S3Client") -> int:
    """
    Delete every object under a prefix.

    :param bucket_name: The name of the S3 bucket.
    :param prefix: Key prefix to clear. Must be non-empty so a bucket is never emptied by accident.
    :param s3_client: A boto3 S3 client.
    :return: Number of objects deleted.
    """
    if not prefix.strip('/'):
        raise PublishError("Refusing to clear an empty prefix")

    objects_deleted = 0
    try:
        keys = list_keys(bucket_name, prefix, s3_client)
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = s3_client.delete_objects(
                Bucket=bucket_name,
                Delete={'Objects': [{'Key': key} for key in batch], 'Quiet': True}
            )
            errors = response.get('Errors', [])
            if errors:
                first = errors[0]
                raise PublishError(
                    f"Failed to delete {len(errors)} objects under s3://{bucket_name}/{prefix}, "
                    f"first: {first.get('Key')} ({first.get('Code')})"
                )
            objects_deleted += len(batch)
    except (ClientError, BotoCoreError) as e:
        raise PublishError(f"Failed to clear s3://{bucket_name}/{prefix}: {e}") from e

    logger.info(f"Cleared s3://{bucket_name}/{prefix} ({objects_deleted} objects)")
    return objects_deleted


def upload_file(
    bucket_name: str,
    object_key: str,
    file_path: Path,
    s3_client: "S3Client",
) -> str:
    """
    Upload a local file to an S3 bucket.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param file_path: Local file to upload.
    :param s3_client: A boto3 S3 client.
    :return: The object key.
    """
    try:
        s3_client.upload_file(str(file_path), bucket_name, object_key)
    except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
        raise PublishError(
            f"Failed to upload {file_path} to s3://{bucket_name}/{object_key}: {e}"
        ) from e

    logger.info(f"Uploaded {Path(file_path).name} to s3://{bucket_name}/{object_key}")
    return object_key


def get_object_tags(bucket_name: str, object_key: str, s3_client: "S3Client") -> Dict[str, str]:
    """Return the tag set of an object as a dict."""
    response = s3_client.get_object_tagging(Bucket=bucket_name, Key=object_key)
    return {tag['Key']: tag['Value'] for tag in response.get('TagSet', [])}


def tag_object(
    bucket_name: str,
    object_key: str,
    tags: Dict[str, str],
    s3_client: "S3Client",
) -> Dict[str, str]:
    """
    Add tags to an object, keeping the tags it already carries.

    put_object_tagging replaces the whole tag set, so existing tags are merged
    in first. Re-applying the same tags leaves the object unchanged.

    :return: The resulting tag set.
    """
    try:
        current = get_object_tags(bucket_name, object_key, s3_client)
        merged = {**current, **tags}
        if merged == current:
            logger.debug(f"Tags already present on s3://{bucket_name}/{object_key}")
            return current

        s3_client.put_object_tagging(
            Bucket=bucket_name,
            Key=object_key,
            Tagging={'TagSet': [{'Key': k, 'Value': v} for k, v in merged.items()]}
        )
    except (ClientError, BotoCoreError) as e:
        raise PublishError(f"Failed to tag s3://{bucket_name}/{object_key}: {e}") from e

    tag_text = ", ".join(f"{k}={v}" for k, v in tags.items())
    logger.info(f"Set {tag_text} tag on s3://{bucket_name}/{object_key}")
    return merged
