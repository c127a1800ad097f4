import boto3
import pytest
from moto import mock_aws

from cfn_publisher.aws.clients import AWSClientManager
from cfn_publisher.settings import get_settings
from tests.consts import TEST_BUCKET_NAME, TEST_REGION
from tests.fixtures.template_service import fake_template_service  # noqa: F401
from tests.fixtures.tree_fixtures import project_tree, tree_settings  # noqa: F401


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so no test can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture(autouse=True)
def reset_caches(aws_credentials):
    get_settings.cache_clear()
    AWSClientManager().clear_clients()
    yield
    get_settings.cache_clear()
    AWSClientManager().clear_clients()


@pytest.fixture
def no_credentials(monkeypatch, tmp_path):
    """No credential source boto3 could find, outside any moto mock."""
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SECURITY_TOKEN",
                 "AWS_SESSION_TOKEN", "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI",
                 "AWS_CONTAINER_CREDENTIALS_FULL_URI", "AWS_WEB_IDENTITY_TOKEN_FILE",
                 "AWS_ROLE_ARN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "missing-credentials"))
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "missing-config"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")
    # The default session caches whatever credentials it resolved first
    monkeypatch.setattr(boto3, "DEFAULT_SESSION", None)


@pytest.fixture
def mocked_aws():
    with mock_aws():
        yield


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name=TEST_REGION)


@pytest.fixture
def bucket(s3_client):
    s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)
    return TEST_BUCKET_NAME
