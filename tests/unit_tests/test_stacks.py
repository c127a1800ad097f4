import json

import boto3
import pytest

from cfn_publisher.errors import StackError
from cfn_publisher.report import template_url
from cfn_publisher.stacks import StackManager, to_parameters
from tests.consts import TEST_BUCKET_NAME, TEST_PROJECT_NAME, TEST_REGION

TOPIC_TEMPLATE = json.dumps({
    "AWSTemplateFormatVersion": "2010-09-09",
    "Description": "Notification topic",
    "Parameters": {
        "EnvName": {"Type": "String"},
    },
    "Resources": {
        "Topic": {
            "Type": "AWS::SNS::Topic",
            "Properties": {"TopicName": {"Fn::Sub": "${EnvName}-notifications"}},
        },
    },
    "Outputs": {
        "TopicArn": {"Value": {"Ref": "Topic"}},
        "EnvName": {"Value": {"Ref": "EnvName"}},
    },
})


@pytest.fixture
def published_url(s3_client, bucket):
    key = f"{TEST_PROJECT_NAME}/topic.json"
    s3_client.put_object(Bucket=bucket, Key=key, Body=TOPIC_TEMPLATE.encode())
    return template_url(bucket, TEST_REGION, key)


@pytest.fixture
def manager(mocked_aws):
    return StackManager(
        TEST_REGION,
        boto3.client("cloudformation", region_name=TEST_REGION),
        wait_delay=1,
        wait_max_attempts=5,
    )


def test_to_parameters():
    assert to_parameters({"EnvName": "sm-mlops", "EnvType": "dev"}) == [
        {"ParameterKey": "EnvName", "ParameterValue": "sm-mlops"},
        {"ParameterKey": "EnvType", "ParameterValue": "dev"},
    ]
    assert to_parameters(None) == []


def test_template_url():
    assert template_url(TEST_BUCKET_NAME, "eu-west-1", "sagemaker-mlops/env-main.yaml") == (
        f"https://s3.eu-west-1.amazonaws.com/{TEST_BUCKET_NAME}/sagemaker-mlops/env-main.yaml"
    )


def test_validate_published_template(manager, published_url):
    result = manager.validate_template(published_url)

    assert result["description"] == "Notification topic"


def test_stack_lifecycle(manager, published_url):
    stack_id = manager.create_stack("sm-mlops-core", published_url, {"EnvName": "sm-mlops"})
    manager.wait_for_create("sm-mlops-core")

    assert stack_id.startswith("arn:aws:cloudformation")
    assert manager.stack_status("sm-mlops-core") == "CREATE_COMPLETE"

    outputs = manager.describe_outputs("sm-mlops-core")
    assert outputs["EnvName"] == "sm-mlops"
    assert outputs["TopicArn"].startswith("arn:aws:sns")

    manager.delete_stack("sm-mlops-core")
    manager.wait_for_delete("sm-mlops-core")
    assert manager.stack_status("sm-mlops-core") in (None, "DELETE_COMPLETE")


def test_describe_unknown_stack(manager):
    with pytest.raises(StackError):
        manager.describe_outputs("no-such-stack")


def test_unknown_stack_has_no_status(manager):
    assert manager.stack_status("no-such-stack") is None


def test_missing_credentials_raise_stack_error(no_credentials):
    manager = StackManager(TEST_REGION, boto3.client("cloudformation", region_name=TEST_REGION))

    with pytest.raises(StackError, match="Unable to locate credentials"):
        manager.validate_template(
            template_url(TEST_BUCKET_NAME, TEST_REGION, f"{TEST_PROJECT_NAME}/core-main.yaml")
        )


def test_delete_missing_stack_is_a_no_op(manager):
    assert manager.delete_stack_if_exists("no-such-stack") is False


def test_delete_existing_stack(manager, published_url):
    manager.create_stack("sm-mlops-env", published_url, {"EnvName": "sm-mlops"})
    manager.wait_for_create("sm-mlops-env")

    assert manager.delete_stack_if_exists("sm-mlops-env") is True
    manager.wait_for_delete("sm-mlops-env")
    assert manager.stack_status("sm-mlops-env") in (None, "DELETE_COMPLETE")
