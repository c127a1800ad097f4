"""Constants shared by the test suite."""

TEST_BUCKET_NAME = "cfn-publisher-test-bucket"
TEST_REGION = "us-east-1"
TEST_PROJECT_NAME = "sagemaker-mlops"
