"""
Packaging and publishing pipeline.

Runs the stages in order, each one to completion before the next:

1. provision   - make sure the target bucket exists
2. stage       - fresh build directory with copies of the templates
3. preprocess  - rewrite placeholder tokens in the self-packaged templates
4. archive     - source snapshot, template bundle, seed code bundles
5. clear       - delete everything under the project prefix
6. package     - `aws cloudformation package` for nested templates
7. publish     - upload archives and templates, tag seed code

The first failure aborts the run. There is no rollback, so a failure after
the clear stage leaves the prefix partially published until the next run.
"""
import logging
from typing import Optional

from cfn_publisher.archive import (
    build_seed_code_archives,
    build_source_archive,
    build_template_archive,
)
from cfn_publisher.aws.bucket import ensure_bucket
from cfn_publisher.layout import BuildLayout, prepare_build_dir
from cfn_publisher.packager import AwsCliTemplateService, TemplatePackager, TemplateService
from cfn_publisher.preprocess import Preprocessor, build_rules
from cfn_publisher.publish import Publisher
from cfn_publisher.report import PublishReport
from cfn_publisher.settings import Settings, get_settings
from cfn_publisher.utils.decorators import log_operation

try:
    from mypy_boto3_s3 import S3Client
except ImportError:
    ...

logger = logging.getLogger(__name__)


class PackagingPipeline:
    """One publication run for a bucket and region."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        settings: Optional[Settings] = None,
        s3_client: Optional["S3Client"] = None,
        template_service: Optional[TemplateService] = None,
    ):
        self.settings = settings or get_settings()
        self.bucket_name = bucket_name
        self.region = region

        if s3_client is None:
            from cfn_publisher.aws.clients import get_s3_client
            s3_client = get_s3_client(region)
        self.s3_client = s3_client

        self.layout = BuildLayout.from_settings(self.settings, region)
        self.preprocessor = Preprocessor()
        self.packager = TemplatePackager(
            template_service or AwsCliTemplateService(self.settings.aws_cli_path),
            packaged_suffix=self.settings.packaged_suffix,
        )
        self.publisher = Publisher(
            s3_client=self.s3_client,
            bucket_name=bucket_name,
            project_name=self.settings.project_name,
            region=region,
            provisioning_tags={
                self.settings.provisioning_tag_key: self.settings.provisioning_tag_value
            },
        )
        self.report = PublishReport(
            bucket_name=bucket_name,
            region=region,
            prefix=self.settings.project_name,
        )
        self.source_archive = None
        self.seed_code_archives = []

    @log_operation("Checking the S3 bucket")
    def provision(self) -> None:
        self.report.bucket_created = ensure_bucket(self.bucket_name, self.region, self.s3_client)

    @log_operation("Preparing the build directory")
    def stage(self) -> None:
        prepare_build_dir(self.layout)

    @log_operation("Self-packaging the CloudFormation templates")
    def preprocess(self) -> None:
        rules = build_rules(
            [self.layout.template(name) for name in self.settings.self_package_templates],
            self.settings.substitutions(self.bucket_name),
        )
        self.report.rewritten_templates = self.preprocessor.apply_all(rules)

    @log_operation("Building archives")
    def build_archives(self) -> None:
        source = build_source_archive(self.layout, self.settings.archive_exclude_patterns)
        templates = build_template_archive(self.layout)
        seed_code = build_seed_code_archives(self.layout, self.settings.seed_code_projects)

        self.source_archive = source.path
        self.seed_code_archives = [result.path for result in seed_code]
        self.report.archives = [source.path, templates.path] + self.seed_code_archives

    @log_operation("Clearing the project prefix")
    def clear(self) -> None:
        self.report.objects_cleared = self.publisher.clear()

    @log_operation("Packaging CloudFormation templates")
    def package(self) -> None:
        self.report.packaged_templates = self.packager.package_all(
            self.layout,
            self.settings.aws_package_templates,
            self.bucket_name,
            self.settings.project_name,
        )

    @log_operation("Publishing to S3")
    def publish(self) -> None:
        source_key = self.publisher.publish_source(self.source_archive)
        seed_code_keys = self.publisher.publish_seed_code(self.seed_code_archives)
        templates = self.publisher.publish_templates(
            self.layout,
            self.settings.upload_templates,
            self.report.packaged_templates,
        )

        self.report.uploaded_keys = [source_key] + seed_code_keys + [t.key for t in templates]
        self.report.tagged_keys = seed_code_keys
        self.report.templates = templates

    def run(self) -> PublishReport:
        logger.info(
            f"Preparing content for publication to Amazon S3 "
            f"s3://{self.bucket_name}/{self.settings.project_name}"
        )
        self.provision()
        self.stage()
        self.preprocess()
        self.build_archives()
        self.clear()
        self.package()
        self.publish()
        logger.info("✅ Publication complete")
        return self.report


def run_pipeline(
    bucket_name: str,
    region: str,
    settings: Optional[Settings] = None,
    s3_client: Optional["S3Client"] = None,
    template_service: Optional[TemplateService] = None,
) -> PublishReport:
    """Package and publish everything for one bucket and region."""
    pipeline = PackagingPipeline(
        bucket_name,
        region,
        settings=settings,
        s3_client=s3_client,
        template_service=template_service,
    )
    return pipeline.run()
