"""Nested template packaging through `aws cloudformation package`."""
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from cfn_publisher.errors import PackagingError
from cfn_publisher.layout import BuildLayout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageRequest:
    """Parameters of one packaging call."""
    template_file: Path
    output_template_file: Path
    s3_bucket: str
    s3_prefix: str
    region: str


class TemplateService(ABC):
    """Templating service able to package a template with nested references"""

    @abstractmethod
    def package(self, request: PackageRequest) -> Path:
        """Package one template

        Rewrites relative template and code references into S3 references,
        uploading the referenced files, and writes the result to
        `request.output_template_file`.

        Returns:
            Path of the packaged template
        """
        pass


class AwsCliTemplateService(TemplateService):
    """Runs `aws cloudformation package` from the template's directory."""

    def __init__(self, aws_cli_path: str = "aws", env: Optional[Dict[str, str]] = None):
        self.aws_cli_path = aws_cli_path
        self.env = env

    def build_command(self, request: PackageRequest) -> List[str]:
        return [
            self.aws_cli_path, "cloudformation", "package",
            "--template-file", request.template_file.name,
            "--s3-bucket", request.s3_bucket,
            "--s3-prefix", request.s3_prefix,
            "--output-template-file", request.output_template_file.name,
            "--region", request.region,
        ]

    def package(self, request: PackageRequest) -> Path:
        cmd = self.build_command(request)
        cwd = request.template_file.parent
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")

        env = None
        if self.env:
            env = {**os.environ, **self.env}

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, cwd=cwd, env=env)
        except OSError as e:
            raise PackagingError(f"Could not run {self.aws_cli_path}: {e}") from e

        if result.returncode != 0:
            raise PackagingError(
                f"Packaging {request.template_file.name} failed with return code {result.returncode}:\n"
                f"{result.stderr.strip()}",
                stdout=result.stdout,
                stderr=result.stderr,
            )

        if not request.output_template_file.exists():
            raise PackagingError(
                f"Packaging {request.template_file.name} produced no output template",
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return request.output_template_file


class TemplatePackager:
    """Packages the templates that carry nested template references."""

    def __init__(self, service: TemplateService, packaged_suffix: str = "-packaged"):
        self.service = service
        self.packaged_suffix = packaged_suffix

    def packaged_path(self, template: Path) -> Path:
        """`core-main.yaml` -> `core-main.yaml-packaged`"""
        return template.with_name(template.name + self.packaged_suffix)

    def package_all(
        self,
        layout: BuildLayout,
        templates: Sequence[str],
        bucket_name: str,
        prefix: str,
    ) -> Dict[str, Path]:
        """
        Package each listed template found in the build directory.

        :return: Template name -> packaged template path.
        """
        packaged = {}
        for name in templates:
            template = layout.template(name)
            if not template.exists():
                raise PackagingError(f"Template to package not found: {template}")

            request = PackageRequest(
                template_file=template,
                output_template_file=self.packaged_path(template),
                s3_bucket=bucket_name,
                s3_prefix=prefix,
                region=layout.region,
            )
            logger.info(f"Packaging CloudFormation template: {name}")
            packaged[name] = self.service.package(request)
        return packaged
