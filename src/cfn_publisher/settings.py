# src/cfn_publisher/settings.py
from pathlib import Path
from typing import Optional, Dict, List
from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


# Placeholder tokens rewritten in self-packaged templates
TOKEN_STAGING_PATH = "< S3_CFN_STAGING_PATH >"
TOKEN_STAGING_BUCKET = "< S3_CFN_STAGING_BUCKET >"
TOKEN_STAGING_BUCKET_PATH = "< S3_CFN_STAGING_BUCKET_PATH >"


class Settings(BaseSettings):
    """
    Single source of truth for all packaging settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from cfn_publisher.settings import get_settings
        settings = get_settings()
        prefix = settings.project_name
    """

    # Project layout
    project_name: str = Field(
        default="sagemaker-mlops",
        description="Project name, also the S3 key prefix for all published artifacts"
    )

    project_root: Path = Field(
        default=Path("."),
        description="Root of the source tree to package"
    )

    template_dir: str = Field(
        default="cfn_templates",
        description="Directory with CloudFormation templates, relative to project_root"
    )

    seed_code_dir: str = Field(
        default="mlops-seed-code",
        description="Directory with MLOps project seed code, relative to project_root"
    )

    build_dir: str = Field(
        default="build",
        description="Build output directory, relative to project_root"
    )

    source_archive_name: str = Field(
        default="sagemaker-secure-mlops.zip",
        description="Name of the full source snapshot archive"
    )

    # Template lists
    self_package_templates: List[str] = Field(
        default=[
            "core-sc-shared-portfolio.yaml",
            "env-sc-portfolio.yaml",
            "env-main.yaml",
        ],
        description="Templates with placeholder tokens rewritten before packaging"
    )

    aws_package_templates: List[str] = Field(
        default=[
            "core-main.yaml",
            "env-main.yaml",
            "data-science-environment-quickstart.yaml",
        ],
        description="Templates packaged with `aws cloudformation package`"
    )

    upload_templates: List[str] = Field(
        default=[
            "core-main.yaml",
            "env-main.yaml",
            "data-science-environment-quickstart.yaml",
            "env-sc-portfolio.yaml",
            "env-iam-target-account-roles.yaml",
            "env-vpc.yaml",
            "project-model-deploy.yaml",
            "project-model-build-train.yaml",
        ],
        description="Templates uploaded to the project prefix"
    )

    # Seed code: project subdirectory -> archive name
    seed_code_projects: Dict[str, str] = Field(
        default={
            "model-deploy": "mlops-model-deploy-v1.0.zip",
            "model-build-train": "mlops-model-build-train-v1.0.zip",
        },
        description="Seed code subdirectories and the archive each one produces"
    )

    archive_exclude_patterns: List[str] = Field(
        default=[
            "*.pdf",
            "*.git*",
            "*.DS_Store*",
            "*.vscode*",
            "build/*",
            "internal-documents*",
            "*__pycache__*",
        ],
        description="Path patterns excluded from the source snapshot"
    )

    packaged_suffix: str = Field(
        default="-packaged",
        description="Suffix of templates produced by `aws cloudformation package`"
    )

    # Object tagging
    provisioning_tag_key: str = Field(
        default="servicecatalog:provisioning",
        description="Tag key applied to seed code objects"
    )

    provisioning_tag_value: str = Field(
        default="true",
        description="Tag value applied to seed code objects"
    )

    # AWS
    aws_cli_path: str = Field(
        default="aws",
        description="AWS CLI executable used for template packaging"
    )

    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @validator('project_name')
    def validate_project_name(cls, v):
        """Project name becomes an S3 prefix, so it must be non-empty and slash-free at the ends."""
        v = v.strip().strip('/')
        if not v:
            raise ValueError("project_name must not be empty")
        return v

    @validator('log_level')
    def normalize_log_level(cls, v):
        """Normalize log level to upper case and validate it."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    def substitutions(self, bucket_name: str) -> Dict[str, str]:
        """Token -> value map for a target bucket."""
        return {
            TOKEN_STAGING_PATH: self.project_name,
            TOKEN_STAGING_BUCKET: bucket_name,
            TOKEN_STAGING_BUCKET_PATH: f"{bucket_name}/{self.project_name}",
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
