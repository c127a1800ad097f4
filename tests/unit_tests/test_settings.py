from pathlib import Path

import pytest
from pydantic import ValidationError

from cfn_publisher.settings import (
    Settings,
    TOKEN_STAGING_BUCKET,
    TOKEN_STAGING_BUCKET_PATH,
    TOKEN_STAGING_PATH,
    get_settings,
)


def test_defaults_match_the_mlops_project():
    settings = Settings()

    assert settings.project_name == "sagemaker-mlops"
    assert settings.template_dir == "cfn_templates"
    assert settings.seed_code_dir == "mlops-seed-code"
    assert settings.self_package_templates == [
        "core-sc-shared-portfolio.yaml", "env-sc-portfolio.yaml", "env-main.yaml",
    ]
    assert "core-main.yaml" in settings.aws_package_templates
    assert len(settings.upload_templates) == 8
    assert settings.provisioning_tag_key == "servicecatalog:provisioning"
    assert settings.provisioning_tag_value == "true"


def test_substitutions():
    settings = Settings(project_name="my-project")

    assert settings.substitutions("my-bucket") == {
        TOKEN_STAGING_PATH: "my-project",
        TOKEN_STAGING_BUCKET: "my-bucket",
        TOKEN_STAGING_BUCKET_PATH: "my-bucket/my-project",
    }


def test_project_name_is_stripped_of_slashes():
    assert Settings(project_name="/mlops/").project_name == "mlops"


def test_empty_project_name_rejected():
    with pytest.raises(ValidationError):
        Settings(project_name=" / ")


def test_log_level_normalized():
    assert Settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PROJECT_NAME", "from-env")
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:5000")

    settings = get_settings()

    assert settings.project_name == "from-env"
    assert settings.project_root == Path(tmp_path)
    assert settings.aws_endpoint_url == "http://localhost:5000"
    assert get_settings() is settings
