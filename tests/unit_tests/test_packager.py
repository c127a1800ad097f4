import subprocess

import pytest

from cfn_publisher.errors import PackagingError
from cfn_publisher.layout import BuildLayout, prepare_build_dir
from cfn_publisher.packager import AwsCliTemplateService, PackageRequest, TemplatePackager
from tests.consts import TEST_BUCKET_NAME, TEST_PROJECT_NAME, TEST_REGION


@pytest.fixture
def layout(tree_settings):
    layout = BuildLayout.from_settings(tree_settings, TEST_REGION)
    prepare_build_dir(layout)
    return layout


@pytest.fixture
def request_for(layout):
    def make(name):
        template = layout.template(name)
        return PackageRequest(
            template_file=template,
            output_template_file=template.with_name(name + "-packaged"),
            s3_bucket=TEST_BUCKET_NAME,
            s3_prefix=TEST_PROJECT_NAME,
            region=TEST_REGION,
        )
    return make


def test_cli_command_line(request_for):
    cmd = AwsCliTemplateService("/usr/local/bin/aws").build_command(request_for("core-main.yaml"))

    assert cmd == [
        "/usr/local/bin/aws", "cloudformation", "package",
        "--template-file", "core-main.yaml",
        "--s3-bucket", TEST_BUCKET_NAME,
        "--s3-prefix", TEST_PROJECT_NAME,
        "--output-template-file", "core-main.yaml-packaged",
        "--region", TEST_REGION,
    ]


def test_cli_runs_from_the_build_directory(monkeypatch, layout, request_for):
    calls = []

    def fake_run(cmd, capture_output, text, cwd, env):
        calls.append((cmd, cwd))
        (cwd / "core-main.yaml-packaged").write_text("packaged")
        return subprocess.CompletedProcess(cmd, 0, stdout="Successfully packaged artifacts", stderr="")

    monkeypatch.setattr("cfn_publisher.packager.subprocess.run", fake_run)

    output = AwsCliTemplateService().package(request_for("core-main.yaml"))

    assert output == layout.template("core-main.yaml-packaged")
    assert calls[0][1] == layout.output_dir


def test_cli_failure_raises_with_output(monkeypatch, request_for):
    def fake_run(cmd, capture_output, text, cwd, env):
        return subprocess.CompletedProcess(cmd, 255, stdout="", stderr="Unable to upload artifact")

    monkeypatch.setattr("cfn_publisher.packager.subprocess.run", fake_run)

    with pytest.raises(PackagingError) as exc_info:
        AwsCliTemplateService().package(request_for("env-main.yaml"))

    assert exc_info.value.stderr == "Unable to upload artifact"
    assert "env-main.yaml" in str(exc_info.value)


def test_cli_missing_executable(request_for):
    service = AwsCliTemplateService("/nonexistent/aws-cli-binary")

    with pytest.raises(PackagingError):
        service.package(request_for("core-main.yaml"))


def test_package_all(layout, fake_template_service, tree_settings):
    packager = TemplatePackager(fake_template_service)

    packaged = packager.package_all(
        layout, tree_settings.aws_package_templates, TEST_BUCKET_NAME, TEST_PROJECT_NAME,
    )

    assert list(packaged) == tree_settings.aws_package_templates
    for name, path in packaged.items():
        assert path == layout.template(name + "-packaged")
        assert path.exists()
    assert {r.s3_prefix for r in fake_template_service.requests} == {TEST_PROJECT_NAME}


def test_package_missing_template(layout, fake_template_service):
    with pytest.raises(PackagingError):
        TemplatePackager(fake_template_service).package_all(
            layout, ["not-there.yaml"], TEST_BUCKET_NAME, TEST_PROJECT_NAME,
        )
