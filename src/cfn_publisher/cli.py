# cli.py
import logging
import sys

import click

from cfn_publisher.errors import PublisherError
from cfn_publisher.settings import get_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_parameters(ctx, param, values):
    """KEY=VALUE pairs -> dict"""
    parameters = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}")
        parameters[key] = value
    return parameters


@click.group()
def cli():
    """Package CloudFormation templates and seed code and publish them to S3"""
    configure_logging(get_settings().log_level)


@cli.command()
@click.argument("bucket")
@click.argument("region")
def package(bucket, region):
    """Package and publish everything to s3://BUCKET/<project> in REGION"""
    from cfn_publisher.pipeline import run_pipeline

    try:
        report = run_pipeline(bucket, region)
    except PublisherError as e:
        logger.error(f"❌ Publication failed: {e}")
        sys.exit(1)

    click.echo("=" * 50)
    click.echo(report.render())
    click.echo("=" * 50)
    click.echo("Publication complete")


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Project Name: {settings.project_name}")
    print(f"  Project Root: {settings.project_root}")
    print(f"  Template Dir: {settings.template_dir}")
    print(f"  Seed Code Dir: {settings.seed_code_dir}")
    print(f"  Build Dir: {settings.build_dir}")
    print(f"  Self-packaged Templates: {' '.join(settings.self_package_templates)}")
    print(f"  AWS-packaged Templates: {' '.join(settings.aws_package_templates)}")
    print(f"  Uploaded Templates: {' '.join(settings.upload_templates)}")
    print(f"  AWS Endpoint: {settings.aws_endpoint_url}")


@cli.command()
@click.argument("bucket")
@click.argument("region")
@click.argument("template")
def validate(bucket, region, template):
    """Validate a published TEMPLATE"""
    from cfn_publisher.report import template_url
    from cfn_publisher.stacks import StackManager

    url = template_url(bucket, region, f"{get_settings().project_name}/{template}")
    try:
        result = StackManager(region).validate_template(url)
    except PublisherError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    click.echo(f"Template {template} is valid")
    if result['parameters']:
        click.echo(f"  Parameters: {', '.join(result['parameters'])}")
    if result['capabilities']:
        click.echo(f"  Capabilities: {', '.join(result['capabilities'])}")


@cli.command()
@click.argument("bucket")
@click.argument("region")
@click.argument("template")
@click.argument("stack_name")
@click.option("-p", "--parameter", "parameters", multiple=True, callback=parse_parameters,
              help="Stack parameter as KEY=VALUE, repeatable")
@click.option("--wait/--no-wait", default=True, help="Wait for CREATE_COMPLETE")
def create_stack(bucket, region, template, stack_name, parameters, wait):
    """Create STACK_NAME from a published TEMPLATE"""
    from cfn_publisher.report import template_url
    from cfn_publisher.stacks import StackManager

    url = template_url(bucket, region, f"{get_settings().project_name}/{template}")
    manager = StackManager(region)
    try:
        stack_id = manager.create_stack(stack_name, url, parameters)
        click.echo(f"Stack id: {stack_id}")
        if wait:
            manager.wait_for_create(stack_name)
            _echo_outputs(manager.describe_outputs(stack_name))
    except PublisherError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)


@cli.command()
@click.argument("region")
@click.argument("stack_name")
def describe_stack(region, stack_name):
    """Show the outputs of STACK_NAME"""
    from cfn_publisher.stacks import StackManager

    try:
        outputs = StackManager(region).describe_outputs(stack_name)
    except PublisherError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    _echo_outputs(outputs)


@cli.command()
@click.argument("region")
@click.argument("stack_name")
@click.option("--wait/--no-wait", default=True, help="Wait for DELETE_COMPLETE")
def delete_stack(region, stack_name, wait):
    """Delete STACK_NAME"""
    from cfn_publisher.stacks import StackManager

    manager = StackManager(region)
    try:
        if not manager.delete_stack_if_exists(stack_name):
            click.echo(f"Stack {stack_name} does not exist")
            return
        if wait:
            manager.wait_for_delete(stack_name)
    except PublisherError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    click.echo(f"Stack {stack_name} {'deleted' if wait else 'deletion started'}")


def _echo_outputs(outputs):
    if not outputs:
        click.echo("(no outputs)")
        return
    width = max(len(key) for key in outputs)
    for key, value in sorted(outputs.items()):
        click.echo(f"{key.ljust(width)}  {value}")


if __name__ == "__main__":
    cli()
