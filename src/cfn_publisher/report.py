"""Run report: what was built and published, and how to deploy it."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


def template_url(bucket_name: str, region: str, key: str) -> str:
    """Regional virtual path URL CloudFormation accepts as --template-url."""
    return f"https://s3.{region}.amazonaws.com/{bucket_name}/{key}"


def validate_command(url: str) -> str:
    return f"aws cloudformation validate-template --template-url {url}"


def create_stack_command(url: str, region: str) -> str:
    return (
        f"aws cloudformation create-stack --template-url {url} --region {region} "
        f"--stack-name <STACK_NAME> --disable-rollback "
        f"--capabilities CAPABILITY_IAM CAPABILITY_NAMED_IAM "
        f"--parameters ParameterKey=,ParameterValue="
    )


@dataclass
class PublishedTemplate:
    name: str
    key: str
    source: Path
    packaged: bool
    url: str


@dataclass
class PublishReport:
    """Everything one pipeline run produced."""
    bucket_name: str
    region: str
    prefix: str
    bucket_created: bool = False
    objects_cleared: int = 0
    rewritten_templates: List[Path] = field(default_factory=list)
    archives: List[Path] = field(default_factory=list)
    packaged_templates: Dict[str, Path] = field(default_factory=dict)
    uploaded_keys: List[str] = field(default_factory=list)
    tagged_keys: List[str] = field(default_factory=list)
    templates: List[PublishedTemplate] = field(default_factory=list)

    def render(self) -> str:
        """Human readable summary with the next commands for each template."""
        lines = [
            f"Published to s3://{self.bucket_name}/{self.prefix}/ ({self.region})",
            f"  Bucket created: {self.bucket_created}",
            f"  Objects cleared: {self.objects_cleared}",
            f"  Objects uploaded: {len(self.uploaded_keys)}",
            f"  Objects tagged: {len(self.tagged_keys)}",
        ]
        for template in self.templates:
            variant = "packaged" if template.packaged else "plain"
            lines.append("")
            lines.append(f"{template.name} ({variant})")
            lines.append(f"To validate template {template.name}:")
            lines.append(validate_command(template.url))
            lines.append("To deploy stack execute:")
            lines.append(create_stack_command(template.url, self.region))
        return "\n".join(lines)
