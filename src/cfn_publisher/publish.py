"""Publication of archives and templates to the project prefix."""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from cfn_publisher.aws.objects import clear_prefix, tag_object, upload_file
from cfn_publisher.errors import PublishError
from cfn_publisher.layout import BuildLayout
from cfn_publisher.report import PublishedTemplate, template_url

try:
    from mypy_boto3_s3 import S3Client
except ImportError:
    ...

logger = logging.getLogger(__name__)

SEED_CODE_FOLDER = "seed-code"


class Publisher:
    """Uploads a run's output to s3://<bucket>/<project>/."""

    def __init__(
        self,
        s3_client: "S3Client",
        bucket_name: str,
        project_name: str,
        region: str,
        provisioning_tags: Optional[Dict[str, str]] = None,
    ):
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.project_name = project_name
        self.region = region
        self.provisioning_tags = provisioning_tags or {"servicecatalog:provisioning": "true"}

    @property
    def prefix(self) -> str:
        return f"{self.project_name}/"

    def key(self, *parts: str) -> str:
        return "/".join((self.project_name,) + parts)

    def clear(self) -> int:
        """Delete everything under the project prefix."""
        logger.info(f"Clearing the project directory for {self.project_name} in {self.bucket_name}...")
        return clear_prefix(self.bucket_name, self.prefix, self.s3_client)

    def publish_source(self, archive: Path) -> str:
        """Source snapshot -> <project>/<archive name>"""
        return upload_file(self.bucket_name, self.key(archive.name), archive, self.s3_client)

    def publish_seed_code(self, archives: Sequence[Path]) -> List[str]:
        """
        Upload seed code archives to <project>/seed-code/ and tag each one.

        The provisioning tag lets the Service Catalog launch role read the
        objects, so a seed code archive without it is unusable.
        """
        keys = []
        for archive in archives:
            keys.append(upload_file(
                self.bucket_name, self.key(SEED_CODE_FOLDER, archive.name), archive, self.s3_client
            ))
        for key in keys:
            tag_object(self.bucket_name, key, self.provisioning_tags, self.s3_client)
        return keys

    def publish_templates(
        self,
        layout: BuildLayout,
        templates: Sequence[str],
        packaged: Dict[str, Path],
    ) -> List[PublishedTemplate]:
        """
        Upload each template under its own name, preferring the packaged variant.
        """
        logger.info(f"Copying cloudformation templates and files to S3: {' '.join(templates)}")
        published = []
        for name in templates:
            packaged_path = packaged.get(name)
            if packaged_path is not None and Path(packaged_path).exists():
                source, is_packaged = Path(packaged_path), True
            else:
                source, is_packaged = layout.template(name), False

            if not source.exists():
                raise PublishError(f"Template to upload not found: {source}")

            key = upload_file(self.bucket_name, self.key(name), source, self.s3_client)
            published.append(PublishedTemplate(
                name=name,
                key=key,
                source=source,
                packaged=is_packaged,
                url=template_url(self.bucket_name, self.region, key),
            ))
        return published
