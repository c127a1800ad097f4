"""Build output layout shared by the pipeline stages."""
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from cfn_publisher.errors import ArchiveError
from cfn_publisher.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildLayout:
    """Where a run for one region reads sources and writes its output.

    build/<region>/                    templates copied from the template dir
    build/<region>/seed-code/          one zip per seed code project
    build/<region>/<source archive>    full source snapshot
    build/cfn-templates-<region>.zip   template bundle
    """
    project_root: Path
    template_dir: Path
    seed_code_dir: Path
    build_root: Path
    region: str
    source_archive_name: str

    @classmethod
    def from_settings(cls, settings: Settings, region: str) -> "BuildLayout":
        root = Path(settings.project_root).resolve()
        return cls(
            project_root=root,
            template_dir=root / settings.template_dir,
            seed_code_dir=root / settings.seed_code_dir,
            build_root=root / settings.build_dir,
            region=region,
            source_archive_name=settings.source_archive_name,
        )

    @property
    def output_dir(self) -> Path:
        return self.build_root / self.region

    @property
    def seed_code_output_dir(self) -> Path:
        return self.output_dir / "seed-code"

    @property
    def source_archive(self) -> Path:
        return self.output_dir / self.source_archive_name

    @property
    def template_archive(self) -> Path:
        return self.build_root / f"cfn-templates-{self.region}.zip"

    def template(self, name: str) -> Path:
        """Path of a template inside the build output directory."""
        return self.output_dir / name

    def seed_code_project(self, name: str) -> Path:
        return self.seed_code_dir / name


def prepare_build_dir(layout: BuildLayout) -> List[Path]:
    """
    Remove the previous build for the region and stage fresh template copies.

    The source tree is never modified; later stages only touch the copies.

    :return: The staged template paths.
    """
    try:
        if layout.output_dir.exists():
            shutil.rmtree(layout.output_dir)
        layout.template_archive.unlink(missing_ok=True)

        layout.seed_code_output_dir.mkdir(parents=True, exist_ok=True)

        staged = []
        for template in sorted(layout.template_dir.glob("*.yaml")):
            target = layout.template(template.name)
            shutil.copy2(template, target)
            staged.append(target)
    except OSError as e:
        raise ArchiveError(f"Failed to prepare build directory {layout.output_dir}: {e}") from e

    logger.info(f"Staged {len(staged)} templates in {layout.output_dir}")
    return staged
