"""Deterministic zip archives of the source tree, templates and seed code."""
import fnmatch
import logging
import os
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cfn_publisher.errors import ArchiveError
from cfn_publisher.layout import BuildLayout

logger = logging.getLogger(__name__)

# Earliest timestamp a zip entry can carry; used for every entry so archives
# built from the same files are byte-identical.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
FILE_MODE = 0o644
EXECUTABLE_MODE = 0o755


@dataclass
class ArchiveResult:
    """An archive written to disk and the entry names it holds, in order."""
    path: Path
    entries: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return self.path.stat().st_size


def is_excluded(relative_path: str, patterns: Sequence[str]) -> bool:
    """True if a posix-style relative path matches any exclusion pattern."""
    for pattern in patterns:
        pattern = pattern.lstrip("/")
        if fnmatch.fnmatch(relative_path, pattern):
            return True
    return False


def entry_mode(file_path: Path) -> int:
    """0755 for files the owner can execute, 0644 for everything else."""
    if os.stat(file_path).st_mode & stat.S_IXUSR:
        return EXECUTABLE_MODE
    return FILE_MODE


def collect_files(
    root: Path,
    exclude_patterns: Sequence[str] = (),
    skip: Iterable[Path] = (),
) -> List[Tuple[Path, str]]:
    """
    Walk `root` and return (file path, archive name) pairs sorted by archive name.

    Directories matching an exclusion pattern are pruned, files matching one
    are skipped. Paths in `skip` are never included. Symlinked directories
    are followed, except those pointing back into a directory already on
    the current path.
    """
    root = Path(root)
    if not root.is_dir():
        raise ArchiveError(f"Archive source is not a directory: {root}")

    skip_set = {Path(p).resolve() for p in skip}
    files = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        current = Path(dirpath)
        relative_dir = current.relative_to(root).as_posix()
        relative_dir = "" if relative_dir == "." else relative_dir + "/"
        ancestors = {current.resolve(), *(p.resolve() for p in current.parents)}

        kept_dirs = []
        for name in dirnames:
            rel = relative_dir + name
            if is_excluded(rel, exclude_patterns) or is_excluded(rel + "/", exclude_patterns):
                continue
            if (current / name).is_symlink() and (current / name).resolve() in ancestors:
                logger.warning(f"Skipping symlink loop: {current / name}")
                continue
            kept_dirs.append(name)
        dirnames[:] = sorted(kept_dirs)

        for name in filenames:
            path = current / name
            rel = relative_dir + name
            if path.resolve() in skip_set or is_excluded(rel, exclude_patterns):
                continue
            files.append((path, rel))

    return sorted(files, key=lambda item: item[1])


def write_archive(archive_path: Path, files: Sequence[Tuple[Path, str]]) -> ArchiveResult:
    """
    Write files into a zip with fixed timestamps. Entry permissions are
    normalized to 0644, or 0755 when the source file is executable.

    The zip is written beside its target and renamed into place only once
    complete, so a failed build never leaves a partial archive behind.
    """
    archive_path = Path(archive_path)
    partial_path = archive_path.with_name(archive_path.name + ".partial")
    entries = []

    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(partial_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
            for file_path, arcname in files:
                info = zipfile.ZipInfo(arcname, date_time=FIXED_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = entry_mode(file_path) << 16
                zipf.writestr(info, Path(file_path).read_bytes())
                entries.append(arcname)
        os.replace(partial_path, archive_path)
    except (OSError, zipfile.BadZipFile) as e:
        partial_path.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to build archive {archive_path}: {e}") from e

    result = ArchiveResult(path=archive_path, entries=entries)
    logger.info(f"Created archive: {archive_path} ({result.size} bytes, {len(entries)} files)")
    return result


def build_archive(
    archive_path: Path,
    root: Path,
    exclude_patterns: Sequence[str] = (),
) -> ArchiveResult:
    """Archive everything under `root` except excluded paths and the archive itself."""
    files = collect_files(root, exclude_patterns, skip=[archive_path])
    return write_archive(archive_path, files)


def build_source_archive(layout: BuildLayout, exclude_patterns: Sequence[str]) -> ArchiveResult:
    """Full snapshot of the project tree."""
    logger.info(f"Zipping the source code in {layout.project_root}")
    # The build directory is always left out, whatever the configured patterns say
    patterns = list(exclude_patterns)
    if layout.build_root.is_relative_to(layout.project_root):
        build_rel = layout.build_root.relative_to(layout.project_root).as_posix()
        patterns.append(f"{build_rel}/*")
    return build_archive(layout.source_archive, layout.project_root, patterns)


def build_template_archive(layout: BuildLayout, templates: Optional[Sequence[Path]] = None) -> ArchiveResult:
    """Bundle of the staged CloudFormation templates."""
    logger.info(f"Zipping CloudFormation templates in {layout.output_dir}")
    if templates is None:
        templates = sorted(layout.output_dir.glob("*.yaml"))
    files = sorted(((Path(t), Path(t).name) for t in templates), key=lambda item: item[1])
    return write_archive(layout.template_archive, files)


def build_seed_code_archives(layout: BuildLayout, projects: Dict[str, str]) -> List[ArchiveResult]:
    """One archive per seed code project, with paths relative to the project directory."""
    logger.info("Zipping MLOps project seed code")
    results = []
    for project_dir, archive_name in sorted(projects.items()):
        source = layout.seed_code_project(project_dir)
        if not source.is_dir():
            raise ArchiveError(f"Seed code directory not found: {source}")
        target = layout.seed_code_output_dir / archive_name
        results.append(build_archive(target, source, ["*__pycache__*", "*.DS_Store*"]))
    return results
