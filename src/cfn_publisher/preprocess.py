"""Placeholder substitution for self-packaged templates."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Set

from cfn_publisher.errors import PreprocessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubstitutionRule:
    """Replace each token of `replacements` with its value in `path`."""
    path: Path
    replacements: Dict[str, str]


def substitute_text(text: str, replacements: Dict[str, str]) -> str:
    """Replace every literal occurrence of each token. Missing tokens are ignored."""
    for token, value in replacements.items():
        text = text.replace(token, value)
    return text


class Preprocessor:
    """Rewrites placeholder tokens in template copies, at most once per file."""

    def __init__(self):
        self.rewritten: Set[Path] = set()

    def apply(self, rule: SubstitutionRule) -> bool:
        """
        Apply one substitution rule in place.

        :return: True if the file was rewritten by this call, False if it had
            already been rewritten during this run.
        """
        path = Path(rule.path).resolve()
        if path in self.rewritten:
            logger.debug(f"Skipping {path.name}, already rewritten in this run")
            return False

        try:
            original = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PreprocessError(f"Cannot read template {path}: {e}") from e

        for token, value in rule.replacements.items():
            count = original.count(token)
            if count:
                logger.info(f"   {path.name}: {token} -> {value} ({count}x)")
            else:
                logger.debug(f"   {path.name}: {token} not present")

        updated = substitute_text(original, rule.replacements)
        try:
            path.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise PreprocessError(f"Cannot write template {path}: {e}") from e

        self.rewritten.add(path)
        return True

    def apply_all(self, rules: Iterable[SubstitutionRule]) -> List[Path]:
        """Apply every rule and return the files rewritten."""
        return [Path(rule.path) for rule in rules if self.apply(rule)]


def build_rules(paths: Iterable[Path], replacements: Dict[str, str]) -> List[SubstitutionRule]:
    """Same replacements for every file in `paths`."""
    return [SubstitutionRule(path=Path(p), replacements=dict(replacements)) for p in paths]
