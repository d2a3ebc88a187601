"""DocumentLoader: reads diff documents from disk, reporting failures per file."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from scorediff.models import DocumentLoadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedDocument:
    name: str
    text: str


@dataclass
class LoadReport:
    """Documents that were read, and the ones that could not be."""

    documents: list[LoadedDocument] = field(default_factory=list)
    failures: list[DocumentLoadFailure] = field(default_factory=list)

    def as_pairs(self) -> list[tuple[str | None, str]]:
        return [(document.name, document.text) for document in self.documents]


class DocumentLoader:
    """
    Reads diff text files.

    Directories are expanded to the files matching *pattern* (sorted by name).
    A file that cannot be read or decoded is recorded as a
    :class:`DocumentLoadFailure`; the remaining files are still loaded.
    """

    def __init__(self, encoding: str = "utf-8", pattern: str = "*.txt") -> None:
        self.encoding = encoding
        self.pattern = pattern

    def _expand(self, path: Path, failures: list[DocumentLoadFailure]) -> list[Path]:
        if not path.is_dir():
            return [path]
        matches = sorted(child for child in path.glob(self.pattern) if child.is_file())
        if not matches:
            failures.append(
                DocumentLoadFailure(
                    name=str(path), reason=f"no files matching '{self.pattern}'"
                )
            )
        return matches

    def load(self, paths: Iterable[str | Path]) -> LoadReport:
        report = LoadReport()
        for raw_path in paths:
            for path in self._expand(Path(raw_path), report.failures):
                try:
                    text = path.read_text(encoding=self.encoding)
                except (OSError, UnicodeDecodeError) as exc:
                    logger.warning("Could not read %s: %s", path, exc)
                    report.failures.append(DocumentLoadFailure(name=str(path), reason=str(exc)))
                    continue
                report.documents.append(LoadedDocument(name=path.name, text=text))

        logger.debug(
            "Loaded %d document(s), %d failure(s)", len(report.documents), len(report.failures)
        )
        return report
