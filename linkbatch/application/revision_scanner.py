import logging
from pathlib import Path
from typing import List

from pydantic import BaseModel

from linkbatch.domain.exceptions import ScanError
from linkbatch.domain.models import Metadata, Revision
from linkbatch.infrastructure.filesystem import count_triples

logger = logging.getLogger(__name__)


class ScanReport(BaseModel):
    revisions: int = 0
    found: int = 0
    missing: int = 0
    unreadable: int = 0


class RevisionScanner:
    """
    Rebuilds the revision history of every Metadata from the archive.

    Each directory directly below the archive root is one revision. For every
    (metadata, revision) pair the archived file
    <revision>/<reponame>/<nicename>_links.nt.bz2 is streamed and its
    non-comment lines are counted; a revision without the file counts 0.
    """

    def __init__(self, archive_dir: Path):
        self.archive_dir = archive_dir

    def list_revisions(self) -> List[Path]:
        """
        Revision directories sorted by path. This is plain string order, which
        is only chronological when revision names sort that way.
        """
        if not self.archive_dir.is_dir():
            logger.warning(f"Archive {self.archive_dir} does not exist, no revisions to scan.")
            return []
        return sorted(p for p in self.archive_dir.iterdir() if p.is_dir())

    @staticmethod
    def archived_file(revision: Path, metadata: Metadata) -> Path:
        return revision / metadata.reponame / metadata.file_name

    def scan(self, metadatas: List[Metadata]) -> ScanReport:
        revisions = self.list_revisions()
        report = ScanReport(revisions=len(revisions))

        for metadata in metadatas:
            for revision in revisions:
                triple_count = self._count(self.archived_file(revision, metadata), report)
                metadata.revisions.append(Revision(name=revision.name, triple_count=triple_count))

        logger.info(
            f"Scanned {report.revisions} revisions for {len(metadatas)} descriptors: "
            f"{report.found} files found, {report.missing} missing, {report.unreadable} unreadable."
        )
        return report

    @staticmethod
    def _count(archive_file: Path, report: ScanReport) -> int:
        if not archive_file.is_file():
            logger.warning(f"no archive found for {archive_file.absolute()}")
            report.missing += 1
            return 0
        try:
            triple_count = count_triples(archive_file)
        except ScanError as e:
            logger.warning(f"{e}, counting 0 triples")
            report.unreadable += 1
            return 0
        logger.debug(f"archive found for {archive_file.absolute()} triples: {triple_count}")
        report.found += 1
        return triple_count
