import logging
import shutil
import stat
from pathlib import Path

from pydantic import BaseModel

from linkbatch.domain.exceptions import ArchiveError
from linkbatch.domain.models import DATASET_DOMAIN, LANGUAGE_DOMAIN, LINKSET_FILE_SUFFIX
from linkbatch.infrastructure.filesystem import iter_files_with_suffix

logger = logging.getLogger(__name__)


class ArchiveReport(BaseModel):
    copied: int = 0
    failed: int = 0


class SnapshotArchiver:
    """
    Copies the generated linkset files of a snapshot into the archive so the
    current run becomes a revision:

        <outdir>/dbpedia.org/**/x_links.nt.bz2      -> <archive>/<outdir-name>/dbpedia.org/x_links.nt.bz2
        <outdir>/xxx.dbpedia.org/<lang>/**/...      -> <archive>/<outdir-name>/xxx.dbpedia.org/<lang>/...

    Existing archive files are overwritten, so archiving the same snapshot
    again always yields the same archive.
    """

    def __init__(self, archive_dir: Path):
        self.archive_dir = archive_dir

    def snapshot_target(self, out_dir: Path) -> Path:
        return self.archive_dir / out_dir.name

    def archive(self, out_dir: Path) -> ArchiveReport:
        report = ArchiveReport()
        target = self.snapshot_target(out_dir)

        self.copy_linkset_files(out_dir / DATASET_DOMAIN, target / DATASET_DOMAIN, report)

        language_root = out_dir / LANGUAGE_DOMAIN
        (target / LANGUAGE_DOMAIN).mkdir(parents=True, exist_ok=True)
        if language_root.is_dir():
            for language in sorted(p for p in language_root.iterdir() if p.is_dir()):
                self.copy_linkset_files(language, target / LANGUAGE_DOMAIN / language.name, report)

        logger.info(f"Archived {report.copied} linkset files to {target} ({report.failed} failed).")
        return report

    def copy_linkset_files(self, snapshot_dir: Path, archive_dir: Path, report: ArchiveReport) -> None:
        archive_dir.mkdir(parents=True, exist_ok=True)
        if not snapshot_dir.is_dir():
            logger.warning(f"Nothing to archive, {snapshot_dir} does not exist.")
            return

        for source in iter_files_with_suffix(snapshot_dir, LINKSET_FILE_SUFFIX):
            try:
                self._copy(source, archive_dir / source.name)
            except ArchiveError as e:
                logger.error(str(e))
                report.failed += 1
                continue
            report.copied += 1

    @staticmethod
    def _copy(source: Path, destination: Path) -> None:
        try:
            if destination.exists():
                destination.chmod(destination.stat().st_mode | stat.S_IWUSR)
            shutil.copyfile(source, destination)
        except OSError as e:
            raise ArchiveError(source, destination, str(e)) from e
        logger.debug(f"Copied {source} to {destination}")
