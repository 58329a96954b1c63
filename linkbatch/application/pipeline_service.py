import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from linkbatch.application.issue_collector import IssueCollector
from linkbatch.application.linkset_generator import GenerationReport, LinksetGenerator
from linkbatch.application.metadata_loader import LoadReport, MetadataLoader
from linkbatch.application.report_exporter import ReportExporter
from linkbatch.application.revision_scanner import RevisionScanner, ScanReport
from linkbatch.application.snapshot_archiver import ArchiveReport, SnapshotArchiver
from linkbatch.domain.models import Issue, Metadata

logger = logging.getLogger(__name__)


class RunSummary(BaseModel):
    load: LoadReport
    generation: Optional[GenerationReport] = None
    archive: Optional[ArchiveReport] = None
    scan: ScanReport
    issues: List[Issue] = Field(default_factory=list)
    report: Optional[Path] = None

    @property
    def metadata(self) -> List[Metadata]:
        return self.load.metadata


class PipelineService:
    """
    Runs one batch over the descriptors in strict phase order:
    load, generate and archive (only when a generator is given), scan the
    archive, report issues, export (only when an exporter is given).

    Revision scanning runs after archiving so the current snapshot is part
    of the history.
    """

    def __init__(
            self,
            loader: MetadataLoader,
            scanner: RevisionScanner,
            collector: IssueCollector,
            base_dir: Path,
            out_dir: Path,
            generator: Optional[LinksetGenerator] = None,
            archiver: Optional[SnapshotArchiver] = None,
            exporter: Optional[ReportExporter] = None,
    ):
        self.loader = loader
        self.scanner = scanner
        self.collector = collector
        self.base_dir = base_dir
        self.out_dir = out_dir
        self.generator = generator
        self.archiver = archiver
        self.exporter = exporter

    async def run(self) -> RunSummary:
        logger.info(f"Loading descriptors from {self.base_dir}.")
        load_report = self.loader.load(self.base_dir)
        metadatas = load_report.metadata

        generation_report = None
        archive_report = None
        if self.generator is not None:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            generation_report = await self.generator.generate_all(metadatas, self.out_dir)
            if self.archiver is not None:
                archive_report = self.archiver.archive(self.out_dir)

        scan_report = self.scanner.scan(metadatas)
        # also prints all issues
        issues = self.collector.collect(metadatas)

        report_path = None
        if self.exporter is not None:
            report_path = self.exporter.export(metadatas, self.out_dir)

        summary = RunSummary(
            load=load_report,
            generation=generation_report,
            archive=archive_report,
            scan=scan_report,
            issues=issues,
            report=report_path,
        )
        logger.debug(
            f"Run metrics: discovered={load_report.discovered} loaded={len(metadatas)} "
            f"load_failures={len(load_report.failed)} generation={generation_report} "
            f"archive={archive_report} scan={scan_report} issues={len(issues)}"
        )
        return summary
