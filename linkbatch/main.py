import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from linkbatch.application.issue_collector import IssueCollector
from linkbatch.application.linkset_generator import LinksetGenerator
from linkbatch.application.metadata_loader import MetadataLoader
from linkbatch.application.pipeline_service import PipelineService
from linkbatch.application.report_exporter import ReportExporter
from linkbatch.application.revision_scanner import RevisionScanner
from linkbatch.application.snapshot_archiver import SnapshotArchiver
from linkbatch.config import Settings, parse_settings
from linkbatch.domain.exceptions import ConfigurationError
from linkbatch.infrastructure.generators import default_generators
from linkbatch.infrastructure.validator import DescriptorRuleValidator

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )


def build_service(settings: Settings) -> PipelineService:
    generator = None
    archiver = None
    if settings.generate:
        generator = LinksetGenerator(
            generators=default_generators(
                link_config_command=settings.link_config_command,
                timeout=settings.sparql_timeout,
            ),
            execute_scripts=settings.execute_scripts,
            only_kind=settings.only_kind,
            max_concurrent=settings.concurrency,
        )
        archiver = SnapshotArchiver(settings.archive_dir)

    return PipelineService(
        loader=MetadataLoader(validator=DescriptorRuleValidator()),
        scanner=RevisionScanner(settings.archive_dir),
        collector=IssueCollector(),
        base_dir=settings.base_dir,
        out_dir=settings.out_dir,
        generator=generator,
        archiver=archiver,
        exporter=ReportExporter() if settings.export_json else None,
    )


async def main(argv: Optional[List[str]] = None) -> int:
    # Environment variables from .env provide the flag defaults
    load_dotenv()

    try:
        settings = parse_settings(argv)
        configure_logging(settings.verbose)
        settings.check()
    except ConfigurationError as e:
        configure_logging()
        logger.error(str(e))
        return 1

    service = build_service(settings)
    try:
        await service.run()
    except KeyboardInterrupt:
        logger.info("Run interrupted by user. Exiting.")
        return 130
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    cli()
