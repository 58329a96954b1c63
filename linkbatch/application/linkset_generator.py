import asyncio
import bz2
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from pydantic import BaseModel

from linkbatch.domain.exceptions import GenerationError
from linkbatch.domain.interfaces import Generator
from linkbatch.domain.models import Issue, LinkSetKind, Metadata

logger = logging.getLogger(__name__)

# Number of descriptors generated concurrently
MAX_CONCURRENT_METADATA = 3


class GenerationReport(BaseModel):
    generated: int = 0
    failed_link_sets: int = 0
    skipped_scripts: int = 0
    triples: int = 0


def _merge_parts(parts: Sequence[Path], output: Path) -> int:
    """
    Concatenates the part files into one bz2 N-Triples file, dropping
    comments and blank lines. The output is replaced atomically.
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=output.parent, prefix=f".{output.name}.")
    os.close(fd)
    triples = 0
    try:
        with bz2.open(tmp_name, "wt", encoding="utf-8") as out:
            for part in parts:
                with open(part, encoding="utf-8", errors="replace") as stream:
                    for line in stream:
                        if not line.strip() or line.startswith("#"):
                            continue
                        out.write(line if line.endswith("\n") else line + "\n")
                        triples += 1
        os.replace(tmp_name, output)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return triples


class LinksetGenerator:
    """
    Invokes the generator matching each linkset's kind and writes the links of
    every descriptor to <outdir>/<reponame>/<nicename>_links.nt.bz2.

    A failing linkset is recorded as an issue on that linkset; its siblings and
    the other descriptors are still generated.
    """

    def __init__(
        self,
        generators: Mapping[LinkSetKind, Generator],
        execute_scripts: bool = False,
        only_kind: Optional[LinkSetKind] = None,
        max_concurrent: int = MAX_CONCURRENT_METADATA,
    ):
        missing = [kind.value for kind in LinkSetKind if kind not in generators]
        if missing:
            raise ValueError(f"No generator registered for: {', '.join(missing)}")
        self.generators = dict(generators)
        self.execute_scripts = execute_scripts
        self.only_kind = only_kind
        self.max_concurrent = max(1, max_concurrent)

    def should_generate(self, metadata: Metadata) -> bool:
        return self.only_kind is None or metadata.has_kind(self.only_kind)

    async def generate_all(self, metadatas: List[Metadata], out_dir: Path) -> GenerationReport:
        report = GenerationReport()
        semaphore = asyncio.Semaphore(self.max_concurrent)
        selected = [m for m in metadatas if self.should_generate(m)]

        if self.only_kind is not None:
            logger.info(
                f"Generating {len(selected)} of {len(metadatas)} descriptors "
                f"containing {self.only_kind.value} linksets."
            )

        async def _bounded(metadata: Metadata) -> None:
            async with semaphore:
                logger.info(f"Processing {metadata.nicename} with {len(metadata.link_sets)} linksets")
                await self.generate(metadata, out_dir, report)

        results = await asyncio.gather(*[_bounded(m) for m in selected], return_exceptions=True)
        for metadata, result in zip(selected, results):
            if isinstance(result, Exception):
                logger.error(f"Unexpected error while generating {metadata.nicename}: {result}")
                metadata.issues.append(Issue.error(f"generation aborted: {result}"))

        logger.info(
            f"Generation completed. {report.generated} files written, "
            f"{report.failed_link_sets} linksets failed, {report.triples} triples."
        )
        return report

    async def generate(self, metadata: Metadata, out_dir: Path, report: GenerationReport) -> None:
        output = metadata.output_path(out_dir)

        with tempfile.TemporaryDirectory(prefix=f"{metadata.nicename}-") as tmp:
            parts: List[Path] = []
            succeeded = 0
            for position, link_set in enumerate(metadata.link_sets, start=1):
                if link_set.kind == LinkSetKind.SCRIPT and not self.execute_scripts:
                    logger.info(f"Skipping script {link_set.label} of {metadata.nicename}, scripts are disabled.")
                    report.skipped_scripts += 1
                    continue
                if link_set.missing_fields():
                    # already reported while loading
                    report.failed_link_sets += 1
                    continue

                part = Path(tmp) / f"{position}.nt"
                try:
                    await self.generators[link_set.kind].generate(link_set, part)
                except GenerationError as e:
                    logger.error(f"{metadata.nicename}: {link_set.label} failed: {e}")
                    link_set.issues.append(Issue.error(f"generation failed: {e}"))
                    report.failed_link_sets += 1
                    continue
                except Exception as e:
                    logger.exception(f"{metadata.nicename}: {link_set.label} raised an unexpected error")
                    link_set.issues.append(Issue.error(f"generation failed unexpectedly: {e}"))
                    report.failed_link_sets += 1
                    continue
                succeeded += 1
                if part.is_file():
                    parts.append(part)

            if not succeeded:
                if metadata.link_sets:
                    logger.warning(f"No linkset of {metadata.nicename} produced output, {output} left unchanged.")
                return

            try:
                triples = await asyncio.to_thread(_merge_parts, parts, output)
            except OSError as e:
                logger.error(f"Could not write {output}: {e}")
                metadata.issues.append(Issue.error(f"could not write {output.name}: {e}"))
                return

        report.generated += 1
        report.triples += triples
        logger.info(f"Wrote {triples} triples to {output}")
