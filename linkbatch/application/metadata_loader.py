import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from linkbatch.domain.exceptions import LoadError
from linkbatch.domain.interfaces import Validator
from linkbatch.domain.models import Metadata
from linkbatch.infrastructure.acl import DescriptorTranslator
from linkbatch.infrastructure.filesystem import iter_files_named

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAME = "metadata.json"


class LoadReport(BaseModel):
    metadata: List[Metadata] = Field(default_factory=list)
    failed: List[Path] = Field(default_factory=list)
    discovered: int = 0


def read_descriptor(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(path, str(e)) from e
    except json.JSONDecodeError as e:
        raise LoadError(path, f"invalid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise LoadError(path, "descriptor must be a JSON object")
    return raw


class MetadataLoader:
    """
    Discovers every descriptor below a base directory and turns each one into
    a Metadata. A descriptor that fails to load is logged and skipped, it
    never stops the others from loading.
    """

    def __init__(self, validator: Validator, descriptor_filename: str = DESCRIPTOR_FILENAME):
        self.validator = validator
        self.descriptor_filename = descriptor_filename

    def load(self, base_dir: Path) -> LoadReport:
        report = LoadReport()
        nicenames = set()

        for path in iter_files_named(base_dir, self.descriptor_filename):
            report.discovered += 1
            try:
                metadata = self.load_one(path, base_dir)
                if metadata.nicename in nicenames:
                    raise LoadError(path, f"nicename '{metadata.nicename}' is already used")
            except LoadError as e:
                logger.error(str(e))
                report.failed.append(path)
                continue
            nicenames.add(metadata.nicename)
            report.metadata.append(metadata)

        logger.info(
            f"Finished processing all {len(report.metadata)} {self.descriptor_filename} files "
            f"({len(report.failed)} failed)."
        )
        return report

    def load_one(self, path: Path, base_dir: Path) -> Metadata:
        raw = read_descriptor(path)
        try:
            issues = self.validator.validate(raw)
        except Exception as e:
            raise LoadError(path, f"validation failed: {e}") from e
        try:
            return DescriptorTranslator.to_domain(raw, path, base_dir, issues)
        except ValueError as e:
            raise LoadError(path, str(e)) from e
