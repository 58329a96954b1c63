import logging
import os
from pathlib import Path
from typing import List

from pydantic import TypeAdapter

from linkbatch.domain.models import Metadata

logger = logging.getLogger(__name__)

REPORT_FILENAME = "data.json"

_metadata_list = TypeAdapter(List[Metadata])


class ReportExporter:
    """
    Serializes the Metadata collection, revisions included, for dashboards.
    Export only reads the models.
    """

    def __init__(self, filename: str = REPORT_FILENAME):
        self.filename = filename

    def render(self, metadatas: List[Metadata]) -> bytes:
        return _metadata_list.dump_json(metadatas, by_alias=True)

    def export(self, metadatas: List[Metadata], out_dir: Path) -> Path:
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / self.filename
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            tmp.write_bytes(self.render(metadatas))
            os.replace(tmp, target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        logger.info(f"wrote json to {target}")
        return target
