import argparse
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from linkbatch.domain.exceptions import ConfigurationError
from linkbatch.domain.models import LinkSetKind
from linkbatch.infrastructure.generators import DEFAULT_SPARQL_TIMEOUT
from linkbatch.application.linkset_generator import MAX_CONCURRENT_METADATA

# Debug flags restricting generation to descriptors with one linkset kind
ONLY_FLAGS = {
    "sparqlonly": LinkSetKind.SPARQL_QUERY,
    "scriptonly": LinkSetKind.SCRIPT,
    "ntfileonly": LinkSetKind.STATIC_NTRIPLES,
    "linkconfonly": LinkSetKind.LINK_CONFIGURATION,
}


class Settings(BaseModel):
    base_dir: Path = Path("links")
    out_dir: Path = Path("snapshot")
    archive_dir: Path = Path("archive")
    generate: bool = False
    execute_scripts: bool = False
    export_json: bool = True
    only_kind: Optional[LinkSetKind] = None
    link_config_command: Optional[str] = None
    sparql_timeout: int = Field(DEFAULT_SPARQL_TIMEOUT, gt=0)
    concurrency: int = Field(MAX_CONCURRENT_METADATA, ge=1)
    verbose: bool = False

    def check(self) -> None:
        if not self.base_dir.is_dir():
            raise ConfigurationError(f"Base directory {self.base_dir} does not exist.")
        if self.archive_dir.exists() and not self.archive_dir.is_dir():
            raise ConfigurationError(f"Archive {self.archive_dir} is not a directory.")
        if self.out_dir.exists() and not self.out_dir.is_dir():
            raise ConfigurationError(f"Output {self.out_dir} is not a directory.")


def _boolean(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkbatch",
        description="Parse linkset descriptors, generate links and track their revisions.",
    )
    parser.add_argument(
        "--basedir",
        default=os.getenv("LINKS_BASEDIR", "links"),
        help="Path to the directory under which descriptors are searched; defaults to 'links'.",
    )
    parser.add_argument(
        "--outdir",
        default=os.getenv("LINKS_OUTDIR", "snapshot"),
        help="Path to the directory where results are written; defaults to 'snapshot'.",
    )
    parser.add_argument(
        "--archive",
        default=os.getenv("LINKS_ARCHIVE", "archive"),
        help="Path to the directory where previous revisions reside; defaults to 'archive'.",
    )
    parser.add_argument(
        "--generate",
        action="store_true",
        help="Generate links. Without it the descriptors are only parsed and checked.",
    )
    parser.add_argument(
        "--nojs",
        action="store_true",
        help="Disable writing data.json.",
    )
    parser.add_argument(
        "--scripts",
        type=_boolean,
        default=os.getenv("LINKS_SCRIPTS", "false"),
        metavar="true|false",
        help="Scripts take a long time to run and are disabled by default.",
    )
    parser.add_argument(
        "--link-config-command",
        default=os.getenv("LINKS_LINK_CONFIG_COMMAND"),
        help="Command template for link-configuration linksets, with {config} and {output} placeholders.",
    )
    parser.add_argument(
        "--sparql-timeout",
        type=int,
        default=os.getenv("LINKS_SPARQL_TIMEOUT", str(DEFAULT_SPARQL_TIMEOUT)),
        help="Seconds a SPARQL endpoint or download may take.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=os.getenv("LINKS_CONCURRENCY", str(MAX_CONCURRENT_METADATA)),
        help="Number of descriptors generated at the same time.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")

    debug = parser.add_mutually_exclusive_group()
    for flag, kind in ONLY_FLAGS.items():
        debug.add_argument(
            f"--{flag}",
            action="store_true",
            help=f"Debug flag: only generate descriptors that contain {kind.value} linksets.",
        )
    return parser


def parse_settings(argv: Optional[List[str]] = None) -> Settings:
    """Parses command-line flags; argparse exits with status 2 on invalid flags."""
    parser = build_parser()
    args = parser.parse_args(argv)

    only_kind = next((kind for flag, kind in ONLY_FLAGS.items() if getattr(args, flag)), None)
    try:
        return Settings(
            base_dir=Path(args.basedir),
            out_dir=Path(args.outdir),
            archive_dir=Path(args.archive),
            generate=args.generate,
            execute_scripts=args.scripts,
            export_json=not args.nojs,
            only_kind=only_kind,
            link_config_command=args.link_config_command,
            sparql_timeout=args.sparql_timeout,
            concurrency=args.concurrency,
            verbose=args.verbose,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
