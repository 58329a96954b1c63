from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Every generated and archived linkset file ends with this suffix
LINKSET_FILE_SUFFIX = "_links.nt.bz2"

# Top-level output domains; the language domain has one subdirectory per language
DATASET_DOMAIN = "dbpedia.org"
LANGUAGE_DOMAIN = "xxx.dbpedia.org"


class Severity(str, Enum):
    WARN = "WARN"
    ERROR = "ERROR"


class LinkSetKind(str, Enum):
    SPARQL_QUERY = "sparql-query"
    SCRIPT = "script"
    STATIC_NTRIPLES = "static-ntriples"
    LINK_CONFIGURATION = "link-configuration"


# Fields a linkset of each kind cannot be generated without
REQUIRED_FIELDS: Dict[LinkSetKind, Tuple[str, ...]] = {
    LinkSetKind.SPARQL_QUERY: ("endpoint", "query"),
    LinkSetKind.SCRIPT: ("script",),
    LinkSetKind.STATIC_NTRIPLES: ("file",),
    LinkSetKind.LINK_CONFIGURATION: ("config",),
}


class Issue(BaseModel):
    """
    A validation or processing finding. Issues are append-only and never
    modified after creation.
    """
    model_config = ConfigDict(frozen=True)

    # Known levels become Severity members; anything else is kept verbatim so
    # it can be reported as an unimplemented severity instead of being lost.
    level: Union[Severity, str] = Field(..., union_mode="left_to_right")
    message: str

    @classmethod
    def warn(cls, message: str) -> "Issue":
        return cls(level=Severity.WARN, message=message)

    @classmethod
    def error(cls, message: str) -> "Issue":
        return cls(level=Severity.ERROR, message=message)


class LinkSet(BaseModel):
    """One link-generation unit of a descriptor."""
    model_config = ConfigDict(populate_by_name=True)

    kind: LinkSetKind = Field(..., alias="type")
    name: Optional[str] = None
    endpoint: Optional[str] = None
    query: Optional[str] = None
    script: Optional[str] = None
    file: Optional[str] = None
    config: Optional[str] = None
    issues: List[Issue] = Field(default_factory=list)
    # Directory of the owning descriptor, relative paths resolve against it
    base_dir: Path = Field(default=Path("."), exclude=True)

    @property
    def label(self) -> str:
        return self.name or self.kind.value

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_FIELDS[self.kind] if not getattr(self, f)]

    def resolve(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self.base_dir / path


class Revision(BaseModel):
    """Triple count of one Metadata in one archived snapshot."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Archive directory name of the revision")
    triple_count: int = Field(..., ge=0, serialization_alias="triplecount")


class Metadata(BaseModel):
    """
    One dataset's interlinking descriptor, enriched during a run with
    linkset issues and the revision history of its archived output.
    """
    nicename: str = Field(..., min_length=1)
    reponame: str = Field(..., min_length=1)
    descriptor: Path
    description: Optional[str] = None
    license: Optional[str] = None
    maintainers: List[str] = Field(default_factory=list)
    link_sets: List[LinkSet] = Field(default_factory=list, serialization_alias="linkSets")
    issues: List[Issue] = Field(default_factory=list)
    revisions: List[Revision] = Field(default_factory=list)

    @property
    def file_name(self) -> str:
        return f"{self.nicename}{LINKSET_FILE_SUFFIX}"

    def output_path(self, root: Path) -> Path:
        return root / self.reponame / self.file_name

    def has_kind(self, kind: LinkSetKind) -> bool:
        return any(link_set.kind == kind for link_set in self.link_sets)
