from pathlib import Path
from typing import Any, List, Mapping, Protocol

from linkbatch.domain.models import Issue, LinkSet


class Validator(Protocol):
    """Semantic checks over a raw descriptor."""

    def validate(self, descriptor: Mapping[str, Any]) -> List[Issue]:
        ...


class Generator(Protocol):
    """
    Produces the links of one linkset. Implementations write N-Triples to
    `target` and raise GenerationError when they cannot.
    """

    async def generate(self, link_set: LinkSet, target: Path) -> None:
        ...
