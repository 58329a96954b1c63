from pathlib import Path
from typing import Any, Dict, List

from linkbatch.domain.models import DATASET_DOMAIN, LANGUAGE_DOMAIN, Issue, LinkSet, Metadata


class DescriptorTranslator:
    """
    Anti-corruption layer that translates raw descriptor JSON documents into Metadata instances.
    """

    @staticmethod
    def to_domain(
        raw: Dict[str, Any],
        descriptor: Path,
        base_dir: Path,
        issues: List[Issue],
    ) -> Metadata:
        """
        Transforms a parsed descriptor into a Metadata.

        Args:
            raw (Dict[str, Any]): The parsed JSON object of the descriptor.
            descriptor (Path): Location of the descriptor file.
            base_dir (Path): Directory the descriptors were discovered under.
            issues (List[Issue]): Descriptor-level issues reported by the validator.

        Returns:
            Metadata: The domain model with its linksets. Linksets missing a
            field their kind requires carry an ERROR issue.
        """
        descriptor_dir = descriptor.parent
        repo_dir = descriptor_dir.parent
        try:
            reponame = repo_dir.relative_to(base_dir).as_posix()
        except ValueError:
            raise ValueError(f"{descriptor} is not below {base_dir}")
        parts = reponame.split("/")
        if not (reponame == DATASET_DOMAIN or (len(parts) == 2 and parts[0] == LANGUAGE_DOMAIN)):
            raise ValueError(
                f"descriptor must be placed in {DATASET_DOMAIN}/<nicename>/ or "
                f"{LANGUAGE_DOMAIN}/<lang>/<nicename>/ below the base directory, not in {reponame}"
            )

        link_sets = []
        raw_link_sets = raw.get('linkSets')
        if raw_link_sets is None:
            raw_link_sets = []
        if not isinstance(raw_link_sets, list):
            raise ValueError("linkSets must be a list")

        for position, raw_link_set in enumerate(raw_link_sets, start=1):
            if not isinstance(raw_link_set, dict):
                raise ValueError(f"linkset #{position} is not an object")
            # findings are only produced by validation and generation
            fields = {k: v for k, v in raw_link_set.items() if k not in ('issues', 'base_dir')}
            link_set = LinkSet.model_validate({**fields, 'base_dir': descriptor_dir})
            for field in link_set.missing_fields():
                link_set.issues.append(Issue.error(
                    f"{link_set.label} of {descriptor}: {link_set.kind.value} linkset requires '{field}'"
                ))
            link_sets.append(link_set)

        nicename = str(raw.get('nicename') or descriptor_dir.name)
        if "/" in nicename or "\\" in nicename or nicename in (".", ".."):
            raise ValueError(f"nicename '{nicename}' is not a valid file name")

        return Metadata(
            nicename=nicename,
            reponame=reponame,
            descriptor=descriptor,
            description=raw.get('description'),
            license=raw.get('license'),
            maintainers=raw.get('maintainers', []) or [],
            link_sets=link_sets,
            issues=list(issues),
        )
