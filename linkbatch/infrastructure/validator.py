import re
from typing import Any, List, Mapping

from linkbatch.domain.models import Issue, LinkSetKind

KNOWN_KEYS = frozenset({"nicename", "description", "license", "maintainers", "linkSets"})
NICENAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class DescriptorRuleValidator:
    """
    Default descriptor checks. Problems that leave the descriptor usable are
    WARN, problems that will break generation or archiving are ERROR.
    """

    def validate(self, descriptor: Mapping[str, Any]) -> List[Issue]:
        issues: List[Issue] = []

        nicename = descriptor.get("nicename")
        if nicename is not None and not NICENAME_PATTERN.match(str(nicename)):
            issues.append(Issue.error(f"nicename '{nicename}' cannot be used as a file name"))

        if not descriptor.get("license"):
            issues.append(Issue.warn("no license given"))
        if not descriptor.get("maintainers"):
            issues.append(Issue.warn("no maintainers given"))

        unknown = sorted(set(descriptor) - KNOWN_KEYS)
        if unknown:
            issues.append(Issue.warn(f"unknown keys ignored: {', '.join(unknown)}"))

        link_sets = descriptor.get("linkSets") or []
        if not isinstance(link_sets, list):
            issues.append(Issue.error("linkSets must be a list"))
            link_sets = []
        elif not link_sets:
            issues.append(Issue.warn("descriptor defines no linksets"))

        for position, link_set in enumerate(link_sets, start=1):
            if not isinstance(link_set, Mapping):
                continue
            if link_set.get("type") != LinkSetKind.SPARQL_QUERY.value:
                continue
            endpoint = link_set.get("endpoint")
            if endpoint and not str(endpoint).startswith(("http://", "https://")):
                issues.append(Issue.error(
                    f"linkset #{position}: endpoint '{endpoint}' is not an http(s) URL"
                ))

        return issues
