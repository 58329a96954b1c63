import logging
from typing import List

from linkbatch.domain.models import Issue, Metadata, Severity

logger = logging.getLogger(__name__)


def print_issue(issue: Issue, context: str = "", log: logging.Logger = logger) -> None:
    """Logs an issue at its severity; unknown severities are reported as a defect."""
    message = f"[{context}] {issue.message}" if context else issue.message
    if issue.level is Severity.WARN:
        log.warning(message)
    elif issue.level is Severity.ERROR:
        log.error(message)
    else:
        log.error(f"Level {issue.level} not implemented in issue reporting: {message}")


class IssueCollector:
    """Flattens descriptor and linkset issues into one list, in load order."""

    def collect(self, metadatas: List[Metadata]) -> List[Issue]:
        issues: List[Issue] = []
        for metadata in metadatas:
            for issue in metadata.issues:
                issues.append(issue)
                print_issue(issue, metadata.nicename)
            for link_set in metadata.link_sets:
                for issue in link_set.issues:
                    issues.append(issue)
                    print_issue(issue, f"{metadata.nicename}/{link_set.label}")
        logger.info(f"{len(issues)} issues reported.")
        return issues
