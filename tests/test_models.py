import json
import unittest
from pathlib import Path

from pydantic import ValidationError

from linkbatch.domain.models import Issue, LinkSet, LinkSetKind, Metadata, Revision, Severity


class TestIssue(unittest.TestCase):
    def test_known_levels_become_severities(self) -> None:
        self.assertIs(Issue(level="WARN", message="m").level, Severity.WARN)
        self.assertIs(Issue(level="ERROR", message="m").level, Severity.ERROR)

    def test_unknown_level_is_kept(self) -> None:
        issue = Issue(level="INFO", message="m")
        self.assertEqual(issue.level, "INFO")
        self.assertNotIsInstance(issue.level, Severity)

    def test_issue_is_immutable(self) -> None:
        issue = Issue.warn("m")
        with self.assertRaises(ValidationError):
            issue.message = "changed"


class TestLinkSet(unittest.TestCase):
    def test_missing_fields_depend_on_kind(self) -> None:
        sparql = LinkSet.model_validate({"type": "sparql-query", "endpoint": "http://x/sparql"})
        self.assertEqual(sparql.missing_fields(), ["query"])

        static = LinkSet.model_validate({"type": "static-ntriples", "file": "links.nt"})
        self.assertEqual(static.missing_fields(), [])

    def test_unknown_kind_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            LinkSet.model_validate({"type": "carrier-pigeon"})

    def test_relative_paths_resolve_against_descriptor_dir(self) -> None:
        link_set = LinkSet(kind=LinkSetKind.SCRIPT, script="run.sh", base_dir=Path("/links/a"))
        self.assertEqual(link_set.resolve("run.sh"), Path("/links/a/run.sh"))
        self.assertEqual(link_set.resolve("/opt/run.sh"), Path("/opt/run.sh"))


class TestMetadata(unittest.TestCase):
    def test_output_path(self) -> None:
        metadata = Metadata(nicename="geonames", reponame="xxx.dbpedia.org/de", descriptor=Path("m.json"))
        self.assertEqual(
            metadata.output_path(Path("snapshot")),
            Path("snapshot/xxx.dbpedia.org/de/geonames_links.nt.bz2"),
        )

    def test_serialization_aliases(self) -> None:
        metadata = Metadata(
            nicename="geonames",
            reponame="dbpedia.org",
            descriptor=Path("m.json"),
            link_sets=[LinkSet(kind=LinkSetKind.STATIC_NTRIPLES, file="links.nt")],
            revisions=[Revision(name="2016-10", triple_count=3)],
        )

        dumped = json.loads(metadata.model_dump_json(by_alias=True))

        self.assertEqual(dumped["linkSets"][0]["type"], "static-ntriples")
        self.assertNotIn("base_dir", dumped["linkSets"][0])
        self.assertEqual(dumped["revisions"], [{"name": "2016-10", "triplecount": 3}])

    def test_revision_count_cannot_be_negative(self) -> None:
        with self.assertRaises(ValidationError):
            Revision(name="r", triple_count=-1)
