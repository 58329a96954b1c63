import json
import tempfile
import unittest
from pathlib import Path

from linkbatch.application.metadata_loader import MetadataLoader
from linkbatch.domain.models import Issue


class _FakeValidator:
    def __init__(self, issues=None, fail_on=None) -> None:
        self.issues = issues or []
        self.fail_on = fail_on
        self.calls = 0

    def validate(self, descriptor):
        self.calls += 1
        if self.fail_on is not None and descriptor.get("nicename") == self.fail_on:
            raise RuntimeError("validator crashed")
        return list(self.issues)


def _write(base: Path, relative: str, content) -> Path:
    path = base / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content if isinstance(content, str) else json.dumps(content), encoding="utf-8")
    return path


class TestMetadataLoader(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_loads_every_descriptor_in_sorted_order(self) -> None:
        _write(self.base, "dbpedia.org/zeta/metadata.json", {"linkSets": []})
        _write(self.base, "dbpedia.org/alpha/metadata.json", {"linkSets": [{"type": "script", "script": "run.sh"}]})
        _write(self.base, "xxx.dbpedia.org/de/gnd/metadata.json", {})
        _write(self.base, "dbpedia.org/alpha/README.md", "not a descriptor")

        report = MetadataLoader(_FakeValidator([Issue.warn("w")])).load(self.base)

        self.assertEqual(report.discovered, 3)
        self.assertEqual([m.nicename for m in report.metadata], ["alpha", "zeta", "gnd"])
        self.assertEqual(report.metadata[2].reponame, "xxx.dbpedia.org/de")
        self.assertEqual(report.metadata[0].issues, [Issue.warn("w")])
        self.assertEqual(report.failed, [])

    def test_broken_descriptor_is_skipped(self) -> None:
        _write(self.base, "dbpedia.org/good/metadata.json", {})
        broken = _write(self.base, "dbpedia.org/broken/metadata.json", "{not json")
        listed = _write(self.base, "dbpedia.org/listed/metadata.json", [1, 2])

        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR"):
            report = MetadataLoader(_FakeValidator()).load(self.base)

        self.assertEqual([m.nicename for m in report.metadata], ["good"])
        self.assertEqual(sorted(report.failed), sorted([broken, listed]))
        self.assertLessEqual(len(report.metadata), report.discovered)

    def test_validator_failure_skips_only_that_descriptor(self) -> None:
        _write(self.base, "dbpedia.org/a/metadata.json", {"nicename": "a"})
        _write(self.base, "dbpedia.org/b/metadata.json", {"nicename": "b"})

        validator = _FakeValidator(fail_on="a")
        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR"):
            report = MetadataLoader(validator).load(self.base)

        self.assertEqual(validator.calls, 2)
        self.assertEqual([m.nicename for m in report.metadata], ["b"])

    def test_unknown_linkset_kind_is_a_load_error(self) -> None:
        _write(self.base, "dbpedia.org/a/metadata.json", {"linkSets": [{"type": "fax"}]})

        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR"):
            report = MetadataLoader(_FakeValidator()).load(self.base)

        self.assertEqual(report.metadata, [])
        self.assertEqual(len(report.failed), 1)

    def test_duplicate_nicename_keeps_the_first(self) -> None:
        _write(self.base, "dbpedia.org/geo/metadata.json", {})
        duplicate = _write(self.base, "xxx.dbpedia.org/fr/geo/metadata.json", {})

        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR") as logs:
            report = MetadataLoader(_FakeValidator()).load(self.base)

        self.assertEqual([m.reponame for m in report.metadata], ["dbpedia.org"])
        self.assertEqual(report.failed, [duplicate])
        self.assertIn("already used", logs.output[0])

    def test_malformed_linksets_skip_only_that_descriptor(self) -> None:
        _write(self.base, "dbpedia.org/good/metadata.json", {"linkSets": []})
        bad = _write(self.base, "dbpedia.org/bad/metadata.json", {"linkSets": 5})

        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR") as logs:
            report = MetadataLoader(_FakeValidator()).load(self.base)

        self.assertEqual([m.nicename for m in report.metadata], ["good"])
        self.assertEqual(report.failed, [bad])
        self.assertIn("linkSets must be a list", logs.output[0])

    def test_descriptors_outside_archived_layout_are_skipped(self) -> None:
        _write(self.base, "dbpedia.org/good/metadata.json", {})
        nested = _write(self.base, "dbpedia.org/group/nested/metadata.json", {})
        other = _write(self.base, "example.org/other/metadata.json", {})

        with self.assertLogs("linkbatch.application.metadata_loader", level="ERROR"):
            report = MetadataLoader(_FakeValidator()).load(self.base)

        self.assertEqual([m.nicename for m in report.metadata], ["good"])
        self.assertEqual(sorted(report.failed), sorted([nested, other]))

    def test_missing_base_dir_loads_nothing(self) -> None:
        report = MetadataLoader(_FakeValidator()).load(self.base / "missing")
        self.assertEqual(report.metadata, [])
        self.assertEqual(report.discovered, 0)
