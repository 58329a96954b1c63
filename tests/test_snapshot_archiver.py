import bz2
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from linkbatch.application.snapshot_archiver import SnapshotArchiver


def _linkset_file(path: Path, *lines: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with bz2.open(path, "wt", encoding="utf-8") as f:
        f.writelines(line + "\n" for line in lines)
    return path


def _tree(root: Path):
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


class TestSnapshotArchiver(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.out_dir = root / "snapshot"
        self.archive_dir = root / "archive"
        _linkset_file(self.out_dir / "dbpedia.org" / "geonames_links.nt.bz2", "<a> <b> <c> .")
        _linkset_file(self.out_dir / "dbpedia.org" / "nested" / "lgd_links.nt.bz2", "<d> <e> <f> .")
        _linkset_file(self.out_dir / "xxx.dbpedia.org" / "de" / "gnd_links.nt.bz2", "<g> <h> <i> .")
        _linkset_file(self.out_dir / "xxx.dbpedia.org" / "fr" / "bnf_links.nt.bz2", "<j> <k> <l> .")
        (self.out_dir / "data.json").write_text("[]", encoding="utf-8")
        (self.out_dir / "dbpedia.org" / "notes.txt").write_text("ignored", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_archive_mirrors_domains_and_languages(self) -> None:
        report = SnapshotArchiver(self.archive_dir).archive(self.out_dir)

        self.assertEqual(report.copied, 4)
        self.assertEqual(report.failed, 0)
        self.assertEqual(
            sorted(_tree(self.archive_dir)),
            [
                "snapshot/dbpedia.org/geonames_links.nt.bz2",
                "snapshot/dbpedia.org/lgd_links.nt.bz2",
                "snapshot/xxx.dbpedia.org/de/gnd_links.nt.bz2",
                "snapshot/xxx.dbpedia.org/fr/bnf_links.nt.bz2",
            ],
        )

    def test_archiving_twice_is_idempotent(self) -> None:
        archiver = SnapshotArchiver(self.archive_dir)

        archiver.archive(self.out_dir)
        first = _tree(self.archive_dir)
        archiver.archive(self.out_dir)

        self.assertEqual(_tree(self.archive_dir), first)

    def test_existing_archive_file_is_overwritten(self) -> None:
        stale = _linkset_file(
            self.archive_dir / "snapshot" / "dbpedia.org" / "geonames_links.nt.bz2", "<old> <old> <old> ."
        )
        stale.chmod(0o444)

        SnapshotArchiver(self.archive_dir).archive(self.out_dir)

        self.assertEqual(
            stale.read_bytes(),
            (self.out_dir / "dbpedia.org" / "geonames_links.nt.bz2").read_bytes(),
        )

    def test_missing_domains_are_tolerated(self) -> None:
        empty = Path(self._tmp.name) / "empty-snapshot"
        empty.mkdir()

        report = SnapshotArchiver(self.archive_dir).archive(empty)

        self.assertEqual(report.copied, 0)
        self.assertTrue((self.archive_dir / "empty-snapshot" / "dbpedia.org").is_dir())
        self.assertTrue((self.archive_dir / "empty-snapshot" / "xxx.dbpedia.org").is_dir())

    def test_copy_failure_does_not_stop_other_files(self) -> None:
        real_copy = __import__("shutil").copyfile

        def _copy(source, destination):
            if Path(source).name == "geonames_links.nt.bz2":
                raise PermissionError("denied")
            return real_copy(source, destination)

        with patch("linkbatch.application.snapshot_archiver.shutil.copyfile", side_effect=_copy):
            with self.assertLogs("linkbatch.application.snapshot_archiver", level="ERROR"):
                report = SnapshotArchiver(self.archive_dir).archive(self.out_dir)

        self.assertEqual(report.failed, 1)
        self.assertEqual(report.copied, 3)
