import os
import tempfile
import unittest

from vaultsync.local import Vault
from vaultsync.models import (
    FileSyncMeta,
    LocalDriveSyncMeta,
    LocalFileEntry,
    SyncMeta,
)
from vaultsync.reconcile import (
    compute_sync_diff,
    compute_vault_checksums,
    find_locally_modified_files,
    find_missing_local_files,
)
from vaultsync.util.checksum import md5_hex


class TestComputeVaultChecksums(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.vault = Vault(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_hashes_files_and_collects_stats(self) -> None:
        self.vault.write_text("a.md", "hello")
        self.vault.write_bytes("img/b.png", b"\x89PNG")

        checksums, stats = compute_vault_checksums(self.vault, ["a.md", "img/b.png"])

        self.assertEqual(checksums["a.md"], md5_hex("hello"))
        self.assertEqual(checksums["img/b.png"], md5_hex(b"\x89PNG"))
        self.assertEqual(stats["a.md"].size, 5)

    def test_reuses_cached_checksum_when_stat_matches(self) -> None:
        self.vault.write_text("a.md", "hello")
        st = self.vault.stat("a.md")
        local = LocalDriveSyncMeta(
            last_updated_at="",
            files={"A": LocalFileEntry(md5_checksum="cached", local_mtime=st.mtime, local_size=st.size)},
            path_to_id={"a.md": "A"},
        )

        checksums, _ = compute_vault_checksums(self.vault, ["a.md"], local)
        self.assertEqual(checksums["a.md"], "cached")

    def test_rehashes_when_size_changed(self) -> None:
        self.vault.write_text("a.md", "hello")
        st = self.vault.stat("a.md")
        local = LocalDriveSyncMeta(
            last_updated_at="",
            files={"A": LocalFileEntry(md5_checksum="cached", local_mtime=st.mtime, local_size=st.size + 1)},
            path_to_id={"a.md": "A"},
        )

        checksums, _ = compute_vault_checksums(self.vault, ["a.md"], local)
        self.assertEqual(checksums["a.md"], md5_hex("hello"))

    def test_unreadable_files_are_skipped(self) -> None:
        self.vault.write_text("a.md", "hello")
        with self.assertLogs("vaultsync.reconcile.changes", level="WARNING"):
            checksums, stats = compute_vault_checksums(self.vault, ["a.md", "gone.md"])
        self.assertEqual(set(checksums), {"a.md"})
        self.assertEqual(set(stats), {"a.md"})

    def test_crlf_is_hashed_byte_exact(self) -> None:
        with open(os.path.join(self._tmp.name, "w.md"), "wb") as fh:
            fh.write(b"a\r\nb")
        checksums, _ = compute_vault_checksums(self.vault, ["w.md"])
        self.assertEqual(checksums["w.md"], md5_hex(b"a\r\nb"))


class TestFindLocallyModifiedFiles(unittest.TestCase):
    def _meta(self) -> LocalDriveSyncMeta:
        return LocalDriveSyncMeta(
            last_updated_at="",
            files={
                "A": LocalFileEntry(md5_checksum="a"),
                "B": LocalFileEntry(md5_checksum="b"),
                "C": LocalFileEntry(md5_checksum="c"),
                "D": LocalFileEntry(md5_checksum="d"),
            },
            path_to_id={"a.md": "A", "b.md": "B", "c.md": "C", "d.md": "D"},
        )

    def test_classifies_modified_new_renamed_deleted(self) -> None:
        checksums = {
            "a.md": "a",        # unchanged
            "b.md": "b2",       # modified
            "moved/c.md": "c",  # renamed from c.md
            "new.md": "n",      # new
        }                       # d.md deleted

        changes = find_locally_modified_files(self._meta(), checksums)

        self.assertEqual(changes.modified_ids, {"B"})
        self.assertEqual(changes.renames, {"c.md": "moved/c.md"})
        self.assertEqual(changes.new_paths, ["new.md"])
        self.assertEqual(changes.deleted_ids, {"D"})
        self.assertEqual(changes.renamed_ids(self._meta()), {"C"})

    def test_identical_files_deleted_together(self) -> None:
        meta = LocalDriveSyncMeta(
            last_updated_at="",
            files={"X": LocalFileEntry(md5_checksum="same"), "Y": LocalFileEntry(md5_checksum="same")},
            path_to_id={"x.md": "X", "y.md": "Y"},
        )

        changes = find_locally_modified_files(meta, {})

        self.assertEqual(changes.deleted_ids, {"X", "Y"})
        self.assertEqual(changes.renames, {})

    def test_identical_files_one_renamed_one_deleted(self) -> None:
        meta = LocalDriveSyncMeta(
            last_updated_at="",
            files={"X": LocalFileEntry(md5_checksum="same"), "Y": LocalFileEntry(md5_checksum="same")},
            path_to_id={"x.md": "X", "y.md": "Y"},
        )

        changes = find_locally_modified_files(meta, {"z.md": "same"})

        self.assertEqual(changes.renames, {"x.md": "z.md"})
        self.assertEqual(changes.deleted_ids, {"Y"})
        self.assertEqual(changes.new_paths, [])

    def test_no_changes(self) -> None:
        checksums = {"a.md": "a", "b.md": "b", "c.md": "c", "d.md": "d"}
        changes = find_locally_modified_files(self._meta(), checksums)
        self.assertFalse(changes.modified_ids or changes.new_paths or changes.renames or changes.deleted_ids)


class TestFindMissingLocalFiles(unittest.TestCase):
    def test_missing_tracked_file_is_reported(self) -> None:
        local = LocalDriveSyncMeta(
            last_updated_at="",
            files={"A": LocalFileEntry(md5_checksum="a"), "B": LocalFileEntry(md5_checksum="b")},
            path_to_id={"a.md": "A", "b.md": "B"},
        )
        remote = SyncMeta(
            last_updated_at="",
            files={
                "A": FileSyncMeta(name="a.md", md5_checksum="a"),
                "B": FileSyncMeta(name="b.md", md5_checksum="b"),
            },
        )
        checksums = {"b.md": "b"}
        diff = compute_sync_diff(local, remote, set())

        self.assertEqual(find_missing_local_files(local, remote, checksums, diff), ["A"])
        self.assertEqual(
            find_missing_local_files(local, remote, checksums, diff, deleted_ids={"A"}), []
        )
        self.assertEqual(
            find_missing_local_files(local, remote, checksums, diff, renames={"a.md": "x.md"}), []
        )
        self.assertEqual(find_missing_local_files(local, None, checksums, diff), [])


if __name__ == "__main__":
    unittest.main()
