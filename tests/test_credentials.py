"""Tests for the durable credential store."""

import stat

from vaultline.credentials import CredentialStore


class TestCredentialStore:
    def test_empty_store(self, store):
        assert store.get() is None
        assert store.present is False

    def test_set_get(self, store):
        store.set("rt1")
        assert store.get() == "rt1"
        assert store.present is True

    def test_set_overwrites(self, store):
        store.set("first")
        store.set("second")
        assert store.get() == "second"

    def test_clear(self, store):
        store.set("rt1")
        store.clear()
        assert store.get() is None
        assert not store.path.exists()

    def test_clear_when_absent(self, store):
        store.clear()
        assert store.get() is None

    def test_survives_new_instance(self, store):
        """A fresh store on the same path (process restart) sees the token."""
        store.set("persisted")
        assert CredentialStore(store.path).get() == "persisted"

    def test_file_permissions(self, store):
        store.set("rt1")
        mode = store.path.stat().st_mode
        assert mode & stat.S_IRGRP == 0
        assert mode & stat.S_IROTH == 0

    def test_no_temp_files_left(self, store):
        store.set("a")
        store.set("b")
        assert [p.name for p in store.path.parent.iterdir()] == ["token"]

    def test_blank_file_is_absent(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("  \n")
        assert store.get() is None

    def test_no_shape_validation(self, store):
        store.set("not a real token at all")
        assert store.get() == "not a real token at all"
