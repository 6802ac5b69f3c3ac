# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the persistent composite map store."""

from __future__ import annotations

import threading
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from clientdep.config import CompositeSettings
from clientdep.errors import MapStoreInitializationError, MapStoreUnavailableError
from clientdep.store import CompositeKey, CompositeMapStore, create_map_store

KEY = CompositeKey(content_key="abc123", version=3, compression="deflate")


def test_first_access_creates_directory_and_empty_map(store: CompositeMapStore, map_file: Path) -> None:
    assert not map_file.parent.exists()

    assert store.lookup(KEY) is None

    assert map_file.is_file()
    root = ET.parse(map_file).getroot()
    assert root.tag == "map"
    assert list(root) == []


def test_constructing_store_does_not_touch_disk(map_file: Path) -> None:
    CompositeMapStore(map_file)
    assert not map_file.parent.exists()


def test_upsert_then_lookup_returns_record(store: CompositeMapStore) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/b.js", "/src/a.js"])

    record = store.lookup(KEY)

    assert record is not None
    assert record.key == KEY
    assert record.artifact == "/out/1.js"
    assert record.constituents == ("/src/b.js", "/src/a.js")


def test_upsert_is_idempotent(store: CompositeMapStore, map_file: Path) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])

    items = ET.parse(map_file).getroot().findall("item")
    assert len(items) == 1
    assert len(store.records()) == 1
    record = store.lookup(KEY)
    assert record is not None
    assert record.constituents == ("/src/a.js",)


def test_upsert_replaces_existing_record_in_place(store: CompositeMapStore) -> None:
    other = CompositeKey(content_key="zzz", version=1, compression="none")
    store.upsert(KEY, "/out/1.js", ["/src/a.js", "/src/b.js"])
    store.upsert(other, "/out/2.js", ["/src/c.js"])
    store.upsert(KEY, "/out/regenerated.js", ["/src/a.js"])

    records = store.records()
    assert [record.key for record in records] == [KEY, other]
    assert records[0].artifact == "/out/regenerated.js"
    assert records[0].constituents == ("/src/a.js",)


def test_records_survive_reload_from_disk(store: CompositeMapStore, map_file: Path) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/b.js", "/src/a.js"])

    restarted = CompositeMapStore(map_file)
    record = restarted.lookup(KEY)

    assert record is not None
    assert record.artifact == "/out/1.js"
    assert record.constituents == ("/src/b.js", "/src/a.js")


def test_compression_distinguishes_records(store: CompositeMapStore) -> None:
    gzip_key = CompositeKey(content_key=KEY.content_key, version=KEY.version, compression="gzip")
    store.upsert(KEY, "/out/deflate.js", ["/src/a.js"])
    store.upsert(gzip_key, "/out/gzip.js", ["/src/a.js"])

    deflate = store.lookup(KEY)
    gzip = store.lookup(gzip_key)
    assert deflate is not None and deflate.artifact == "/out/deflate.js"
    assert gzip is not None and gzip.artifact == "/out/gzip.js"


def test_version_distinguishes_records(store: CompositeMapStore) -> None:
    store.upsert(KEY, "/out/v3.js", ["/src/a.js"])

    assert store.lookup(CompositeKey(content_key=KEY.content_key, version=4, compression=KEY.compression)) is None


def test_garbage_map_file_is_recreated(map_file: Path, caplog: pytest.LogCaptureFixture) -> None:
    map_file.parent.mkdir(parents=True)
    map_file.write_bytes(b"\x00\xffnot xml at all<<<")
    store = CompositeMapStore(map_file)

    with caplog.at_level("WARNING", logger="clientdep.store.map_store"):
        assert store.lookup(KEY) is None

    assert store.records() == ()
    assert ET.parse(map_file).getroot().tag == "map"
    assert any("malformed" in message for message in caplog.messages)

    store.upsert(KEY, "/out/1.js", ["/src/a.js"])
    assert CompositeMapStore(map_file).lookup(KEY) is not None


def test_wrong_root_element_is_treated_as_corruption(map_file: Path) -> None:
    map_file.parent.mkdir(parents=True)
    map_file.write_text("<?xml version='1.0'?><catalog><item key='x'/></catalog>", encoding="utf-8")

    store = CompositeMapStore(map_file)

    assert store.records() == ()
    assert ET.parse(map_file).getroot().tag == "map"


def test_malformed_item_is_a_miss_without_failing_store(map_file: Path) -> None:
    map_file.parent.mkdir(parents=True)
    map_file.write_text(
        "<map>"
        '<item key="abc123" file="/out/bad.js" compression="deflate" version="3">'
        "<files><file /></files></item>"
        '<item key="good" file="/out/good.js" compression="deflate" version="1">'
        '<files><file name="/src/a.js" /></files></item>'
        '<item key="noversion" file="/out/x.js" compression="deflate" version="three" />'
        "</map>",
        encoding="utf-8",
    )
    store = CompositeMapStore(map_file)

    assert store.lookup(KEY) is None
    good = store.lookup(CompositeKey(content_key="good", version=1, compression="deflate"))
    assert good is not None and good.constituents == ("/src/a.js",)
    assert [record.key.content_key for record in store.records()] == ["good"]


def test_lookup_skips_malformed_duplicate_for_later_well_formed_item(map_file: Path) -> None:
    map_file.parent.mkdir(parents=True)
    map_file.write_text(
        "<map>"
        '<item key="abc123" file="/out/bad.js" compression="deflate" version="3">'
        "<files><file /></files></item>"
        '<item key="abc123" file="/out/good.js" compression="deflate" version="3">'
        '<files><file name="/src/a.js" /></files></item>'
        "</map>",
        encoding="utf-8",
    )

    record = CompositeMapStore(map_file).lookup(KEY)

    assert record is not None
    assert record.artifact == "/out/good.js"


@pytest.mark.parametrize(
    ("artifact", "constituents"),
    [("/out/1.js", ["/src/a\x01.js"]), ("/out/\x0b.js", ["/src/a.js"])],
)
def test_unstorable_text_is_rejected_without_losing_records(
    store: CompositeMapStore,
    map_file: Path,
    artifact: str,
    constituents: list[str],
) -> None:
    good = CompositeKey(content_key="good", version=1, compression="deflate")
    store.upsert(good, "/out/good.js", ["/src/good.js"])

    with pytest.raises(ValueError, match="cannot be stored"):
        store.upsert(KEY, artifact, constituents)

    assert store.lookup(KEY) is None
    reopened = CompositeMapStore(map_file)
    record = reopened.lookup(good)
    assert record is not None and record.artifact == "/out/good.js"
    assert len(reopened.records()) == 1


def test_upsert_repairs_malformed_item(map_file: Path) -> None:
    map_file.parent.mkdir(parents=True)
    map_file.write_text(
        '<map><item key="abc123" file="/out/bad.js" compression="deflate" version="3">'
        "<files><file /></files></item></map>",
        encoding="utf-8",
    )
    store = CompositeMapStore(map_file)

    store.upsert(KEY, "/out/fixed.js", ["/src/a.js"])

    record = store.lookup(KEY)
    assert record is not None
    assert record.artifact == "/out/fixed.js"
    assert len(ET.parse(map_file).getroot().findall("item")) == 1


def test_disabled_store_never_caches_or_touches_disk(map_file: Path) -> None:
    store = CompositeMapStore(map_file, enabled=False)

    store.upsert(KEY, "/out/1.js", ["/src/a.js"])

    assert not store.is_enabled()
    assert store.lookup(KEY) is None
    assert store.records() == ()
    assert store.remove(KEY) is False
    assert not map_file.parent.exists()


def test_remove_drops_record(store: CompositeMapStore, map_file: Path) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])

    assert store.remove(KEY) is True
    assert store.remove(KEY) is False
    assert store.lookup(KEY) is None
    assert CompositeMapStore(map_file).lookup(KEY) is None


def test_deleted_map_file_is_recreated_on_reload(store: CompositeMapStore, map_file: Path) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])
    map_file.unlink()

    store.reload()

    assert map_file.is_file()
    assert store.lookup(KEY) is None
    store.upsert(KEY, "/out/2.js", ["/src/a.js"])
    assert CompositeMapStore(map_file).lookup(KEY) is not None


def test_reset_discards_records(store: CompositeMapStore, map_file: Path) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])

    store.reset()

    assert store.records() == ()
    assert ET.parse(map_file).getroot().findall("item") == []


def test_initialisation_failure_is_fatal_and_remembered(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("file in the way", encoding="utf-8")
    store = CompositeMapStore(blocker / "host-map.xml")

    with pytest.raises(MapStoreInitializationError) as excinfo:
        store.lookup(KEY)
    assert excinfo.value.path == blocker / "host-map.xml"

    with pytest.raises(MapStoreUnavailableError):
        store.upsert(KEY, "/out/1.js", ["/src/a.js"])
    with pytest.raises(MapStoreUnavailableError):
        store.lookup(KEY)


def test_failed_save_rolls_back_memory(store: CompositeMapStore, monkeypatch: pytest.MonkeyPatch) -> None:
    store.upsert(KEY, "/out/1.js", ["/src/a.js"])

    def _fail(*_args: object, **_kwargs: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("clientdep.store.map_store.save_document", _fail)
    other = CompositeKey(content_key="other", version=1, compression="none")

    with pytest.raises(OSError):
        store.upsert(other, "/out/2.js", ["/src/b.js"])

    assert store.lookup(other) is None
    assert [record.key for record in store.records()] == [KEY]


def test_concurrent_upserts_are_all_persisted(store: CompositeMapStore, map_file: Path) -> None:
    keys = [CompositeKey(content_key=f"key-{index}", version=1, compression="deflate") for index in range(24)]
    barrier = threading.Barrier(len(keys))

    def _write(key: CompositeKey) -> None:
        barrier.wait()
        store.upsert(key, f"/out/{key.content_key}.js", [f"/src/{key.content_key}.js"])

    threads = [threading.Thread(target=_write, args=(key,)) for key in keys]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reloaded = CompositeMapStore(map_file)
    assert {record.key for record in reloaded.records()} == set(keys)
    assert not list(map_file.parent.glob("*.tmp"))


def test_create_map_store_uses_host_map_name(tmp_path: Path) -> None:
    settings = CompositeSettings(composite_dir=tmp_path, host_id="web01")

    store = create_map_store(settings)

    assert store.map_file == tmp_path / "web01-map.xml"
    assert store.is_enabled()


def test_create_map_store_respects_disabled_setting(tmp_path: Path) -> None:
    store = create_map_store(CompositeSettings(composite_dir=tmp_path, persist_composite_files=False))

    assert not store.is_enabled()
