# tests/test_catalog_store.py

from pathlib import Path

from pittari_pipeline.catalog_store import CatalogStore
from pittari_pipeline.models import WineRecord, WineType


def make_store(tmp_path: Path) -> CatalogStore:
    store = CatalogStore(tmp_path / "nested" / "wines.sqlite3")
    store.init()
    return store


def wine(name, wine_type=WineType.RED, **kwargs):
    return WineRecord(name=name, type=wine_type, **kwargs)


def test_init_creates_parent_directory_and_is_repeatable(tmp_path: Path):
    store = make_store(tmp_path)
    store.init()

    assert (tmp_path / "nested" / "wines.sqlite3").exists()
    assert store.count() == 0


def test_insert_assigns_increasing_ids(tmp_path: Path):
    store = make_store(tmp_path)

    first = store.insert(wine("シャトー・マルゴー"))
    second = store.insert(wine("クリスタル", WineType.SPARKLING))

    assert second > first
    assert store.count() == 2


def test_all_rows_round_trip_every_field_in_id_order(tmp_path: Path):
    store = make_store(tmp_path)
    original = wine(
        "クラウディ・ベイ",
        WineType.WHITE,
        region="Marlborough",
        flavor_profile="crisp",
        country="New Zealand",
        description="パッションフルーツの香り",
        image_url="https://img.example.com/1.jpg",
        affiliate_url="https://item.example.com/1",
        price_range="3,980円",
    )
    store.insert(wine("First"))
    second_id = store.insert(original)

    rows = store.all_rows()

    assert [r.name for r in rows] == ["First", "クラウディ・ベイ"]
    assert rows[1] == original.model_copy(update={"id": second_id})
    assert rows[1].type is WineType.WHITE


def test_get_many_skips_missing_ids(tmp_path: Path):
    store = make_store(tmp_path)
    a = store.insert(wine("A"))
    b = store.insert(wine("B"))

    rows = store.get_many([b, 999, a])

    assert sorted(r.id for r in rows) == [a, b]
    assert store.get_many([]) == []


def test_upsert_overwrites_existing_row(tmp_path: Path):
    store = make_store(tmp_path)
    wine_id = store.insert(wine("Old name"))

    store.upsert(wine("New name", id=wine_id))

    assert store.count() == 1
    assert store.get_many([wine_id])[0].name == "New name"


def test_upsert_without_id_inserts(tmp_path: Path):
    store = make_store(tmp_path)
    wine_id = store.upsert(wine("Fresh"))

    assert store.get_many([wine_id])[0].name == "Fresh"
