# tests/test_cli.py

import json
from pathlib import Path

import pytest

import run_pipeline
from pittari_pipeline import config
from pittari_pipeline import ingestion as ingestion_mod
from pittari_pipeline import pipeline as pipeline_mod
from pittari_pipeline import search as search_mod
from pittari_pipeline.catalog_store import CatalogStore
from pittari_pipeline.models import ClassificationResult, IndexMatch, WineRecord, WineType


class FakeIndex:
    def __init__(self, fail=False):
        self.points = {}
        self.ensured = []
        self.fail = fail

    def ensure_collection(self, vector_size=None):
        self.ensured.append(vector_size)

    def upsert(self, vectors):
        if self.fail:
            raise RuntimeError("Simulated Qdrant outage")
        for v in vectors:
            self.points[v.id] = v

    def query(self, vector, top_k):
        return [IndexMatch(id=i) for i in sorted(self.points)[:top_k]]


def fake_embedder(texts):
    return [[0.5, 0.5, 0.0] for _ in texts]


def cli(tmp_path: Path, *args):
    return run_pipeline.main(
        ["--db", str(tmp_path / "wines.sqlite3"), "--log-dir", str(tmp_path / "logs"), *args]
    )


def seed_catalog(tmp_path: Path, count: int) -> CatalogStore:
    store = CatalogStore(tmp_path / "wines.sqlite3")
    store.init()
    for i in range(count):
        store.insert(WineRecord(name=f"Wine {i}", type=WineType.RED, description="dry"))
    return store


# --- curate ------------------------------------------------------------------


def test_curate_from_dump_stores_accepted_wines(tmp_path: Path, monkeypatch):
    dump = tmp_path / "dump.json"
    dump.write_text(
        json.dumps({"Items": [
            {"Item": {"itemName": "シャトー・ムートン 2012", "itemPrice": 25000, "itemCaption": "華やか"}},
            {"Item": {"itemName": "ワイングラス 2脚", "itemPrice": 1200}},
        ]}, ensure_ascii=False),
        encoding="utf-8",
    )

    def fake_classify(name, caption):
        return ClassificationResult(is_wine=True, alcohol_type="赤ワイン", type=WineType.RED)

    monkeypatch.setattr(pipeline_mod, "classify_item", fake_classify)

    exit_code = cli(tmp_path, "curate", "--input", str(dump))

    assert exit_code == 0
    rows = CatalogStore(tmp_path / "wines.sqlite3").all_rows()
    assert [r.name for r in rows] == ["シャトー・ムートン 2012"]
    assert rows[0].price_range == "25,000円"
    assert (tmp_path / "logs" / "pipeline.log").exists()


def test_curate_missing_input_exits_nonzero(tmp_path: Path):
    assert cli(tmp_path, "curate", "--input", str(tmp_path / "missing.json")) != 0


def test_live_curate_without_app_id_exits_nonzero(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(config, "RAKUTEN_APP_ID", None)
    assert cli(tmp_path, "curate", "--pages", "1") != 0


# --- index -------------------------------------------------------------------


def test_index_ingests_every_row(tmp_path: Path, monkeypatch):
    seed_catalog(tmp_path, 5)
    index = FakeIndex()
    monkeypatch.setattr(run_pipeline, "QdrantVectorIndex", lambda: index)
    monkeypatch.setattr(ingestion_mod, "embed_texts", fake_embedder)
    monkeypatch.setattr(config, "USE_FAKE_EMBEDDINGS", False)

    exit_code = cli(tmp_path, "index", "--page-size", "2")

    assert exit_code == 0
    assert len(index.points) == 5
    assert index.ensured == [config.QDRANT_VECTOR_SIZE]


def test_index_resumes_from_offset_and_stops_at_max_pages(tmp_path: Path, monkeypatch):
    seed_catalog(tmp_path, 6)
    index = FakeIndex()
    monkeypatch.setattr(run_pipeline, "QdrantVectorIndex", lambda: index)
    monkeypatch.setattr(ingestion_mod, "embed_texts", fake_embedder)

    exit_code = cli(tmp_path, "index", "--offset", "2", "--page-size", "2", "--max-pages", "1")

    assert exit_code == 0
    assert sorted(index.points, key=int) == ["3", "4"]


def test_index_failure_exits_nonzero(tmp_path: Path, monkeypatch):
    seed_catalog(tmp_path, 3)
    monkeypatch.setattr(run_pipeline, "QdrantVectorIndex", lambda: FakeIndex(fail=True))
    monkeypatch.setattr(ingestion_mod, "embed_texts", fake_embedder)

    assert cli(tmp_path, "index") == 1


# --- recommend ---------------------------------------------------------------


def test_recommend_prints_json(tmp_path: Path, monkeypatch, capsys):
    seed_catalog(tmp_path, 2)
    index = FakeIndex()
    index.points = {"1": None, "2": None}
    monkeypatch.setattr(run_pipeline, "QdrantVectorIndex", lambda: index)
    monkeypatch.setattr(search_mod, "embed_texts", fake_embedder)
    monkeypatch.setattr(config, "COMMENTARY_API_KEY", None)

    exit_code = cli(tmp_path, "recommend", "--type", "Red", "--limit", "2")

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [w["name"] for w in payload["wines"]] == ["Wine 0", "Wine 1"]
    assert payload["commentary"]


def test_unknown_command_is_rejected_by_argparse(tmp_path: Path):
    with pytest.raises(SystemExit):
        cli(tmp_path, "explode")
