import pytest

from pittari_pipeline import search as search_mod
from pittari_pipeline.models import IndexMatch, WineRecord, WineType
from pittari_pipeline.search import search_wines


class FakeIndex:
    def __init__(self, ids):
        self.ids = ids
        self.queries = []

    def upsert(self, vectors):
        raise AssertionError("search must not write to the index")

    def query(self, vector, top_k):
        self.queries.append((list(vector), top_k))
        return [IndexMatch(id=i, score=1.0 - n * 0.1) for n, i in enumerate(self.ids)]


class ReversingStore:
    """Returns rows in reverse id order to prove the resolver re-sorts."""
    def __init__(self, ids):
        self.rows = {
            i: WineRecord(id=i, name=f"Wine {i}", type=WineType.RED) for i in ids
        }
        self.lookups = []

    def get_many(self, ids):
        ids = list(ids)
        self.lookups.append(ids)
        return [self.rows[i] for i in sorted(ids, reverse=True) if i in self.rows]


def fake_embedder(texts):
    return [[0.1, 0.2, 0.3] for _ in texts]


def test_results_follow_index_rank_with_duplicates_and_stale_ids_dropped():
    """
    Neighbours [7, 3, 7, 9] with catalog rows {3, 7} -> [7, 3]:
    the duplicate 7 collapses to its first occurrence and 9 is stale.
    """
    index = FakeIndex(["7", "3", "7", "9"])
    store = ReversingStore([3, 7])

    wines = search_wines("dry red", store, index, limit=4, embedder=fake_embedder)

    assert [w.id for w in wines] == [7, 3]
    assert store.lookups == [[7, 3, 9]]


def test_single_batched_lookup_and_query_parameters():
    index = FakeIndex(["1", "2"])
    store = ReversingStore([1, 2])

    search_wines("sparkling", store, index, limit=2, embedder=fake_embedder)

    assert index.queries == [([0.1, 0.2, 0.3], 2)]
    assert len(store.lookups) == 1


def test_no_neighbours_skips_the_store():
    class ExplodingStore:
        def get_many(self, ids):
            raise AssertionError("store should not be queried without matches")

    wines = search_wines("anything", ExplodingStore(), FakeIndex([]), embedder=fake_embedder)
    assert wines == []


def test_non_integer_ids_are_ignored():
    index = FakeIndex(["abc", "5"])
    store = ReversingStore([5])

    wines = search_wines("white", store, index, embedder=fake_embedder)

    assert [w.id for w in wines] == [5]
    assert store.lookups == [[5]]


@pytest.mark.parametrize("query", ["", "   "])
def test_blank_query_is_rejected(query):
    with pytest.raises(ValueError):
        search_wines(query, ReversingStore([]), FakeIndex([]), embedder=fake_embedder)


def test_default_embedder_is_used_when_none_given(monkeypatch):
    seen = []

    def recording_embedder(texts):
        seen.append(list(texts))
        return [[1.0, 0.0] for _ in texts]

    monkeypatch.setattr(search_mod, "embed_texts", recording_embedder)

    search_wines("ロゼワイン", ReversingStore([]), FakeIndex([]))

    assert seen == [["ロゼワイン"]]
