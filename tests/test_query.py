"""
Tests for the query surface.

Coverage:
- JSON array assembly ({"Key","Record"} members, raw record embedding)
- Cursor release on success, mid-scan failure and early abort
- Range bounds and rich query pass-through
"""

import json

import pytest

from genome_cc import COLLECTION_GENES, GENE_NAME_INDEX, INDEX_SENTINEL
from genome_cc.composite import GeneNameIndex, create_composite_key
from genome_cc.errors import AccessDenied, InputError, StoreError
from genome_cc.query import drain, get_by_index, get_by_range, query_by_predicate
from genome_cc.store import KV, PrivateDataStore
from vault.stub import MockStub, StateIterator


class ExplodingCursor:
    """Yields the given entries, then fails like a broken ledger connection."""

    def __init__(self, entries):
        self._entries = iter(entries)
        self.closed = False

    def __iter__(self):
        return self

    def __next__(self):
        try:
            return next(self._entries)
        except StopIteration:
            raise ConnectionError("peer connection lost") from None

    def close(self):
        self.closed = True


@pytest.fixture
def seeded(world):
    space = world.data[COLLECTION_GENES]
    for name, gene in (("Amy", "ADRB2"), ("Ron", "ADRB2"), ("Zed", "APOE")):
        space[name] = json.dumps(
            {"docType": "gene", "id": len(space) + 1, "name": name, "population": "French", "gene": gene, "size": 5},
            separators=(",", ":"),
        ).encode("utf-8")
        space[create_composite_key(GENE_NAME_INDEX, [gene, name])] = INDEX_SENTINEL
    return world


class TestResponseAssembly:
    """Shape of the JSON array response."""

    def test_empty(self):
        assert drain(StateIterator([])) == b"[]"

    def test_records_embedded_raw(self):
        cursor = StateIterator([("a", b'{"x":1}'), ("b", b'{"y": [1, 2]}')])
        assert drain(cursor) == b'[{"Key":"a","Record":{"x":1}},{"Key":"b","Record":{"y": [1, 2]}}]'

    def test_index_entries_render_null_record(self):
        key = create_composite_key(GENE_NAME_INDEX, ["ADRB2", "Ron"])
        parsed = json.loads(drain(StateIterator([(key, INDEX_SENTINEL)])))
        assert parsed == [{"Key": key, "Record": None}]

    def test_keys_are_escaped(self):
        out = drain(StateIterator([('we"ird', b"{}")]))
        assert json.loads(out) == [{"Key": 'we"ird', "Record": {}}]


class TestCursorRelease:
    """Cursors are closed on every exit path."""

    def test_closed_after_success(self):
        cursor = StateIterator([("a", b"{}")])
        drain(cursor)
        assert cursor.closed

    def test_closed_after_mid_scan_error(self):
        cursor = ExplodingCursor([KV("a", b"{}")])
        with pytest.raises(StoreError, match="peer connection lost"):
            drain(cursor)
        assert cursor.closed

    def test_closed_when_consumer_aborts(self, seeded):
        stub = MockStub(seeded, "getGenesByRange")
        store = PrivateDataStore(stub)
        with pytest.raises(KeyError):
            # Record lookup fails while the index cursor is open
            get_by_index(_FailingGetStore(store), GeneNameIndex(store), "ADRB2")
        assert stub.iterators and all(it.closed for it in stub.iterators)

    def test_range_closes_stub_cursor(self, seeded):
        stub = MockStub(seeded, "getGenesByRange")
        get_by_range(PrivateDataStore(stub), COLLECTION_GENES, "A", "Z")
        assert len(stub.iterators) == 1
        assert stub.iterators[0].closed

    def test_rich_query_closes_stub_cursor(self, seeded):
        stub = MockStub(seeded, "queryLongetivityMapByGene")
        query_by_predicate(PrivateDataStore(stub), COLLECTION_GENES, '{"selector":{"gene":"APOE"}}')
        assert stub.iterators[0].closed


class _FailingGetStore:
    """Store whose point reads fail, to abort an index walk mid-way."""

    def __init__(self, store):
        self._store = store

    def partial_key(self, *args):
        return self._store.partial_key(*args)

    def get(self, collection, key):
        raise KeyError(key)


class TestRangeAndRichQuery:
    """Bounds, ordering and pass-through."""

    def test_range_is_start_inclusive_end_exclusive(self, seeded):
        out = get_by_range(PrivateDataStore(MockStub(seeded, "q")), COLLECTION_GENES, "Amy", "Zed")
        assert [e["Key"] for e in json.loads(out)] == ["Amy", "Ron"]

    def test_open_range_includes_index_entries_first(self, seeded):
        out = json.loads(get_by_range(PrivateDataStore(MockStub(seeded, "q")), COLLECTION_GENES, "", ""))
        assert len(out) == 6
        assert [e["Record"] for e in out[:3]] == [None, None, None]
        assert [e["Key"] for e in out[3:]] == ["Amy", "Ron", "Zed"]

    def test_rich_query_preserves_engine_order(self, seeded):
        query = '{"selector":{"docType":"gene"},"sort":[{"name":"desc"}]}'
        out = query_by_predicate(PrivateDataStore(MockStub(seeded, "q")), COLLECTION_GENES, query)
        assert [e["Key"] for e in json.loads(out)] == ["Zed", "Ron", "Amy"]

    def test_malformed_rich_query(self, seeded):
        with pytest.raises(InputError, match="Invalid query string"):
            query_by_predicate(PrivateDataStore(MockStub(seeded, "q")), COLLECTION_GENES, "selector=gene")

    def test_range_access_denied_for_non_member(self, seeded):
        stub = MockStub(seeded, "q", msp_id="Org3MSP")
        with pytest.raises(AccessDenied):
            get_by_range(PrivateDataStore(stub), COLLECTION_GENES, "", "")

    def test_index_walk_returns_documents_in_name_order(self, seeded):
        store = PrivateDataStore(MockStub(seeded, "q"))
        out = json.loads(get_by_index(store, GeneNameIndex(store), "ADRB2"))
        assert [e["Key"] for e in out] == ["Amy", "Ron"]
        assert all(e["Record"]["gene"] == "ADRB2" for e in out)
