"""
Tests for the rich query selector engine used by the in-memory ledger.
"""

import json

import pytest

from vault.selector import matches, parse_query, run_query

DOCS = [
    ("Amy", {"docType": "gene", "name": "Amy", "gene": "ADRB2", "size": 3, "meta": {"lab": "north"}}),
    ("Ron", {"docType": "gene", "name": "Ron", "gene": "ADRB2", "size": 5}),
    ("Zed", {"docType": "gene", "name": "Zed", "gene": "APOE", "size": 8}),
]


def _items():
    return [(k, json.dumps(d).encode("utf-8")) for k, d in DOCS] + [("\x00idx\x00a\x00", b"\x00")]


def _keys(query):
    return [k for k, _ in run_query(_items(), json.dumps(query))]


class TestOperators:
    """Field conditions."""

    def test_implicit_equality(self):
        assert _keys({"selector": {"gene": "ADRB2"}}) == ["Amy", "Ron"]

    @pytest.mark.parametrize(
        "condition,expected",
        [
            ({"$gt": 3}, ["Ron", "Zed"]),
            ({"$gte": 5}, ["Ron", "Zed"]),
            ({"$lt": 5}, ["Amy"]),
            ({"$lte": 5}, ["Amy", "Ron"]),
            ({"$ne": 5}, ["Amy", "Zed"]),
            ({"$in": [3, 8]}, ["Amy", "Zed"]),
            ({"$nin": [3, 8]}, ["Ron"]),
            ({"$gt": 2, "$lt": 8}, ["Amy", "Ron"]),
        ],
    )
    def test_comparisons(self, condition, expected):
        assert _keys({"selector": {"size": condition}}) == expected

    def test_type_mismatch_never_matches(self):
        assert _keys({"selector": {"size": {"$gt": "1"}}}) == []

    def test_exists(self):
        assert _keys({"selector": {"meta": {"$exists": True}}}) == ["Amy"]
        assert _keys({"selector": {"meta": {"$exists": False}}}) == ["Ron", "Zed"]

    def test_dotted_path_and_nested_selector(self):
        assert _keys({"selector": {"meta.lab": "north"}}) == ["Amy"]
        assert _keys({"selector": {"meta": {"lab": "north"}}}) == ["Amy"]

    def test_and_or(self):
        assert _keys({"selector": {"$or": [{"name": "Amy"}, {"gene": "APOE"}]}}) == ["Amy", "Zed"]
        assert _keys({"selector": {"$and": [{"gene": "ADRB2"}, {"size": {"$gt": 4}}]}}) == ["Ron"]

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            matches({"a": 1}, {"a": {"$regex": "x"}})

    def test_non_json_values_skipped(self):
        assert "\x00idx\x00a\x00" not in _keys({"selector": {}})


class TestQueryOptions:
    """sort, skip and limit."""

    def test_sort_descending(self):
        assert _keys({"selector": {"docType": "gene"}, "sort": [{"size": "desc"}]}) == ["Zed", "Ron", "Amy"]

    def test_sort_by_two_fields(self):
        query = {"selector": {"docType": "gene"}, "sort": [{"gene": "desc"}, {"name": "asc"}]}
        assert _keys(query) == ["Zed", "Amy", "Ron"]

    def test_skip_and_limit(self):
        assert _keys({"selector": {"docType": "gene"}, "skip": 1, "limit": 1}) == ["Ron"]


class TestParseQuery:
    """Malformed queries raise ValueError."""

    @pytest.mark.parametrize(
        "query",
        ["not json", "[]", '{"fields": ["name"]}', '{"selector": {}, "limit": -1}'],
    )
    def test_rejected(self, query):
        with pytest.raises(ValueError):
            parse_query(query)
