"""
Query surface over private data collections.

Every query drains a ledger cursor into one JSON array:

    [{"Key":"<key>","Record":<stored JSON>},...]

Stored documents are already JSON and are embedded as-is. Index entries
hold a single null byte rather than JSON, so their Record is rendered as
null. Cursors are closed on every exit path, including failures raised
mid-scan.
"""

from __future__ import annotations

import json
import logging
from contextlib import closing
from typing import Iterable, Iterator, List

from genome_cc import INDEX_SENTINEL
from genome_cc.composite import GeneNameIndex, split_composite_key
from genome_cc.errors import AccessDenied, StoreError
from genome_cc.store import KV, PrivateDataStore, StateQueryIterator

logger = logging.getLogger(__name__)


def _entry(key: str, record: bytes) -> bytes:
    if record == INDEX_SENTINEL:
        record = b"null"
    return b'{"Key":' + json.dumps(key, ensure_ascii=False).encode("utf-8") + b',"Record":' + record + b"}"


def _to_json_array(entries: Iterable[KV]) -> bytes:
    buffer = bytearray(b"[")
    member_written = False
    for kv in entries:
        # Comma before every member except the first
        if member_written:
            buffer += b","
        buffer += _entry(kv.key, kv.value)
        member_written = True
    buffer += b"]"
    return bytes(buffer)


def _checked(results: Iterable[KV]) -> Iterator[KV]:
    """Re-raise runtime failures from a cursor mid-scan as chaincode errors."""
    it = iter(results)
    while True:
        try:
            kv = next(it)
        except StopIteration:
            return
        except PermissionError as e:
            raise AccessDenied(f"Failed to iterate query results: {e}") from e
        except (OSError, LookupError, ValueError, RuntimeError) as e:
            raise StoreError(f"Failed to iterate query results: {e}") from e
        yield kv


def drain(cursor: StateQueryIterator) -> bytes:
    """Consume a cursor into the JSON array response, always closing it."""
    with closing(cursor) as results:
        return _to_json_array(_checked(results))


def get_by_range(store: PrivateDataStore, collection: str, start_key: str, end_key: str) -> bytes:
    """Keys in [start_key, end_key), in ledger key order."""
    result = drain(store.range(collection, start_key, end_key))
    logger.debug(f"- getGenesByRange queryResult:\n{result.decode('utf-8', errors='replace')}")
    return result


def query_by_predicate(store: PrivateDataStore, collection: str, query_string: str) -> bytes:
    """Run a rich query; evaluation belongs entirely to the state database."""
    logger.debug(f"- getQueryResultForQueryString queryString:\n{query_string}")
    result = drain(store.query(collection, query_string))
    logger.debug(f"- getQueryResultForQueryString queryResult:\n{result.decode('utf-8', errors='replace')}")
    return result


def get_by_index(store: PrivateDataStore, index: GeneNameIndex, gene: str) -> bytes:
    """
    Walk the gene~name index for one gene and return the gene documents.

    Keys in the response are gene names, in index (name) order.
    """
    found: List[KV] = []
    with closing(store.partial_key(index.collection, index.index_name, [gene])) as results:
        for kv in _checked(results):
            _, attributes = split_composite_key(kv.key)
            name = attributes[1]
            value = store.get(index.collection, name)
            if value is None:
                logger.warning(f"Index entry {gene}/{name} has no gene document")
                continue
            found.append(KV(name, value))
    return _to_json_array(found)
