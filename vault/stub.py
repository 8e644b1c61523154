"""
In-memory ledger runtime for the gene chaincode.

Stands in for the peer: keeps committed private data per collection,
enforces collection membership, hands each invocation a transaction-scoped
stub and applies or discards its write set atomically.

Semantics follow the peer's private data behaviour:
- reads see committed state only, never the transaction's own writes
- the last write to a key within a transaction wins
- an empty value is applied as a delete
- range scans are [start, end) in key order; an empty end is unbounded
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from genome_cc import COLLECTION_GENES, COLLECTION_PRIVATE_DETAILS
from genome_cc.composite import MAX_UNICODE_RUNE, create_composite_key
from genome_cc.store import KV

from .selector import run_query

logger = logging.getLogger(__name__)


def new_tx_id() -> str:
    """Time-ordered transaction id: tx_{timestamp_ms:013x}_{random:016x}."""
    timestamp_ms = int(time.time() * 1000)
    return f"tx_{timestamp_ms:013x}_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class CollectionConfig:
    """Membership policy of one private data collection."""

    name: str
    members: FrozenSet[str]
    member_only_read: bool = True
    member_only_write: bool = False


def default_collections(
    public_members: Iterable[str] = ("Org1MSP", "Org2MSP"),
    private_members: Iterable[str] = ("Org1MSP",),
) -> List[CollectionConfig]:
    return [
        CollectionConfig(COLLECTION_GENES, frozenset(public_members)),
        CollectionConfig(COLLECTION_PRIVATE_DETAILS, frozenset(private_members)),
    ]


class StateIterator:
    """Cursor over a snapshot of results; tracks whether it was released."""

    def __init__(self, results: Iterable[Tuple[str, bytes]]):
        self._results = iter(results)
        self.closed = False

    def __iter__(self) -> Iterator[KV]:
        return self

    def __next__(self) -> KV:
        if self.closed:
            raise StopIteration
        key, value = next(self._results)
        return KV(key, value)

    def close(self) -> None:
        self.closed = True


@dataclass
class WorldState:
    """Committed private data, one key space per configured collection."""

    collections: Sequence[CollectionConfig] = field(default_factory=default_collections)
    data: Dict[str, Dict[str, bytes]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for config in self.collections:
            self.data.setdefault(config.name, {})

    def config(self, collection: str) -> CollectionConfig:
        for config in self.collections:
            if config.name == collection:
                return config
        raise LookupError(f"collection {collection} not defined")

    def get(self, collection: str, key: str) -> Optional[bytes]:
        self.config(collection)
        return self.data[collection].get(key)

    def scan(self, collection: str, start_key: str, end_key: str) -> List[Tuple[str, bytes]]:
        self.config(collection)
        space = self.data[collection]
        return [
            (k, space[k])
            for k in sorted(space)
            if k >= start_key and (not end_key or k < end_key)
        ]

    def apply(self, writes: Dict[Tuple[str, str], Optional[bytes]]) -> None:
        for (collection, key), value in writes.items():
            if value:
                self.data[collection][key] = value
            else:
                self.data[collection].pop(key, None)


class MockStub:
    """Transaction-scoped view of a WorldState for one invocation."""

    def __init__(
        self,
        world: WorldState,
        function: str,
        args: Sequence[str] = (),
        transient: Optional[Dict[str, bytes]] = None,
        msp_id: str = "Org1MSP",
    ):
        self.world = world
        self.function = function
        self.args = list(args)
        self.transient = dict(transient or {})
        self.msp_id = msp_id
        self.tx_id = new_tx_id()
        self.writes: Dict[Tuple[str, str], Optional[bytes]] = {}
        self.iterators: List[StateIterator] = []

    def get_function_and_parameters(self) -> Tuple[str, List[str]]:
        return self.function, list(self.args)

    def get_transient(self) -> Dict[str, bytes]:
        return dict(self.transient)

    def get_mspid(self) -> str:
        return self.msp_id

    def _check_read(self, collection: str) -> None:
        config = self.world.config(collection)
        if config.member_only_read and self.msp_id not in config.members:
            raise PermissionError(
                f"tx creator does not have read access permission on privatedata "
                f"in collectionName:{collection}"
            )

    def _check_write(self, collection: str) -> None:
        config = self.world.config(collection)
        if config.member_only_write and self.msp_id not in config.members:
            raise PermissionError(
                f"tx creator does not have write access permission on privatedata "
                f"in collectionName:{collection}"
            )

    @staticmethod
    def _check_key(key: str) -> None:
        if not key:
            raise ValueError("key must not be an empty string")

    def get_private_data(self, collection: str, key: str) -> Optional[bytes]:
        self._check_key(key)
        self._check_read(collection)
        return self.world.get(collection, key)

    def put_private_data(self, collection: str, key: str, value: bytes) -> None:
        self._check_key(key)
        self._check_write(collection)
        self.writes[(collection, key)] = bytes(value) if value else None

    def del_private_data(self, collection: str, key: str) -> None:
        self._check_key(key)
        self._check_write(collection)
        self.writes[(collection, key)] = None

    def _iterator(self, results: Iterable[Tuple[str, bytes]]) -> StateIterator:
        it = StateIterator(results)
        self.iterators.append(it)
        return it

    def get_private_data_by_range(self, collection: str, start_key: str, end_key: str) -> StateIterator:
        self._check_read(collection)
        return self._iterator(self.world.scan(collection, start_key, end_key))

    def get_private_data_by_partial_composite_key(
        self, collection: str, object_type: str, attributes: List[str]
    ) -> StateIterator:
        self._check_read(collection)
        prefix = create_composite_key(object_type, attributes)
        return self._iterator(self.world.scan(collection, prefix, prefix + MAX_UNICODE_RUNE))

    def get_private_data_query_result(self, collection: str, query: str) -> StateIterator:
        self._check_read(collection)
        return self._iterator(run_query(self.world.scan(collection, "", ""), query))

    def commit(self) -> None:
        self.world.apply(self.writes)
        logger.debug(f"{self.tx_id} committed {len(self.writes)} writes")
        self.writes = {}

    def rollback(self) -> None:
        logger.debug(f"{self.tx_id} discarded {len(self.writes)} writes")
        self.writes = {}


class MockPeer:
    """
    Runs chaincode invocations as transactions against a WorldState.

    Usage:
        peer = MockPeer(GeneChaincode())
        peer.invoke("initGene", transient={"gene": b'{"id": 1, ...}'})
        peer.query("readGene", ["Ron"])
    """

    def __init__(self, chaincode, world: Optional[WorldState] = None, msp_id: str = "Org1MSP"):
        self.chaincode = chaincode
        self.world = world if world is not None else WorldState()
        self.msp_id = msp_id
        self.last_stub: Optional[MockStub] = None

    def _stub(self, function, args, transient, msp_id) -> MockStub:
        stub = MockStub(self.world, function, args, transient, msp_id or self.msp_id)
        self.last_stub = stub
        return stub

    def invoke(
        self,
        function: str,
        args: Sequence[str] = (),
        transient: Optional[Dict[str, bytes]] = None,
        msp_id: Optional[str] = None,
    ):
        """Invoke and commit the write set only if the response is OK."""
        stub = self._stub(function, args, transient, msp_id)
        response = self.chaincode.invoke(stub)
        if response.ok:
            stub.commit()
        else:
            stub.rollback()
        return response

    def query(
        self,
        function: str,
        args: Sequence[str] = (),
        transient: Optional[Dict[str, bytes]] = None,
        msp_id: Optional[str] = None,
    ):
        """Evaluate without committing anything."""
        stub = self._stub(function, args, transient, msp_id)
        response = self.chaincode.invoke(stub)
        stub.rollback()
        return response
