"""
Private data access for chaincode handlers.

The ledger runtime hands each invocation a stub scoped to one
transaction. Writes go straight to the stub; the runtime applies them
together at commit or drops them when the invocation fails.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, NamedTuple, Optional, Protocol, Tuple

from genome_cc.errors import AccessDenied, InputError, StoreError

logger = logging.getLogger(__name__)


class KV(NamedTuple):
    key: str
    value: bytes


class StateQueryIterator(Protocol):
    """Cursor over query results; must be closed once consumed."""

    def __iter__(self) -> Iterator[KV]: ...

    def __next__(self) -> KV: ...

    def close(self) -> None: ...


class ChaincodeStub(Protocol):
    """What the ledger runtime provides to one invocation."""

    def get_function_and_parameters(self) -> Tuple[str, List[str]]: ...

    def get_transient(self) -> Dict[str, bytes]: ...

    def get_private_data(self, collection: str, key: str) -> Optional[bytes]: ...

    def put_private_data(self, collection: str, key: str, value: bytes) -> None: ...

    def del_private_data(self, collection: str, key: str) -> None: ...

    def get_private_data_by_range(
        self, collection: str, start_key: str, end_key: str
    ) -> StateQueryIterator: ...

    def get_private_data_by_partial_composite_key(
        self, collection: str, object_type: str, attributes: List[str]
    ) -> StateQueryIterator: ...

    def get_private_data_query_result(self, collection: str, query: str) -> StateQueryIterator: ...


class PrivateDataStore:
    """
    Uniform get/put/delete over named private data collections.

    Absence is returned as None, never raised. Access rejections from the
    runtime surface as AccessDenied, any other runtime failure as StoreError.
    """

    def __init__(self, stub: ChaincodeStub):
        self.stub = stub

    def get(self, collection: str, key: str) -> Optional[bytes]:
        try:
            value = self.stub.get_private_data(collection, key)
        except PermissionError as e:
            raise AccessDenied(f"Failed to get private data from {collection}: {e}") from e
        except (LookupError, ValueError) as e:
            raise StoreError(f"Failed to get state for {key}: {e}") from e
        return value or None

    def put(self, collection: str, key: str, value: bytes) -> None:
        # An empty value is applied as a delete by the ledger
        if not value:
            raise InputError(f"Refusing to write empty value for {key}")
        try:
            self.stub.put_private_data(collection, key, value)
        except PermissionError as e:
            raise AccessDenied(f"Failed to put private data into {collection}: {e}") from e
        except (LookupError, ValueError) as e:
            raise StoreError(f"Failed to put state for {key}: {e}") from e
        logger.debug(f"put {collection}/{key!r} ({len(value)} bytes)")

    def delete(self, collection: str, key: str) -> None:
        try:
            self.stub.del_private_data(collection, key)
        except PermissionError as e:
            raise AccessDenied(f"Failed to delete private data from {collection}: {e}") from e
        except (LookupError, ValueError) as e:
            raise StoreError(f"Failed to delete state:{e}") from e
        logger.debug(f"delete {collection}/{key!r}")

    # Cursor factories. Callers own the returned cursor and must close it.

    def range(self, collection: str, start_key: str, end_key: str) -> StateQueryIterator:
        try:
            return self.stub.get_private_data_by_range(collection, start_key, end_key)
        except PermissionError as e:
            raise AccessDenied(f"Range query on {collection} rejected: {e}") from e
        except (LookupError, ValueError) as e:
            raise StoreError(str(e)) from e

    def partial_key(
        self, collection: str, object_type: str, attributes: List[str]
    ) -> StateQueryIterator:
        try:
            return self.stub.get_private_data_by_partial_composite_key(
                collection, object_type, attributes
            )
        except PermissionError as e:
            raise AccessDenied(f"Index query on {collection} rejected: {e}") from e
        except (LookupError, ValueError) as e:
            raise StoreError(str(e)) from e

    def query(self, collection: str, query: str) -> StateQueryIterator:
        try:
            return self.stub.get_private_data_query_result(collection, query)
        except PermissionError as e:
            raise AccessDenied(f"Rich query on {collection} rejected: {e}") from e
        except ValueError as e:
            raise InputError(f"Invalid query string: {e}") from e
        except LookupError as e:
            raise StoreError(str(e)) from e
