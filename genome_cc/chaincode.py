"""
Gene chaincode entry points.

The ledger runtime calls ``invoke`` once per transaction with a stub
scoped to that transaction. The function name picks a handler from a
fixed table; handlers raise ChaincodeError on the first failure and the
error becomes the invocation's response, so the runtime discards every
write made so far.

Functions:
    initGene                   create gene + private details + index entry (transient "gene")
    readGene                   [name] -> public gene document
    readGenePrivateDetails     [name] -> private details document
    transferGene               set a new gene label on a document (transient "gene_name")
    delete                     remove gene, index entry and private details (transient "gene_delete")
    getGenesByRange            [startKey, endKey] -> [{Key, Record}]
    queryAgeingDrugs           [owner] -> rich query on docType=gene, owner=<lowercased>
    queryLongetivityMapByGene  [queryString] -> rich query, passed through verbatim
    getGenesByCategory         [gene] -> genes indexed under that gene label
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional

from genome_cc import (
    COLLECTION_GENES,
    COLLECTION_PRIVATE_DETAILS,
    DOC_TYPE_GENE,
    LEGACY_DELETE_INDEX,
)
from genome_cc.composite import GeneNameIndex
from genome_cc.errors import (
    AlreadyExists,
    ChaincodeError,
    InputError,
    NotFound,
    UnknownOperation,
)
from genome_cc.models import Gene
from genome_cc.projector import deserialize, project, serialize
from genome_cc.query import get_by_index, get_by_range, query_by_predicate
from genome_cc.store import ChaincodeStub, PrivateDataStore
from genome_cc.transient import decode_transient, require_no_args

logger = logging.getLogger(__name__)

OK = 200
ERROR = 500


@dataclass(frozen=True)
class Response:
    """Outcome of one invocation, as returned to the ledger runtime."""

    status: int
    message: str = ""
    payload: bytes = b""
    kind: str = ""

    @property
    def ok(self) -> bool:
        return self.status < 400


def success(payload: Optional[bytes] = None) -> Response:
    return Response(status=OK, payload=payload or b"")


def error(exc: ChaincodeError) -> Response:
    return Response(status=ERROR, message=str(exc), kind=type(exc).__name__)


def _get_transient(stub: ChaincodeStub) -> Mapping[str, bytes]:
    try:
        return stub.get_transient()
    except (LookupError, ValueError) as e:
        raise InputError(f"Error getting transient: {e}") from e


def _require_name_arg(args: List[str], what: str) -> str:
    if len(args) != 1:
        raise InputError(f"Incorrect number of arguments. Expecting {what} to query")
    return args[0]


class GeneChaincode:
    """
    Handlers for gene documents in private data collections.

    Holds configuration only; all state lives in the ledger.
    """

    def __init__(self, legacy_index_cleanup: bool = False):
        self.legacy_index_cleanup = legacy_index_cleanup

    def init(self, stub: ChaincodeStub) -> Response:
        return success()

    def invoke(self, stub: ChaincodeStub) -> Response:
        function, args = stub.get_function_and_parameters()
        logger.info(f"invoke is running {function}")

        handler = HANDLERS.get(function)
        try:
            if handler is None:
                logger.warning(f"invoke did not find func: {function}")
                raise UnknownOperation("Received unknown function invocation")
            payload = handler(self, stub, list(args))
        except ChaincodeError as e:
            logger.warning(f"{function} failed ({type(e).__name__}): {e}")
            return error(e)
        return success(payload)

    # ------------------------------------------------------------------
    # Writes (transient input only)
    # ------------------------------------------------------------------

    def init_gene(self, stub: ChaincodeStub, args: List[str]) -> None:
        logger.info("- start init gene")
        require_no_args(args, "gene data")
        gene_input = decode_transient(_get_transient(stub), "gene")

        store = PrivateDataStore(stub)
        if store.get(COLLECTION_GENES, gene_input.name) is not None:
            raise AlreadyExists(f"This gene already exists: {gene_input.name}")

        gene, details = project(gene_input)
        store.put(COLLECTION_GENES, gene.name, serialize(gene))
        store.put(COLLECTION_PRIVATE_DETAILS, details.name, serialize(details))

        # Index entry enables traversal of all names under one gene label
        GeneNameIndex(store).add(gene.gene, gene.name)
        logger.info("- end init gene")

    def transfer_gene(self, stub: ChaincodeStub, args: List[str]) -> None:
        logger.info("- start transfer gene")
        require_no_args(args, "gene data")
        transfer = decode_transient(_get_transient(stub), "gene_name")

        store = PrivateDataStore(stub)
        raw = store.get(COLLECTION_GENES, transfer.name)
        if raw is None:
            raise NotFound(f"Name does not exist: {transfer.name}")

        current = deserialize(Gene, raw)
        updated = current.model_copy(update={"gene": transfer.gene})
        store.put(COLLECTION_GENES, updated.name, serialize(updated))

        # Index entry must follow the gene label it is keyed by
        if current.gene != updated.gene:
            index = GeneNameIndex(store)
            index.remove(current.gene, current.name)
            index.add(updated.gene, updated.name)
        logger.info("- end transferGene (success)")

    def delete(self, stub: ChaincodeStub, args: List[str]) -> None:
        logger.info("- start delete gene")
        require_no_args(args, "gene name")
        target = decode_transient(_get_transient(stub), "gene_delete")

        store = PrivateDataStore(stub)
        # Read first: the index key needs the current gene label
        raw = store.get(COLLECTION_GENES, target.name)
        if raw is None:
            raise NotFound(f"Gene does not exist: {target.name}")
        gene = deserialize(Gene, raw)

        store.delete(COLLECTION_GENES, target.name)
        GeneNameIndex(store).remove(gene.gene, gene.name)
        if self.legacy_index_cleanup:
            GeneNameIndex(store, index_name=LEGACY_DELETE_INDEX).remove(gene.gene, gene.name)
        store.delete(COLLECTION_PRIVATE_DETAILS, target.name)
        logger.info("- end delete gene")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_gene(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        name = _require_name_arg(args, "name of the gene")
        value = PrivateDataStore(stub).get(COLLECTION_GENES, name)
        if value is None:
            raise NotFound(f"Gene does not exist: {name}")
        return value

    def read_gene_private_details(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        name = _require_name_arg(args, "name of the gene")
        value = PrivateDataStore(stub).get(COLLECTION_PRIVATE_DETAILS, name)
        if value is None:
            raise NotFound(f"Gene private details does not exist: {name}")
        return value

    def get_genes_by_range(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        if len(args) < 2:
            raise InputError("Incorrect number of arguments. Expecting 2")
        return get_by_range(PrivateDataStore(stub), COLLECTION_GENES, args[0], args[1])

    def query_ageing_drugs(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        if len(args) < 1:
            raise InputError("Incorrect number of arguments. Expecting 1")
        owner = args[0].lower()
        query_string = json.dumps(
            {"selector": {"docType": DOC_TYPE_GENE, "owner": owner}}, separators=(",", ":")
        )
        return query_by_predicate(PrivateDataStore(stub), COLLECTION_GENES, query_string)

    def query_longetivity_map_by_gene(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        if len(args) < 1:
            raise InputError("Incorrect number of arguments. Expecting 1")
        return query_by_predicate(PrivateDataStore(stub), COLLECTION_GENES, args[0])

    def get_genes_by_category(self, stub: ChaincodeStub, args: List[str]) -> bytes:
        gene = _require_name_arg(args, "gene")
        store = PrivateDataStore(stub)
        return get_by_index(store, GeneNameIndex(store), gene)


Handler = Callable[[GeneChaincode, ChaincodeStub, List[str]], Optional[bytes]]

HANDLERS: Mapping[str, Handler] = MappingProxyType({
    "initGene": GeneChaincode.init_gene,
    "readGene": GeneChaincode.read_gene,
    "readGenePrivateDetails": GeneChaincode.read_gene_private_details,
    "transferGene": GeneChaincode.transfer_gene,
    "delete": GeneChaincode.delete,
    "getGenesByRange": GeneChaincode.get_genes_by_range,
    "queryAgeingDrugs": GeneChaincode.query_ageing_drugs,
    "queryLongetivityMapByGene": GeneChaincode.query_longetivity_map_by_gene,
    "getGenesByCategory": GeneChaincode.get_genes_by_category,
})
