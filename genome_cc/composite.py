"""
Composite keys and the gene~name index.

Key layout (same as the ledger's own composite key encoding):

    U+0000 <objectType> U+0000 <attr1> U+0000 <attr2> U+0000

The leading U+0000 keeps index keys out of the simple-key namespace and
the trailing separator after every attribute makes the encoding
prefix-free, so a scan over the (objectType, gene) prefix returns that
gene's names in lexicographic order.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from genome_cc import COLLECTION_GENES, GENE_NAME_INDEX, INDEX_SENTINEL
from genome_cc.errors import InputError

logger = logging.getLogger(__name__)

NAMESPACE = "\x00"
MIN_UNICODE_RUNE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"


def _validate_part(part: str) -> None:
    if MIN_UNICODE_RUNE in part or MAX_UNICODE_RUNE in part:
        raise InputError(
            f"composite key part {part!r} contains U+0000 or U+10FFFF, which are not allowed"
        )


def create_composite_key(object_type: str, attributes: Sequence[str]) -> str:
    if not object_type:
        raise InputError("object type must not be empty")
    _validate_part(object_type)
    key = NAMESPACE + object_type + MIN_UNICODE_RUNE
    for attr in attributes:
        _validate_part(attr)
        key += attr + MIN_UNICODE_RUNE
    return key


def split_composite_key(key: str) -> Tuple[str, List[str]]:
    if not is_composite_key(key):
        raise InputError(f"not a composite key: {key!r}")
    parts = key[len(NAMESPACE):].split(MIN_UNICODE_RUNE)
    # Trailing separator leaves one empty element at the end
    return parts[0], parts[1:-1]


def is_composite_key(key: str) -> bool:
    return key.startswith(NAMESPACE) and key.endswith(MIN_UNICODE_RUNE) and len(key) > 2


class GeneNameIndex:
    """
    Index entries keyed by (gene, name), stored beside the gene documents.

    Entries carry only the sentinel byte and are never read for content.
    """

    def __init__(self, store, collection: str = COLLECTION_GENES, index_name: str = GENE_NAME_INDEX):
        self.store = store
        self.collection = collection
        self.index_name = index_name

    def key(self, gene: str, name: str) -> str:
        return create_composite_key(self.index_name, [gene, name])

    def add(self, gene: str, name: str) -> str:
        index_key = self.key(gene, name)
        self.store.put(self.collection, index_key, INDEX_SENTINEL)
        logger.debug(f"Indexed {name} under {self.index_name}/{gene}")
        return index_key

    def remove(self, gene: str, name: str) -> str:
        index_key = self.key(gene, name)
        self.store.delete(self.collection, index_key)
        logger.debug(f"Removed {name} from {self.index_name}/{gene}")
        return index_key
