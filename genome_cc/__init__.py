"""
Genome Chaincode - confidential gene records in private data collections.

Public gene documents and their restricted details live in separate
collections, correlated only by gene name.
"""

__version__ = "0.3.0"

# Private data collections
COLLECTION_GENES = "collectionGenes"
COLLECTION_PRIVATE_DETAILS = "collectionGenesPrivateDetails"

# Document discriminators (docType)
DOC_TYPE_GENE = "gene"
DOC_TYPE_PRIVATE_DETAILS = "genePrivateDetails"

# Composite index over (gene, name); shared by the create and delete paths
GENE_NAME_INDEX = "gene~name"

# Index key written by older deployments on the delete path only
LEGACY_DELETE_INDEX = "color~name"

# A nil value deletes the key, so index entries carry a null byte
INDEX_SENTINEL = b"\x00"
