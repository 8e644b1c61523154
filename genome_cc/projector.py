from __future__ import annotations

from typing import Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from genome_cc.errors import SerializationError
from genome_cc.models import Gene, GenePrivateDetails, GeneTransientInput

M = TypeVar("M", bound=BaseModel)


def project(gene_input: GeneTransientInput) -> Tuple[Gene, GenePrivateDetails]:
    """
    Split a validated create input into its public and restricted documents.

    The two documents share only the gene name.
    """
    gene = Gene(
        id=gene_input.id,
        name=gene_input.name,
        population=gene_input.population,
        gene=gene_input.gene,
        size=gene_input.size,
    )
    details = GenePrivateDetails(
        name=gene_input.name,
        age=gene_input.age,
        varient=gene_input.varient,
        price=gene_input.price,
    )
    return gene, details


def serialize(document: BaseModel) -> bytes:
    """Compact JSON with docType first, as stored in the collections."""
    try:
        return document.model_dump_json(by_alias=True).encode("utf-8")
    except (ValueError, TypeError) as e:
        raise SerializationError(f"Failed to encode {type(document).__name__}: {e}") from e


def deserialize(model: Type[M], raw: bytes) -> M:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        text = raw.decode("utf-8", errors="replace")
        raise SerializationError(f"Failed to decode JSON of: {text}") from e
