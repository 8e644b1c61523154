from __future__ import annotations

from typing import ClassVar, Literal, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class Gene(BaseModel):
    """Public projection, stored in collectionGenes under its name."""
    doc_type: Literal["gene"] = Field(default="gene", alias="docType")
    id: int
    name: str
    population: str
    gene: str
    size: int

    model_config = {"populate_by_name": True}


class GenePrivateDetails(BaseModel):
    """Restricted projection, stored in collectionGenesPrivateDetails under the same name."""
    doc_type: Literal["genePrivateDetails"] = Field(default="genePrivateDetails", alias="docType")
    name: str
    age: int
    varient: str
    price: int

    model_config = {"populate_by_name": True}


def _positive_int(v: int, info: ValidationInfo) -> int:
    if v <= 0:
        raise ValueError(f"{info.field_name} field must be a positive integer")
    return v


def _non_empty(v: str, info: ValidationInfo) -> str:
    if len(v) == 0:
        raise ValueError(f"{info.field_name} field must be a non-empty string")
    return v


class TransientInput(BaseModel):
    """
    Base for payloads passed through the transient map.

    Missing fields default to zero values and are then rejected by the
    field rules; JSON types are matched strictly.
    """
    transient_key: ClassVar[str]

    model_config = {"strict": True, "validate_default": True, "extra": "ignore"}


class GeneTransientInput(TransientInput):
    transient_key: ClassVar[str] = "gene"

    id: int = 0
    name: str = ""
    population: str = ""
    gene: str = ""
    size: int = 0
    age: int = 0
    varient: str = ""
    price: int = 0

    @field_validator("id", "size", "age", "price")
    @classmethod
    def check_positive(cls, v: int, info: ValidationInfo) -> int:
        return _positive_int(v, info)

    @field_validator("name", "population", "gene", "varient")
    @classmethod
    def check_non_empty(cls, v: str, info: ValidationInfo) -> str:
        return _non_empty(v, info)


class GeneTransferTransientInput(TransientInput):
    transient_key: ClassVar[str] = "gene_name"

    gene: str = ""
    name: str = ""

    @field_validator("gene", "name")
    @classmethod
    def check_non_empty(cls, v: str, info: ValidationInfo) -> str:
        return _non_empty(v, info)


class GeneDeleteTransientInput(TransientInput):
    transient_key: ClassVar[str] = "gene_delete"

    name: str = ""

    @field_validator("name")
    @classmethod
    def check_non_empty(cls, v: str, info: ValidationInfo) -> str:
        return _non_empty(v, info)


AnyTransientInput = Union[GeneTransientInput, GeneTransferTransientInput, GeneDeleteTransientInput]
