"""
Transient input decoding.

Private gene data never travels as invocation arguments, since arguments
are recorded in the shared transaction history. Callers pass it in the
transient map instead; this module decodes and validates those payloads
without touching state.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Type

from pydantic import ValidationError

from genome_cc.errors import InputError
from genome_cc.models import (
    AnyTransientInput,
    GeneDeleteTransientInput,
    GeneTransferTransientInput,
    GeneTransientInput,
    TransientInput,
)

logger = logging.getLogger(__name__)

TRANSIENT_SCHEMAS: Dict[str, Type[TransientInput]] = {
    schema.transient_key: schema
    for schema in (GeneTransientInput, GeneTransferTransientInput, GeneDeleteTransientInput)
}


def require_no_args(args: List[str], what: str) -> None:
    """Reject positional arguments for operations fed by the transient map."""
    if len(args) != 0:
        raise InputError(
            f"Incorrect number of arguments. Private {what} must be passed in transient map."
        )


def decode_transient(transient: Mapping[str, bytes], key: str) -> AnyTransientInput:
    """
    Decode and validate the payload stored under ``key``.

    The schema is chosen by key: ``gene`` (create), ``gene_name`` (transfer)
    or ``gene_delete`` (delete).

    Raises:
        InputError: key absent, empty value, malformed JSON, wrong JSON
            types, or a field rule violation (first failing field wins)
    """
    schema = TRANSIENT_SCHEMAS[key]

    if key not in transient:
        raise InputError(f"{key} must be a key in the transient map")

    raw = transient[key]
    if not raw:
        raise InputError(f"{key} value in the transient map must be a non-empty JSON string")

    try:
        decoded = schema.model_validate_json(raw)
    except ValidationError as exc:
        raise _to_input_error(exc, raw) from exc

    logger.debug(f"Decoded transient '{key}' as {schema.__name__}")
    return decoded  # type: ignore[return-value]


def _to_input_error(exc: ValidationError, raw: bytes) -> InputError:
    errors = exc.errors()
    # A payload that does not decode into the input's JSON types fails as a
    # whole; field rules only apply once every field decoded
    rule_failures = [e for e in errors if e["type"] == "value_error"]
    if rule_failures and len(rule_failures) == len(errors):
        return InputError(str(rule_failures[0]["ctx"]["error"]))
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else str(raw)
    return InputError(f"Failed to decode JSON of: {text}")
