"""Conversion between raw criteria payloads and strategy criteria structs."""

from __future__ import annotations

import typing as typ

import msgspec

from courier.handlers.errors import ReportValidationError

if typ.TYPE_CHECKING:
    from courier.handlers.protocol import ReportStrategy


def convert_criteria(
    strategy: ReportStrategy,
    raw: typ.Mapping[str, typ.Any] | None,
) -> msgspec.Struct:
    """Build the strategy's criteria struct from a request payload.

    Parameters
    ----------
    strategy
        Strategy whose ``criteria_type`` describes the payload.
    raw
        Decoded JSON object supplied by the caller; ``None`` means defaults.

    Returns
    -------
    msgspec.Struct
        Criteria instance ready for validation.

    Raises
    ------
    ReportValidationError
        If the payload does not match the criteria type.

    """
    try:
        return msgspec.convert(dict(raw or {}), type=strategy.criteria_type)
    except msgspec.ValidationError as exc:
        raise ReportValidationError.undecodable(strategy.report_type, str(exc)) from exc


def encode_criteria(criteria: msgspec.Struct) -> str:
    """Serialize criteria to the JSON text stored on the job row."""
    return msgspec.json.encode(criteria).decode("utf-8")


def decode_criteria(strategy: ReportStrategy, payload: str) -> msgspec.Struct:
    """Rebuild criteria from the JSON text stored on a job row.

    Raises
    ------
    ReportValidationError
        If the stored text is not valid JSON for ``strategy.criteria_type``.

    """
    try:
        return msgspec.json.decode(payload, type=strategy.criteria_type)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise ReportValidationError.undecodable(strategy.report_type, str(exc)) from exc
