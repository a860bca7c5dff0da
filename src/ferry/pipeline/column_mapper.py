"""Column mapper: proposes a catalog field for every spreadsheet header.

Scoring is alias-first: a header equal to a known alias maps with confidence
1.0. Anything else falls back to containment (0.8) or normalized edit
distance against the field's name, label and aliases. Assignment is greedy
by confidence and one-to-one.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from ferry.catalog.fields import aliases_for, field_for, fields_for
from ferry.core.exceptions import MappingValidationError
from ferry.models.field import DataType, FieldDefinition, Transform
from ferry.models.job import ImportTarget
from ferry.models.schema_mapping import ColumnMapping, MappingValidation

logger = logging.getLogger(__name__)

ALIAS_SCORE = 1.0
CONTAINMENT_SCORE = 0.8
DEFAULT_THRESHOLD = 0.5

DEFAULT_TRANSFORMS: dict[DataType, Transform] = {
    DataType.EMAIL: Transform.LOWERCASE,
    DataType.PHONE: Transform.PHONE_FORMAT,
    DataType.DATE: Transform.DATE_FORMAT,
    DataType.CURRENCY: Transform.CURRENCY_FORMAT,
}


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def normalize(value: str) -> str:
    return value.strip().lower()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance, two-row dynamic programming."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def similarity(header: str, candidate: str) -> float:
    a, b = normalize(header), normalize(candidate)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return CONTAINMENT_SCORE
    return 1 - levenshtein(a, b) / max(len(a), len(b))


def score_field(header: str, definition: FieldDefinition) -> float:
    """Best similarity of ``header`` to any name the field is known by."""
    aliases = aliases_for(definition.name)
    if normalize(header) in {normalize(alias) for alias in aliases}:
        return ALIAS_SCORE
    candidates = [definition.name, definition.label, *aliases]
    return max(similarity(header, candidate) for candidate in candidates)


# ---------------------------------------------------------------------------
# Proposal
# ---------------------------------------------------------------------------

def mapping_for(
    source_column: str,
    definition: FieldDefinition,
    confidence: float = 1.0,
    source_index: int | None = None,
) -> ColumnMapping:
    """Build a mapping that carries the field's type, requiredness and enum domain."""
    return ColumnMapping(
        source_column=source_column,
        source_index=source_index,
        target_field=definition.name,
        data_type=definition.type,
        required=definition.required,
        transform=DEFAULT_TRANSFORMS.get(definition.type),
        enum_values=list(definition.enum_values) if definition.enum_values else None,
        confidence=confidence,
    )


def propose_mappings(
    headers: list[str],
    target: ImportTarget | str,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[ColumnMapping]:
    """Propose one mapping per header, in header order."""
    fields = fields_for(target)

    candidates: list[tuple[int, str, FieldDefinition | None, float]] = []
    for idx, header in enumerate(headers):
        best_field: FieldDefinition | None = None
        best_score = 0.0
        for definition in fields:
            score = score_field(header, definition)
            if score > best_score:
                best_field, best_score = definition, score
        candidates.append((idx, header, best_field, best_score))

    claimed: set[str] = set()
    by_position: dict[int, ColumnMapping] = {}
    for idx, header, definition, score in sorted(candidates, key=lambda c: c[3], reverse=True):
        if definition is not None and score >= threshold and definition.name not in claimed:
            claimed.add(definition.name)
            by_position[idx] = mapping_for(header, definition, score, source_index=idx)
        else:
            by_position[idx] = ColumnMapping(
                source_column=header, source_index=idx, confidence=score,
            )

    mappings = [by_position[idx] for idx in range(len(headers))]
    logger.info(
        "Proposed mappings for %s: %d of %d columns mapped",
        target, len(claimed), len(headers),
    )
    return mappings


# ---------------------------------------------------------------------------
# Caller-facing checks and edits
# ---------------------------------------------------------------------------

def unmapped_required_fields(
    mappings: list[ColumnMapping], target: ImportTarget | str,
) -> list[FieldDefinition]:
    mapped = {m.target_field for m in mappings if m.is_mapped}
    return [f for f in fields_for(target) if f.required and f.name not in mapped]


def available_fields(
    mappings: list[ColumnMapping], target: ImportTarget | str,
) -> list[FieldDefinition]:
    """Fields no column claims yet, for manual assignment."""
    mapped = {m.target_field for m in mappings if m.is_mapped}
    return [f for f in fields_for(target) if f.name not in mapped]


def update_mapping(
    mappings: list[ColumnMapping],
    source_column: str,
    target_field: str,
    target: ImportTarget | str,
    source_index: int | None = None,
) -> list[ColumnMapping]:
    """Point ``source_column`` at ``target_field`` ("" to unmap).

    ``source_index`` selects one of several columns sharing a header;
    without it the first column with that header is edited. Any other
    column that held ``target_field`` is unmapped, so the
    one-field-per-column invariant survives manual edits.
    """
    definition = None
    if target_field:
        definition = field_for(target, target_field)
        if definition is None:
            raise MappingValidationError([f"Unknown field {target_field!r} for {target}"])

    position = next(
        (
            i for i, m in enumerate(mappings)
            if m.source_column == source_column
            and (source_index is None or m.source_index == source_index)
        ),
        None,
    )
    if position is None:
        where = "" if source_index is None else f" at position {source_index}"
        raise MappingValidationError([f"No column named {source_column!r}{where}"])

    updated: list[ColumnMapping] = []
    for i, mapping in enumerate(mappings):
        if i == position:
            if definition is not None:
                replacement = mapping_for(
                    source_column, definition, source_index=mapping.source_index,
                )
                replacement.default_value = mapping.default_value
            else:
                replacement = ColumnMapping(
                    source_column=source_column, source_index=mapping.source_index,
                )
            updated.append(replacement)
        elif target_field and mapping.target_field == target_field:
            updated.append(ColumnMapping(
                source_column=mapping.source_column, source_index=mapping.source_index,
            ))
        else:
            updated.append(mapping)
    return updated


def validate_mappings(
    mappings: list[ColumnMapping], target: ImportTarget | str,
) -> MappingValidation:
    """List every reason the mapping set cannot move on to validation."""
    reasons: list[str] = []

    for definition in unmapped_required_fields(mappings, target):
        reasons.append(f"Required field '{definition.label}' is not mapped")

    sources: dict[str, list[str]] = defaultdict(list)
    for mapping in mappings:
        if mapping.is_mapped:
            sources[mapping.target_field].append(mapping.source_column)

    for name, columns in sources.items():
        definition = field_for(target, name)
        if definition is None:
            reasons.append(f"Column {columns[0]!r} is mapped to unknown field {name!r}")
        elif len(columns) > 1:
            reasons.append(
                f"Field '{definition.label}' is mapped from more than one column: "
                + ", ".join(columns)
            )

    return MappingValidation(ok=not reasons, reasons=reasons)
