# core/fulltext/tuple_ops.py
"""
Posting Row Format
==================

A posting row lists the entities holding one token, with the number of
times the token occurs in each of them:

    <entity_id>*<frequency>:<entity_id>*<frequency>:...

Pairs are kept in ascending entity id order so rows are deterministic and
can be merged by a single scan. A frequency of 0 is never stored; updating
an entity to 0 removes its pair. The empty string is an empty row.

The reverse assignment record of an entity uses the same shape, listing the
(token length, token id) pairs currently posted for it:

    <length>*<token_id>:<length>*<token_id>:...

All functions here are pure.
"""
from typing import Dict, Iterable, List, Tuple

PAIR_SEPARATOR = ":"
VALUE_SEPARATOR = "*"

def parse_tuples(row: str) -> List[Tuple[int, int]]:
    """Decode a posting row into (entity_id, frequency) pairs in stored order."""
    if not row:
        return []
    pairs = []
    for chunk in row.split(PAIR_SEPARATOR):
        if not chunk:
            continue
        entity_id, freq = chunk.split(VALUE_SEPARATOR, 1)
        pairs.append((int(entity_id), int(freq)))
    return pairs

def format_tuples(pairs: Iterable[Tuple[int, int]]) -> str:
    """Encode (entity_id, frequency) pairs, dropping zero frequencies."""
    return PAIR_SEPARATOR.join(
        f"{entity_id}{VALUE_SEPARATOR}{freq}"
        for entity_id, freq in sorted(pairs)
        if freq > 0
    )

def update_tuple(row: str, entity_id: int, freq: int) -> str:
    """
    Set the frequency of one entity in a posting row.

    Args:
        row: Serialized posting row (may be empty)
        entity_id: Entity to insert, replace or remove
        freq: New frequency; 0 removes the entity

    Returns:
        The new serialized row. Removing an absent entity returns the row unchanged.
    """
    if freq < 0:
        raise ValueError(f"Frequency cannot be negative: {freq}")

    pairs = parse_tuples(row)
    updated = []
    placed = False
    for current_id, current_freq in pairs:
        if not placed and current_id >= entity_id:
            if freq > 0:
                updated.append((entity_id, freq))
            placed = True
            if current_id == entity_id:
                continue
        updated.append((current_id, current_freq))
    if not placed and freq > 0:
        updated.append((entity_id, freq))

    if freq == 0 and len(updated) == len(pairs):
        return row
    return format_tuples(updated)

def parse_assignments(record: str) -> Dict[Tuple[int, int], int]:
    """
    Decode a reverse assignment record.

    Every (length, token_id) pair maps to 0: the entity is assumed to no
    longer hold the token until a fresh frequency table says otherwise.
    """
    result = {}
    if not record:
        return result
    for chunk in record.split(PAIR_SEPARATOR):
        if not chunk:
            continue
        length, token_id = chunk.split(VALUE_SEPARATOR, 1)
        result[(int(length), int(token_id))] = 0
    return result

def format_assignments(frequencies: Dict[Tuple[int, int], int]) -> str:
    """Encode the non-zero keys of a frequency table as a reverse record."""
    return PAIR_SEPARATOR.join(
        f"{length}{VALUE_SEPARATOR}{token_id}"
        for (length, token_id), freq in sorted(frequencies.items())
        if freq > 0
    )

def merge_frequencies(old: Dict[Tuple[int, int], int],
                      new: Dict[Tuple[int, int], int]) -> Dict[Tuple[int, int], int]:
    """
    Merge the previous assignments of an entity with its new frequency table.

    Keys only in `old` keep frequency 0 and will be removed from their rows,
    keys in `new` carry their real frequency. The result is ordered by key.
    """
    merged = {key: 0 for key in old}
    merged.update(new)
    return dict(sorted(merged.items()))

def group_by_length(frequencies: Dict[Tuple[int, int], int]) -> Dict[int, Dict[int, int]]:
    """Regroup a flat table as {length: {token_id: freq}} in ascending order."""
    grouped: Dict[int, Dict[int, int]] = {}
    for (length, token_id), freq in sorted(frequencies.items()):
        grouped.setdefault(length, {})[token_id] = freq
    return grouped
