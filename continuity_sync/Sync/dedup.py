# continuity_sync/Sync/dedup.py
# Rewrites colliding natural keys so a batch upsert never trips a uniqueness constraint.
#
# Imports
from typing import Any, Dict, List, Sequence
#
#######################################################################################################################
#
# Functions:

def deduplicate_keys(rows: Sequence[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    """
    Returns a copy of `rows` in which every value of `key` is unique.

    The first occurrence of a value is kept as is. Later occurrences get a numeric suffix
    in first-seen order: "12", "12", "7", "12" -> "12", "12-2", "7", "12-3".
    A generated value that is already taken (e.g. a literal "12-2" elsewhere in the batch)
    is skipped in favour of the next free suffix. Input rows are not modified.
    """
    taken = {row.get(key) for row in rows}
    seen_counts: Dict[Any, int] = {}
    assigned = set()
    result: List[Dict[str, Any]] = []

    for row in rows:
        value = row.get(key)
        count = seen_counts.get(value, 0) + 1
        seen_counts[value] = count

        if count == 1 and value not in assigned:
            assigned.add(value)
            result.append(dict(row))
            continue

        suffix = max(count, 2)
        candidate = f"{value}-{suffix}"
        while candidate in assigned or (candidate in taken and candidate != value):
            suffix += 1
            candidate = f"{value}-{suffix}"
        seen_counts[value] = suffix
        assigned.add(candidate)
        result.append({**row, key: candidate})

    return result


def deduplicate_scene_numbers(rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return deduplicate_keys(rows, "scene_number")

#
# End of dedup.py
#######################################################################################################################
