from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DATE_SUFFIX = "Date"
EXECUTED_SUFFIX = "Executed"
NOTES_FIELD = "notes"

STANDALONE_CHECKBOX_FIELDS = frozenset(
    {
        "trainingCompleted",
        "manualUploaded",
        "techGuideUploaded",
        "partsReceived",
        "branchOrderEnabled",
        "issueResolved",
    }
)


@dataclass(frozen=True)
class FieldClassification:
    paired_date_fields: tuple[str, ...] = ()
    plain_fields: tuple[str, ...] = ()
    standalone_checkbox_fields: tuple[str, ...] = ()
    excluded_fields: tuple[str, ...] = ()

    @property
    def scorable_count(self) -> int:
        return (
            len(self.paired_date_fields)
            + len(self.plain_fields)
            + len(self.standalone_checkbox_fields)
        )


def executed_field_for(date_field: str) -> str:
    return f"{date_field}{EXECUTED_SUFFIX}"


def classify_fields(stage: Any) -> FieldClassification:
    """Split a stage record's keys into scoring categories by naming convention.

    Keys are read fresh on every call, so new fields introduced by a later
    form version are picked up without any schema change:

    * ``<x>Date`` with a ``<x>DateExecuted`` sibling is a paired field.
    * ``<x>Date`` without a sibling is scored like any plain text field.
    * the fixed standalone flags (``trainingCompleted``...) are checkboxes.
    * ``*Executed`` keys and ``notes`` are never scored on their own.
    """
    if not isinstance(stage, Mapping):
        return FieldClassification()

    names = [name for name in stage if isinstance(name, str)]
    present = set(names)

    paired: list[str] = []
    plain: list[str] = []
    checkboxes: list[str] = []
    excluded: list[str] = []

    for name in names:
        if name == NOTES_FIELD:
            excluded.append(name)
        elif name.endswith(DATE_SUFFIX):
            if executed_field_for(name) in present:
                paired.append(name)
            else:
                plain.append(name)
        elif name.endswith(EXECUTED_SUFFIX):
            excluded.append(name)
        elif name in STANDALONE_CHECKBOX_FIELDS:
            checkboxes.append(name)
        else:
            plain.append(name)

    return FieldClassification(
        paired_date_fields=tuple(paired),
        plain_fields=tuple(plain),
        standalone_checkbox_fields=tuple(checkboxes),
        excluded_fields=tuple(excluded),
    )
