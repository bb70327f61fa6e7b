"""Recurrence expansion: turn recurring event definitions into concrete occurrences."""

from calendar_engine.recurrence.expander import (
    ExpansionResult,
    RecurrenceExpander,
    build_rule_set,
    describe_recurrence,
    expand_recurrence,
    validate_event,
)

__all__ = [
    "ExpansionResult",
    "RecurrenceExpander",
    "build_rule_set",
    "describe_recurrence",
    "expand_recurrence",
    "validate_event",
]
