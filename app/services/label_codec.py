"""Mapping between issue metadata and GitHub's flat label list.

Type and priority travel as reserved labels (``type:bug``, ``priority:high``)
next to the issue's free-form labels. Decoding is first-wins: the first
recognized ``type:`` and ``priority:`` labels set the metadata and every other
label, including a later recognized duplicate, is kept as free-form. Since
encoding always puts the reserved pair first, ``decode(encode(x)) == x``.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from app.models.issue import IssueType, Priority

TYPE_PREFIX = "type:"
PRIORITY_PREFIX = "priority:"

DEFAULT_TYPE = IssueType.TASK
DEFAULT_PRIORITY = Priority.MEDIUM


@dataclass(frozen=True)
class DecodedLabels:
    type: IssueType = DEFAULT_TYPE
    priority: Priority = DEFAULT_PRIORITY
    labels: List[str] = field(default_factory=list)


def type_label(issue_type: IssueType) -> str:
    return f"{TYPE_PREFIX}{IssueType(issue_type).value.lower()}"


def priority_label(priority: Priority) -> str:
    return f"{PRIORITY_PREFIX}{Priority(priority).value.lower()}"


def reserved_labels() -> List[str]:
    """Every reserved label the codec can produce."""
    return [type_label(t) for t in IssueType] + [priority_label(p) for p in Priority]


def encode_labels(issue_type: IssueType, priority: Priority, labels: Optional[Iterable[str]]) -> List[str]:
    """Build the GitHub label list for an issue."""
    return [type_label(issue_type), priority_label(priority), *(labels or [])]


def _match(name: str, prefix: str, enum_cls):
    if not name.lower().startswith(prefix):
        return None
    value = name[len(prefix):].strip().upper()
    try:
        return enum_cls(value)
    except ValueError:
        return None


def decode_labels(names: Iterable[str]) -> DecodedLabels:
    """Split GitHub label names into (type, priority, free-form labels)."""
    issue_type: Optional[IssueType] = None
    priority: Optional[Priority] = None
    free: List[str] = []

    for name in names:
        if issue_type is None:
            matched_type = _match(name, TYPE_PREFIX, IssueType)
            if matched_type is not None:
                issue_type = matched_type
                continue
        if priority is None:
            matched_priority = _match(name, PRIORITY_PREFIX, Priority)
            if matched_priority is not None:
                priority = matched_priority
                continue
        free.append(name)

    return DecodedLabels(
        type=issue_type or DEFAULT_TYPE,
        priority=priority or DEFAULT_PRIORITY,
        labels=free,
    )


def same_label_set(a: Optional[Iterable[str]], b: Optional[Iterable[str]]) -> bool:
    """Labels carry no order; compare them as sets."""
    return set(a or []) == set(b or [])
