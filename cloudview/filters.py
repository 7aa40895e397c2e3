"""Resource filters and the predicate every collector applies."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ValidationError
from .types import Resource, ensure_utc, kinds_for_term, normalize_kind, UNKNOWN, KIND_GROUPS


def _unique(values: Optional[Iterable[str]]) -> List[str]:
    seen = set()
    ordered = []
    for value in values or []:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


@dataclass
class ResourceFilters:
    """
    Constraints on an inventory query.

    Every field is optional; an empty field places no constraint on its
    dimension. Populated fields are AND'd together.
    """
    regions: List[str] = field(default_factory=list)
    kinds: List[str] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    statuses: List[str] = field(default_factory=list)
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None

    def __post_init__(self):
        self.regions = _unique(self.regions)
        self.kinds = _unique(self.kinds)
        self.statuses = _unique(self.statuses)
        self.tags = dict(self.tags or {})
        self.created_after = ensure_utc(self.created_after)
        self.created_before = ensure_utc(self.created_before)

    def is_empty(self) -> bool:
        return not (self.regions or self.kinds or self.tags or self.statuses
                    or self.created_after or self.created_before)

    def wanted_kinds(self) -> Optional[frozenset]:
        """Canonical kinds selected by the kind clause, or None for all."""
        if not self.kinds:
            return None
        wanted = set()
        for term in self.kinds:
            wanted |= kinds_for_term(term)
        return frozenset(wanted)

    def wants_kind(self, kind: str) -> bool:
        wanted = self.wanted_kinds()
        return wanted is None or kind in wanted

    def with_kind(self, kind: str) -> 'ResourceFilters':
        """Copy of these filters with the kind clause narrowed to one kind."""
        return ResourceFilters(
            regions=list(self.regions),
            kinds=[kind],
            tags=dict(self.tags),
            statuses=list(self.statuses),
            created_after=self.created_after,
            created_before=self.created_before,
        )


def _kind_matches(resource: Resource, terms: Sequence[str]) -> bool:
    for term in terms:
        key = term.strip().lower().replace('-', '_')
        if key in KIND_GROUPS and resource.kind in KIND_GROUPS[key]:
            return True
        if normalize_kind(key) == resource.kind and resource.kind != UNKNOWN:
            return True
        if key == UNKNOWN and resource.kind == UNKNOWN:
            return True
    return False


def matches(resource: Resource, filters: Optional[ResourceFilters]) -> bool:
    """
    Evaluate whether a resource satisfies every populated filter clause.

    Args:
        resource: Normalized resource
        filters: Filter set; None or empty matches everything

    Returns:
        True when the resource passes the kind, region, tag, status and
        creation-window clauses
    """
    if filters is None:
        return True

    if filters.kinds and not _kind_matches(resource, filters.kinds):
        return False

    if filters.regions and resource.region not in filters.regions:
        return False

    for key, value in filters.tags.items():
        if resource.tags.get(key) != value:
            return False

    if filters.statuses and resource.status.state not in filters.statuses:
        return False

    if filters.created_after is not None or filters.created_before is not None:
        created = ensure_utc(resource.created_at)
        if created is None:
            return False
        if filters.created_after is not None and not created > filters.created_after:
            return False
        if filters.created_before is not None and not created < filters.created_before:
            return False

    return True


def _split(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten repeated and comma-separated CLI values."""
    items: List[str] = []
    for value in values or []:
        items.extend(part.strip() for part in value.split(',') if part.strip())
    return items


def parse_tags(values: Optional[Iterable[str]]) -> Dict[str, str]:
    """
    Parse key=value tag expressions.

    Raises:
        ValidationError: If an expression has no '=' or an empty key
    """
    tags: Dict[str, str] = {}
    for value in _split(values):
        key, sep, tag_value = value.partition('=')
        key = key.strip()
        if not sep or not key:
            raise ValidationError('tag', value, "tag filter must be in the form 'key=value'")
        tags[key] = tag_value.strip()
    return tags


def parse_date(value: Optional[str], field_name: str) -> Optional[datetime]:
    """
    Parse YYYY-MM-DD or an ISO-8601 timestamp into a UTC datetime.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(field_name, value, 'expected a date in YYYY-MM-DD or ISO-8601 format') from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_filters(
    regions: Optional[Iterable[str]] = None,
    kinds: Optional[Iterable[str]] = None,
    tags: Optional[Iterable[str]] = None,
    statuses: Optional[Iterable[str]] = None,
    created_after: Optional[str] = None,
    created_before: Optional[str] = None,
) -> ResourceFilters:
    """
    Build filters from raw command-line strings.

    Raises:
        ValidationError: On a malformed tag, date, kind or an inverted window
    """
    kind_terms = _split(kinds)
    for term in kind_terms:
        if not kinds_for_term(term):
            raise ValidationError('type', term, 'unknown resource type')

    after = parse_date(created_after, 'created_after')
    before = parse_date(created_before, 'created_before')
    if after is not None and before is not None and after >= before:
        raise ValidationError('created_after', created_after, 'must be earlier than created_before')

    return ResourceFilters(
        regions=_split(regions),
        kinds=kind_terms,
        tags=parse_tags(tags),
        statuses=_split(statuses),
        created_after=after,
        created_before=before,
    )
