"""
Sync request and result domain objects for regrelay.

A sync request names a source and a target repository plus the tags to
carry over. The relay turns it into one skopeo invocation per tag and
reports a per-tag outcome.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

REGEX_PREFIX = "regex:"


class TransferMode(Enum):
    """Which skopeo sub-operation a relay invokes."""
    COPY = "copy"
    SYNC = "sync"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'TransferMode':
        """
        Map a configured mode string to a TransferMode.

        Only the exact string "sync" selects SYNC. Empty, "copy" and any
        unrecognized value fall back to COPY.
        """
        if value == cls.SYNC.value:
            return cls.SYNC
        return cls.COPY


@dataclass(frozen=True)
class TagFilter:
    """A ``regex:`` tag filter, optionally negated with a leading '!'."""
    pattern: str
    negate: bool = False

    @classmethod
    def parse(cls, item: str) -> 'TagFilter':
        body = item[len(REGEX_PREFIX):].strip()
        negate = body.startswith('!')
        if negate:
            body = body[1:]
        re.compile(body)  # surface bad patterns at parse time
        return cls(pattern=body, negate=negate)

    def matches(self, tag: str) -> bool:
        found = re.search(self.pattern, tag) is not None
        return found != self.negate


@dataclass(frozen=True)
class TagSet:
    """
    Tag selector of a sync request.

    Holds explicit tags in their given order (duplicates dropped) and
    optional regex filters. A TagSet without explicit tags means "all tags
    on the source", narrowed by the filters if there are any.

    Example:
        TagSet.from_list(["v1", "v2"])              # explicit
        TagSet.from_list([])                        # every source tag
        TagSet.from_list(["regex:^v1\\.", "regex:!rc"])  # filtered listing
    """
    explicit: Tuple[str, ...] = ()
    filters: Tuple[TagFilter, ...] = ()

    @classmethod
    def from_list(cls, items: Optional[Iterable[str]]) -> 'TagSet':
        explicit: List[str] = []
        filters: List[TagFilter] = []
        for item in items or []:
            item = item.strip()
            if not item:
                continue
            if item.startswith(REGEX_PREFIX):
                filters.append(TagFilter.parse(item))
            elif item not in explicit:
                explicit.append(item)
        return cls(explicit=tuple(explicit), filters=tuple(filters))

    @classmethod
    def all_tags(cls) -> 'TagSet':
        return cls()

    @property
    def needs_expansion(self) -> bool:
        """True if resolving this set requires listing the source."""
        return not self.explicit

    def expand(self, lister: Callable[[], List[str]]) -> List[str]:
        """
        Resolve to the ordered list of tags to sync.

        ``lister`` is only called when there are no explicit tags. Errors
        raised by it propagate unchanged.
        """
        if not self.needs_expansion:
            return list(self.explicit)

        tags: List[str] = []
        for tag in lister():
            if tag in tags:
                continue
            if all(f.matches(tag) for f in self.filters):
                tags.append(tag)
        return tags


@dataclass(frozen=True)
class SyncOptions:
    """One sync request, fixed for the duration of a sync call."""
    source_ref: str
    target_ref: str
    tags: TagSet = field(default_factory=TagSet)
    platform: str = ""
    source_skip_tls_verify: bool = False
    target_skip_tls_verify: bool = False
    source_auth: str = ""
    target_auth: str = ""
    verbose: bool = False


class TagStatus(Enum):
    """Outcome of syncing one tag."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class TagOutcome:
    """What happened to a single tag during a sync."""
    tag: str
    source: str
    target: str
    status: TagStatus
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'tag': self.tag,
            'source': self.source,
            'target': self.target,
            'status': self.status.value,
        }
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class SyncResult:
    """
    Per-tag outcomes of one sync call.

    ``tags`` is the expanded tag list in execution order; ``outcomes``
    holds one entry per attempted tag in the same order.
    """
    source_ref: str
    target_ref: str
    tags: List[str] = field(default_factory=list)
    outcomes: List[TagOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == TagStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == TagStatus.FAILED)

    @property
    def success(self) -> bool:
        """True if no tag failed."""
        return self.failed == 0

    @property
    def failed_tags(self) -> List[str]:
        return [o.tag for o in self.outcomes if o.status == TagStatus.FAILED]

    def add(self, outcome: TagOutcome) -> None:
        self.outcomes.append(outcome)

    def to_dict(self) -> Dict[str, Any]:
        """Summary line for JSONL output."""
        return {
            'type': 'summary',
            'source': self.source_ref,
            'target': self.target_ref,
            'total': len(self.outcomes),
            'succeeded': self.succeeded,
            'failed': self.failed,
            'failed_tags': self.failed_tags,
        }
