"""
Domain layer for regrelay.

Contains pure domain objects with no I/O or side effects:
- SyncOptions: One sync request (refs, tags, platform, TLS, credentials)
- TagSet: Explicit tags or "all tags", with optional regex filters
- SyncResult / TagOutcome: What happened to each tag
- Reference and platform helpers
"""

from .sync import (
    TransferMode,
    TagFilter,
    TagSet,
    SyncOptions,
    TagStatus,
    TagOutcome,
    SyncResult,
)
from .platform import Platform, PLATFORM_ALL, validate_platform
from .reference import split_ref, join_ref, join_refs_and_tag, without_port

__all__ = [
    'TransferMode',
    'TagFilter',
    'TagSet',
    'SyncOptions',
    'TagStatus',
    'TagOutcome',
    'SyncResult',
    'Platform',
    'PLATFORM_ALL',
    'validate_platform',
    'split_ref',
    'join_ref',
    'join_refs_and_tag',
    'without_port',
]
