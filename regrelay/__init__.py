"""
regrelay - Mirror container image tags between registries with skopeo.

Quick Start:
    from regrelay import SkopeoRelay, RelayConfig, SyncOptions, TagSet

    relay = SkopeoRelay(RelayConfig(certs_dir="/etc/skopeo/certs.d"))
    relay.prepare()

    result = relay.sync(SyncOptions(
        source_ref="reg.example.com/ns/img",
        target_ref="mirror.example.com/ns/img",
        tags=TagSet.from_list(["v1", "v2"]),
    ))
    for outcome in result.outcomes:
        print(outcome.tag, outcome.status.value)

A tag that fails does not stop the others; when any tag failed, sync()
raises PartialFailureError with the full result attached.
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    TransferMode,
    TagSet,
    SyncOptions,
    TagStatus,
    TagOutcome,
    SyncResult,
)

# Relays
from .services import Relay, RelayConfig, SkopeoRelay, create_relay

# Errors
from .exit_codes import (
    CommandError,
    ToolUnavailableError,
    TagExpansionError,
    InvalidPlatformError,
    PartialFailureError,
)

# Configuration
from .config import load_config, save_config

__all__ = [
    "__version__",
    # Domain objects
    "TransferMode",
    "TagSet",
    "SyncOptions",
    "TagStatus",
    "TagOutcome",
    "SyncResult",
    # Relays
    "Relay",
    "RelayConfig",
    "SkopeoRelay",
    "create_relay",
    # Errors
    "CommandError",
    "ToolUnavailableError",
    "TagExpansionError",
    "InvalidPlatformError",
    "PartialFailureError",
    # Configuration
    "load_config",
    "save_config",
]
