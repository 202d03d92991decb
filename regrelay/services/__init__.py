"""
Service layer for regrelay.

Contains the relay backends that turn sync requests into transfers:
- Relay: Lifecycle contract (prepare, sync, dispose)
- SkopeoRelay: Relay driving the skopeo binary

Services are the primary API for commands to use.
"""

from functools import partial
from typing import Any, Dict, Optional, TextIO

from ..infra.registry_client import list_all_tags

from .relay import Relay
from .skopeo_relay import RELAY_ID, RelayConfig, SkopeoRelay, certs_dir_for_registry

RELAYS = {
    RELAY_ID: SkopeoRelay,
}


def create_relay(
    relay_id: str,
    config: Optional[Dict[str, Any]] = None,
    out: Optional[TextIO] = None,
) -> Relay:
    """
    Create a relay by id from a loaded configuration dict.

    Raises:
        ValueError: if no relay is registered under ``relay_id``
    """
    if relay_id not in RELAYS:
        raise ValueError(f"unknown relay '{relay_id}', choose from: {', '.join(RELAYS)}")
    config = config or {}
    relay_config = RelayConfig.from_dict(config.get('relay'))
    timeout = config.get('registry', {}).get('timeout_seconds', 30)
    return RELAYS[relay_id](
        relay_config,
        out=out,
        tag_lister=partial(list_all_tags, timeout=timeout),
    )


__all__ = [
    'Relay',
    'RelayConfig',
    'SkopeoRelay',
    'certs_dir_for_registry',
    'create_relay',
    'RELAYS',
]
