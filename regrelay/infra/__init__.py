"""
Infrastructure layer for regrelay.

Contains abstractions for external systems:
- run_skopeo: skopeo subprocess execution
- RegistryClient: Registry v2 tag listing
- decode_json_auth: Credential blob decoding

These provide clean interfaces that can be mocked for testing.
"""

from .auth import decode_json_auth, encode_json_auth
from .registry_client import RegistryClient, RegistryError, list_all_tags
from .skopeo_client import SkopeoError, add_platform_overrides, run_skopeo

__all__ = [
    'decode_json_auth',
    'encode_json_auth',
    'RegistryClient',
    'RegistryError',
    'list_all_tags',
    'SkopeoError',
    'add_platform_overrides',
    'run_skopeo',
]
