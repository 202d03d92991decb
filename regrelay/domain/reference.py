"""
Image reference helpers.

A reference looks like ``[registry/]repo[:tag|@digest]``. The first path
component counts as a registry host only when it contains a dot or a
colon, or is ``localhost``; otherwise the reference points at Docker Hub
and the registry part is empty.
"""

import re
from typing import Tuple

_PORT_SUFFIX = re.compile(r':\d+$')
_DIGEST = re.compile(r'^[a-z0-9]+(?:[+._-][a-z0-9]+)*:[0-9a-fA-F]{32,}$')


def _is_registry_host(component: str) -> bool:
    return '.' in component or ':' in component or component == 'localhost'


def split_ref(ref: str) -> Tuple[str, str, str]:
    """
    Split a reference into registry host, repository path and tag.

    Args:
        ref: Image reference, e.g. ``reg.example.com:5000/ns/img:v1``

    Returns:
        Tuple of (registry, repo, tag); registry and tag may be empty.
        A digest reference returns the digest as the tag.
    """
    ref = ref.strip()
    if not ref:
        return '', '', ''

    tag = ''
    if '@' in ref:
        ref, tag = ref.split('@', 1)
    else:
        slash = ref.rfind('/')
        colon = ref.rfind(':')
        if colon > slash:
            ref, tag = ref[:colon], ref[colon + 1:]

    registry = ''
    repo = ref
    if '/' in ref:
        first, rest = ref.split('/', 1)
        if _is_registry_host(first):
            registry, repo = first, rest

    return registry, repo, tag


def without_port(host: str) -> str:
    """Strip a trailing ``:<port>`` from a registry host."""
    return _PORT_SUFFIX.sub('', host)


def is_digest(tag: str) -> bool:
    """True if ``tag`` is a content digest such as ``sha256:<hex>``."""
    return bool(_DIGEST.match(tag))


def join_ref(ref: str, tag: str) -> str:
    """
    Attach a tag (or digest) to a reference without one.

    Examples:
        join_ref("reg.example.com/ns/img", "v1") -> "reg.example.com/ns/img:v1"
        join_ref("img", "sha256:ab...") -> "img@sha256:ab..."
    """
    if not tag:
        return ref
    separator = '@' if is_digest(tag) else ':'
    return f"{ref}{separator}{tag}"


def join_refs_and_tag(source_ref: str, target_ref: str, tag: str) -> Tuple[str, str]:
    """Join the same tag onto both a source and a target reference."""
    return join_ref(source_ref, tag), join_ref(target_ref, tag)
