"""
Skopeo relay for regrelay.

Syncs image tags from a source to a target registry by running one
``skopeo copy`` (or ``skopeo sync``) per tag. A failing tag is logged and
recorded, and the remaining tags are still attempted.
"""

import io
import logging
import os
import sys
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from ..domain.platform import PLATFORM_ALL, validate_platform
from ..domain.reference import join_refs_and_tag, split_ref, without_port
from ..domain.sync import (
    SyncOptions,
    SyncResult,
    TagOutcome,
    TagStatus,
    TransferMode,
)
from ..exit_codes import PartialFailureError, TagExpansionError, ToolUnavailableError
from ..infra.auth import decode_json_auth
from ..infra.registry_client import list_all_tags
from ..infra.skopeo_client import SkopeoError, add_platform_overrides, run_skopeo
from .relay import Relay

logger = logging.getLogger(__name__)

RELAY_ID = "skopeo"

DEFAULT_BINARY = "skopeo"
DEFAULT_CERTS_DIR = "/etc/skopeo/certs.d"
DEFAULT_MODE = TransferMode.COPY.value

TRANSPORT = "docker://"

Runner = Callable[..., None]
TagLister = Callable[[str, str, Optional[str], bool], List[str]]


@dataclass(frozen=True)
class RelayConfig:
    """
    Settings of one skopeo relay.

    Empty fields fall back to their defaults. ``mode`` is kept verbatim
    otherwise; values other than "sync" behave like "copy".
    """
    binary: str = DEFAULT_BINARY
    certs_dir: str = DEFAULT_CERTS_DIR
    mode: str = DEFAULT_MODE

    def __post_init__(self):
        if not self.binary:
            object.__setattr__(self, 'binary', DEFAULT_BINARY)
        if not self.certs_dir:
            object.__setattr__(self, 'certs_dir', DEFAULT_CERTS_DIR)
        if not self.mode:
            object.__setattr__(self, 'mode', DEFAULT_MODE)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RelayConfig':
        """Build from a ``relay`` config section (keys may use - or _)."""
        data = data or {}

        def pick(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if value:
                    return str(value)
            return ""

        return cls(
            binary=pick('binary'),
            certs_dir=pick('certs_dir', 'certs-dir'),
            mode=pick('mode'),
        )

    @property
    def transfer_mode(self) -> TransferMode:
        return TransferMode.parse(self.mode)


def certs_dir_for_registry(certs_dir: str, registry: str) -> str:
    """Per-registry certificate directory: ``<certs_dir>/<host without port>``."""
    return os.path.join(certs_dir, without_port(registry))


class SkopeoRelay(Relay):
    """
    Relay that drives the skopeo binary.

    Example:
        relay = SkopeoRelay(RelayConfig(mode="copy"))
        relay.prepare()
        options = SyncOptions(
            source_ref="reg.example.com/ns/img",
            target_ref="mirror.example.com/ns/img",
            tags=TagSet.from_list(["v1", "v2"]),
        )
        result = relay.sync(options)
        print(f"Synced {result.succeeded} tags")
    """

    relay_id = RELAY_ID

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        out: Optional[TextIO] = None,
        runner: Optional[Runner] = None,
        tag_lister: Optional[TagLister] = None,
    ):
        """
        Initialize SkopeoRelay.

        Args:
            config: Relay settings (defaults if None)
            out: Sink for skopeo's output in verbose runs (sys.stdout if None)
            runner: Replacement for run_skopeo, called as
                ``runner(out, err, verbose, *args)``
            tag_lister: Replacement for list_all_tags
        """
        self.config = config or RelayConfig()
        self.out = out if out is not None else sys.stdout
        self.runner = runner or partial(run_skopeo, binary=self.config.binary)
        self.tag_lister = tag_lister or list_all_tags
        self.last_result: Optional[SyncResult] = None

    def prepare(self) -> str:
        """
        Verify that skopeo can be executed.

        Returns:
            The version banner printed by skopeo

        Raises:
            ToolUnavailableError: if skopeo cannot be run
        """
        buf = io.StringIO()
        try:
            self.runner(buf, None, True, "--version")
        except SkopeoError as e:
            raise ToolUnavailableError(f"cannot execute skopeo: {e}") from e

        banner = buf.getvalue().strip()
        logger.info(banner)
        logger.info(f"relay ready (relay: {RELAY_ID})")
        return banner

    def dispose(self) -> None:
        pass

    def _base_command(
        self,
        options: SyncOptions,
        src_creds: str,
        dest_creds: str,
    ) -> Tuple[List[str], Optional[str]]:
        """
        Assemble the arguments shared by every tag of a request.

        Returns:
            Tuple of (arguments, source cert dir or None)
        """
        cmd = ["--insecure-policy", self.config.transfer_mode.value]

        if options.source_skip_tls_verify:
            cmd.append("--src-tls-verify=false")
        if options.target_skip_tls_verify:
            cmd.append("--dest-tls-verify=false")

        src_cert_dir = None
        registry, _, _ = split_ref(options.source_ref)
        if registry:
            src_cert_dir = certs_dir_for_registry(self.config.certs_dir, registry)
            cmd.append(f"--src-cert-dir={src_cert_dir}")
        registry, _, _ = split_ref(options.target_ref)
        if registry:
            dest_cert_dir = certs_dir_for_registry(self.config.certs_dir, registry)
            cmd.append(f"--dest-cert-dir={dest_cert_dir}")

        if src_creds:
            cmd.append(f"--src-creds={src_creds}")
        if dest_creds:
            cmd.append(f"--dest-creds={dest_creds}")

        return cmd, src_cert_dir

    def build_invocation(self, base: List[str], source: str, target: str, platform: str) -> List[str]:
        """Arguments for syncing one fully qualified source to target."""
        args = base + [f"{TRANSPORT}{source}", f"{TRANSPORT}{target}"]
        if platform == PLATFORM_ALL:
            args.append("--all")
        elif platform:
            args = add_platform_overrides(args, platform)
        return args

    def sync(self, options: SyncOptions) -> SyncResult:
        """
        Sync every tag selected by ``options``, one skopeo run per tag.

        Returns:
            SyncResult with one outcome per tag, all successful

        Raises:
            InvalidPlatformError: platform is not empty, 'all' or os/arch[/variant]
            TagExpansionError: the source tag list could not be fetched
            PartialFailureError: at least one tag failed; carries the result
        """
        validate_platform(options.platform)

        src_creds = decode_json_auth(options.source_auth)
        dest_creds = decode_json_auth(options.target_auth)
        base, src_cert_dir = self._base_command(options, src_creds, dest_creds)

        try:
            tags = options.tags.expand(
                lambda: self.tag_lister(
                    options.source_ref, src_creds, src_cert_dir, options.source_skip_tls_verify
                )
            )
        except Exception as e:
            raise TagExpansionError(f"error expanding tags: {e}") from e

        result = SyncResult(
            source_ref=options.source_ref,
            target_ref=options.target_ref,
            tags=list(tags),
        )
        self.last_result = result

        for tag in tags:
            logger.info(f"Syncing tag {tag} (platform: {options.platform or 'default'})")
            source, target = join_refs_and_tag(options.source_ref, options.target_ref, tag)
            args = self.build_invocation(base, source, target, options.platform)

            try:
                self.runner(self.out, self.out, options.verbose, *args)
            except SkopeoError as e:
                logger.error(f"Failed to sync tag {tag}: {e}")
                result.add(TagOutcome(tag, source, target, TagStatus.FAILED, error=str(e)))
                continue

            result.add(TagOutcome(tag, source, target, TagStatus.SUCCESS))

        if not result.success:
            raise PartialFailureError(
                f"errors during sync: {result.failed} of {len(tags)} tags failed",
                result=result,
                succeeded=result.succeeded,
                failed=result.failed,
            )

        return result
