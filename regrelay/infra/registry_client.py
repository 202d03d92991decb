"""
Registry API client infrastructure for regrelay.

Lists the tags of a repository through the Docker Registry HTTP API v2:
- Follows ``Link`` header pagination
- Answers ``401`` bearer challenges with a token request
- Picks up per-registry TLS material from a certs.d style directory
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

import requests

from ..domain.reference import split_ref

logger = logging.getLogger(__name__)

DOCKER_HUB_REGISTRY = "registry-1.docker.io"
DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io")

# Maximum number of pages followed for one listing
MAX_PAGES = 1000

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


class RegistryError(Exception):
    """Tag listing against a registry failed."""


def resolve_repository(ref: str) -> Tuple[str, str]:
    """
    Map a reference to the (host, repository) pair used for API calls.

    Docker Hub references go to registry-1.docker.io, with ``library/``
    added for official single-name images.
    """
    registry, repo, _ = split_ref(ref)
    if not repo:
        raise RegistryError(f"invalid reference '{ref}'")
    if not registry or registry in DOCKER_HUB_ALIASES:
        registry = DOCKER_HUB_REGISTRY
        if '/' not in repo:
            repo = f"library/{repo}"
    return registry, repo


def parse_challenge(header: str) -> Tuple[str, Dict[str, str]]:
    """Split a WWW-Authenticate header into scheme and parameters."""
    scheme, _, rest = header.strip().partition(' ')
    return scheme.lower(), dict(_CHALLENGE_PARAM.findall(rest))


def tls_settings(
    cert_dir: Optional[str],
    skip_tls_verify: bool,
) -> Tuple[Union[bool, str], Optional[Tuple[str, str]]]:
    """
    Derive requests' ``verify`` and ``cert`` arguments.

    A certs.d directory may hold ``ca.crt`` for the server CA and
    ``client.cert`` / ``client.key`` for mutual TLS.
    """
    verify: Union[bool, str] = not skip_tls_verify
    cert = None
    if cert_dir:
        base = Path(cert_dir)
        ca_file = base / 'ca.crt'
        if verify and ca_file.is_file():
            verify = str(ca_file)
        client_cert = base / 'client.cert'
        client_key = base / 'client.key'
        if client_cert.is_file() and client_key.is_file():
            cert = (str(client_cert), str(client_key))
    return verify, cert


class RegistryClient:
    """
    Client for the tag listing endpoint of a v2 registry.

    Example:
        client = RegistryClient(creds="alice:secret")
        tags = client.list_tags("reg.example.com/ns/img")
    """

    def __init__(
        self,
        creds: str = "",
        cert_dir: Optional[str] = None,
        skip_tls_verify: bool = False,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize RegistryClient.

        Args:
            creds: ``user:password`` or empty for anonymous access
            cert_dir: certs.d directory for this registry
            skip_tls_verify: Disable TLS verification
            timeout: HTTP request timeout in seconds
            session: Optional requests session (for testing)
        """
        self.auth: Optional[Tuple[str, str]] = None
        if creds:
            user, _, password = creds.partition(':')
            self.auth = (user, password)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        self.skip_tls_verify = skip_tls_verify
        self.verify, self.cert = tls_settings(cert_dir, skip_tls_verify)
        self._token: Optional[str] = None

    def _get(self, url: str, **kwargs) -> requests.Response:
        return self.session.get(
            url,
            timeout=self.timeout,
            verify=self.verify,
            cert=self.cert,
            **kwargs,
        )

    def _fetch_token(self, challenge: str, host: str) -> str:
        scheme, params = parse_challenge(challenge)
        if scheme != 'bearer' or 'realm' not in params:
            raise RegistryError(f"unsupported auth challenge: {challenge}")

        realm = params['realm']
        query = {k: v for k, v in params.items() if k in ('service', 'scope')}
        if urlparse(realm).netloc == host:
            response = self._get(realm, params=query, auth=self.auth)
        else:
            # registry TLS material is only used against the registry host
            response = self.session.get(
                realm,
                params=query,
                auth=self.auth,
                timeout=self.timeout,
                verify=not self.skip_tls_verify,
            )
        response.raise_for_status()
        data = response.json()
        token = data.get('token') or data.get('access_token')
        if not token:
            raise RegistryError(f"no token in response from {realm}")
        return token

    def _request(self, url: str, host: str) -> requests.Response:
        headers = {}
        if self._token:
            headers['Authorization'] = f"Bearer {self._token}"
            response = self._get(url, headers=headers)
        else:
            response = self._get(url, auth=self.auth)

        if response.status_code == 401 and 'WWW-Authenticate' in response.headers:
            challenge = response.headers['WWW-Authenticate']
            if challenge.lower().startswith('bearer'):
                self._token = self._fetch_token(challenge, host)
                response = self._get(url, headers={'Authorization': f"Bearer {self._token}"})

        response.raise_for_status()
        return response

    def list_tags(self, ref: str) -> List[str]:
        """
        List all tags of the repository behind ``ref``.

        Returns:
            Tags in registry order

        Raises:
            RegistryError: on any HTTP, TLS or decoding failure, or when
                the listing runs past MAX_PAGES pages
        """
        host, repo = resolve_repository(ref)
        url: Optional[str] = f"https://{host}/v2/{repo}/tags/list"
        tags: List[str] = []
        pages = 0

        try:
            while url and pages < MAX_PAGES:
                response = self._request(url, host)
                data = response.json()
                tags.extend(data.get('tags') or [])
                pages += 1

                next_link = response.links.get('next', {}).get('url')
                if next_link and next_link.startswith('/'):
                    next_link = f"https://{host}{next_link}"
                url = next_link

            if url:
                raise RegistryError(f"{host}/{repo} has more than {MAX_PAGES} pages of tags")
        except requests.RequestException as e:
            raise RegistryError(f"listing tags of {host}/{repo} failed: {e}") from e
        except ValueError as e:
            raise RegistryError(f"registry {host} returned invalid JSON: {e}") from e

        logger.debug(f"Registry {host}: {len(tags)} tags for {repo}")
        return tags


def list_all_tags(
    ref: str,
    creds: str,
    cert_dir: Optional[str],
    skip_tls_verify: bool,
    timeout: int = 30,
) -> List[str]:
    """List all tags of ``ref``; see RegistryClient.list_tags."""
    client = RegistryClient(
        creds=creds, cert_dir=cert_dir, skip_tls_verify=skip_tls_verify, timeout=timeout
    )
    return client.list_tags(ref)
