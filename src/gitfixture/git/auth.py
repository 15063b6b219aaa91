"""Transport authentication for fixture repositories.

resolve() turns a transport kind and credential material into an AuthHandle.
Everything downstream (clone, fetch, push, the bootstrap command) only talks to
the AuthHandle protocol and never inspects the transport kind itself.

Exports:
    TransportKind: The supported git transports.
    Credentials: Credential material as loaded from configuration.
    AuthHandle: Protocol implemented by every handle.
    SSHAuth, TokenAuth, LocalAuth: The concrete handles.
    resolve: Build the handle for a transport kind.
"""

import base64
import binascii
import logging
import os
import re
import shlex
import shutil
import stat
import tempfile
from enum import Enum
from typing import Protocol

from pydantic import BaseModel

from gitfixture.git.errors import AuthConfigError

logger = logging.getLogger("gitfixture.git.auth")

_KEY_BLOCK = re.compile(
    r"-----BEGIN ([A-Z0-9 ]*)PRIVATE KEY-----\s*\n(?P<body>.+?)\n\s*-----END \1PRIVATE KEY-----",
    re.DOTALL,
)
_KNOWN_HOST_MARKERS = ("@cert-authority", "@revoked")


class TransportKind(str, Enum):
    """Git transports a fixture repository can be reached over."""

    SSH = "ssh"
    HTTPS = "https"
    LOCAL = "local"


class Credentials(BaseModel):
    """Credential material for a remote.

    Attributes:
        username: User for SSH and basic auth. Defaults to "git".
        password: Personal access token for HTTPS.
        private_key: Armored private key text for SSH.
        passphrase: Optional passphrase for the private key.
        known_hosts: known_hosts file content used to verify the SSH host.
    """

    username: str = "git"
    password: str = ""
    private_key: str = ""
    passphrase: str = ""
    known_hosts: str = ""


class AuthHandle(Protocol):
    """Something that can authenticate a clone, fetch or push."""

    def connection_env(self) -> dict[str, str]:
        """Return environment variables that make git authenticate."""
        ...

    def bootstrap_args(self) -> list[str]:
        """Return the transport-specific arguments for the bootstrap CLI."""
        ...

    def cleanup(self) -> None:
        """Remove any credential material written to disk."""
        ...


def parse_known_hosts(known_hosts: str) -> list[tuple[str, str, bytes]]:
    """Parse known_hosts content into (hosts, key_type, key) entries.

    Blank lines and comments are skipped. A leading @cert-authority or
    @revoked marker is accepted.

    Args:
        known_hosts (str): Content in OpenSSH known_hosts format.

    Returns:
        list[tuple[str, str, bytes]]: One tuple per host entry.

    Raises:
        AuthConfigError: If a line cannot be parsed or no entries are present.
    """
    entries = []
    for lineno, line in enumerate(known_hosts.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if fields[0] in _KNOWN_HOST_MARKERS:
            fields = fields[1:]
        if len(fields) < 3:
            raise AuthConfigError(f"known_hosts line {lineno}: expected '<hosts> <key-type> <key>'", step="resolve auth")
        hosts, key_type, encoded = fields[0], fields[1], fields[2]
        try:
            key = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise AuthConfigError(f"known_hosts line {lineno}: key is not valid base64", step="resolve auth")
        if not key:
            raise AuthConfigError(f"known_hosts line {lineno}: empty key", step="resolve auth")
        entries.append((hosts, key_type, key))
    if not entries:
        raise AuthConfigError("known_hosts contains no host entries", step="resolve auth")
    return entries


def validate_private_key(private_key: str) -> None:
    """Check that private key text is a well-formed armored block.

    Raises:
        AuthConfigError: If there is no BEGIN/END block or its body is not base64.
    """
    match = _KEY_BLOCK.search(private_key.strip())
    if match is None:
        raise AuthConfigError("private key is not an armored PRIVATE KEY block", step="resolve auth")
    body = "".join(
        line.strip() for line in match.group("body").splitlines() if line.strip() and ":" not in line
    )
    try:
        base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        raise AuthConfigError("private key body is not valid base64", step="resolve auth")


class SSHAuth:
    """Public-key authentication over SSH with strict host verification.

    Key and known_hosts material is written to a private temporary directory
    the first time it is needed and removed by cleanup().

    Attributes:
        username (str): SSH user, normally "git".
        known_hosts (list[tuple[str, str, bytes]]): Parsed host entries.
    """

    def __init__(self, username: str, private_key: str, known_hosts: str, passphrase: str = "") -> None:
        validate_private_key(private_key)
        self.known_hosts = parse_known_hosts(known_hosts)
        self.username = username
        self._private_key = private_key.strip() + "\n"
        self._known_hosts_text = known_hosts.strip() + "\n"
        self._passphrase = passphrase
        self._dir: str | None = None

    def __repr__(self) -> str:
        return f"SSHAuth(username={self.username!r}, hosts={len(self.known_hosts)})"

    def _write_private(self, name: str, content: str, mode: int = stat.S_IRUSR | stat.S_IWUSR) -> str:
        path = os.path.join(self._dir, name)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        return path

    def _materialize(self) -> str:
        if self._dir is None:
            self._dir = tempfile.mkdtemp(prefix="gitfixture-ssh-")
            self._write_private("identity", self._private_key)
            self._write_private("known_hosts", self._known_hosts_text)
            if self._passphrase:
                self._write_private("passphrase", self._passphrase)
                self._write_private(
                    "askpass.sh",
                    f"#!/bin/sh\ncat {shlex.quote(os.path.join(self._dir, 'passphrase'))}\n",
                    stat.S_IRWXU,
                )
            logger.debug(f"SSH credential material written to {self._dir}")
        return self._dir

    @property
    def key_path(self) -> str:
        """Path of the private key file, written on first access."""
        return os.path.join(self._materialize(), "identity")

    @property
    def known_hosts_path(self) -> str:
        """Path of the known_hosts file, written on first access."""
        return os.path.join(self._materialize(), "known_hosts")

    def connection_env(self) -> dict[str, str]:
        ssh_command = " ".join(
            [
                "ssh",
                "-i", shlex.quote(self.key_path),
                "-o", "IdentitiesOnly=yes",
                "-o", "StrictHostKeyChecking=yes",
                "-o", f"UserKnownHostsFile={shlex.quote(self.known_hosts_path)}",
                "-o", "GlobalKnownHostsFile=/dev/null",
            ]
        )
        env = {"GIT_SSH_COMMAND": ssh_command}
        if self._passphrase:
            env["SSH_ASKPASS"] = os.path.join(self._materialize(), "askpass.sh")
            env["SSH_ASKPASS_REQUIRE"] = "force"
            env.setdefault("DISPLAY", os.environ.get("DISPLAY", ":0"))
        else:
            env["GIT_SSH_COMMAND"] += " -o BatchMode=yes"
        return env

    def bootstrap_args(self) -> list[str]:
        return [f"--private-key-file={self.key_path}"]

    def cleanup(self) -> None:
        """Remove the key material written to disk, if any."""
        if self._dir is not None:
            shutil.rmtree(self._dir, ignore_errors=True)
            self._dir = None


class TokenAuth:
    """Static username/password (personal access token) over HTTPS.

    The credentials are sent as a basic Authorization header injected through
    git's GIT_CONFIG_* environment, so they never land in a URL or on disk.
    """

    def __init__(self, username: str, password: str) -> None:
        if not password:
            raise AuthConfigError("token transport requires a password", step="resolve auth")
        self.username = username or "git"
        self._password = password

    def __repr__(self) -> str:
        return f"TokenAuth(username={self.username!r})"

    def connection_env(self) -> dict[str, str]:
        token = base64.b64encode(f"{self.username}:{self._password}".encode()).decode()
        return {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
        }

    def bootstrap_args(self) -> list[str]:
        return ["--token-auth", f"--password={self._password}"]

    def cleanup(self) -> None:
        pass


class LocalAuth:
    """No-op authentication for local path and file:// remotes."""

    def __repr__(self) -> str:
        return "LocalAuth()"

    def connection_env(self) -> dict[str, str]:
        return {}

    def bootstrap_args(self) -> list[str]:
        return []

    def cleanup(self) -> None:
        pass


def resolve(transport_kind: TransportKind | str, credentials: Credentials | None = None) -> AuthHandle:
    """Build the authentication handle for a transport.

    This is the only place that branches on transport kind.

    Args:
        transport_kind (TransportKind | str): "ssh", "https" or "local".
        credentials (Credentials | None): Credential material. Defaults to empty.

    Returns:
        AuthHandle: A handle usable for clone, fetch and push.

    Raises:
        AuthConfigError: If the kind is unknown or the credentials are invalid for it.
    """
    credentials = credentials or Credentials()
    try:
        kind = TransportKind(transport_kind)
    except ValueError:
        raise AuthConfigError(f"unknown transport kind: {transport_kind!r}", step="resolve auth")

    if kind is TransportKind.SSH:
        auth = SSHAuth(
            credentials.username,
            credentials.private_key,
            credentials.known_hosts,
            passphrase=credentials.passphrase,
        )
    elif kind is TransportKind.HTTPS:
        auth = TokenAuth(credentials.username, credentials.password)
    else:
        auth = LocalAuth()
    logger.debug(f"Resolved {kind.value} transport: {auth!r}")
    return auth
