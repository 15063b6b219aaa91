"""Environment-driven configuration for fixture runs.

Settings come from ``GITFIXTURE_*`` environment variables, after a ``.env``
file in the working directory (if any) has been loaded.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import dotenv
from pydantic import BaseModel, ValidationError, field_validator

from gitfixture.git.auth import AuthHandle, Credentials, TransportKind, resolve
from gitfixture.git.commit import Signature
from gitfixture.git.errors import GitFixtureError

logger = logging.getLogger("gitfixture.config")

ENV_PREFIX = "GITFIXTURE_"


class ConfigError(GitFixtureError):
    """Raised when configuration values are missing or invalid."""


class FixtureConfig(BaseModel):
    """Settings shared by every fixture flow.

    Attributes:
        transport: Git transport used to reach remotes.
        username: SSH user or basic-auth username.
        password: Personal access token for HTTPS.
        private_key: Armored private key text for SSH.
        passphrase: Passphrase for the private key.
        known_hosts: known_hosts content for SSH host verification.
        timeout: Seconds before a network operation is abandoned.
        workdir: Parent directory for working copies; None means the system temp dir.
        author_name: Default author/tagger name.
        author_email: Default author/tagger email.
    """

    transport: TransportKind = TransportKind.HTTPS
    username: str = "git"
    password: str = ""
    private_key: str = ""
    passphrase: str = ""
    known_hosts: str = ""
    timeout: float = 120.0
    workdir: str | None = None
    author_name: str = "git"
    author_email: str = "test@example.com"

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    def credentials(self) -> Credentials:
        return Credentials(
            username=self.username,
            password=self.password,
            private_key=self.private_key,
            passphrase=self.passphrase,
            known_hosts=self.known_hosts,
        )

    def auth(self) -> AuthHandle:
        """Resolve the authentication handle for the configured transport.

        Raises:
            AuthConfigError: If the credentials do not fit the transport.
        """
        return resolve(self.transport, self.credentials())

    def signature(self) -> Signature:
        """Build the default author/tagger signature, timestamped now."""
        return Signature(name=self.author_name, email=self.author_email)


_FIELDS = {
    "TRANSPORT": "transport",
    "USERNAME": "username",
    "PAT": "password",
    "PRIVATE_KEY": "private_key",
    "PRIVATE_KEY_PASSPHRASE": "passphrase",
    "KNOWN_HOSTS": "known_hosts",
    "TIMEOUT": "timeout",
    "WORKDIR": "workdir",
    "AUTHOR_NAME": "author_name",
    "AUTHOR_EMAIL": "author_email",
}


def load_config(environ: Mapping[str, str] | None = None, *, load_dotenv: bool = True) -> FixtureConfig:
    """Build a FixtureConfig from GITFIXTURE_* environment variables.

    ``GITFIXTURE_PRIVATE_KEY_FILE`` names a file whose content is used when
    ``GITFIXTURE_PRIVATE_KEY`` is not set.

    Args:
        environ (Mapping[str, str] | None): Variables to read. Defaults to os.environ.
        load_dotenv (bool): Load a .env file into os.environ first. Only applies
            when environ is None.

    Returns:
        FixtureConfig: The validated configuration.

    Raises:
        ConfigError: If a value is invalid or the key file cannot be read.
    """
    if environ is None:
        if load_dotenv:
            dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
        environ = os.environ

    values = {}
    for suffix, field in _FIELDS.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value:
            values[field] = value

    key_file = environ.get(f"{ENV_PREFIX}PRIVATE_KEY_FILE")
    if key_file and "private_key" not in values:
        try:
            values["private_key"] = Path(key_file).read_text()
        except OSError as e:
            raise ConfigError(f"could not read private key file {key_file}: {e}", step="load config") from e

    try:
        config = FixtureConfig(**values)
    except ValidationError as e:
        raise ConfigError(str(e), step="load config") from e
    logger.debug(f"Loaded config: transport={config.transport.value}, timeout={config.timeout}")
    return config
