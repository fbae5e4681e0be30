"""Mapping between logical (environment, name) pairs and remote secret ids.

Remote ids have the form ``{prefix}-{environment}-{name}``. Environments may not
contain the ``-`` separator, so the environment is always the first segment
after the prefix and the name is everything after it.
"""
import logging
import re
from typing import Iterable, List, Tuple

from .errors import AmbiguousIdentityError
from .models import SecretKey

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "k8s"
SEPARATOR = "-"
KUBERNETES_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
KUBERNETES_NAME_MAX_LENGTH = 253


def is_kubernetes_name(remote_id: str) -> bool:
    """Whether a remote id can be used as a Kubernetes Secret name (lowercase RFC 1123)."""
    return len(remote_id) <= KUBERNETES_NAME_MAX_LENGTH and bool(KUBERNETES_NAME_PATTERN.fullmatch(remote_id))


class NamingScheme:
    """Builds and parses remote secret ids for a given prefix."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        if not prefix:
            raise ValueError("Secret prefix must be non-empty")
        self.prefix = prefix

    def to_remote_id(self, environment: str, name: str) -> str:
        """
        Build the remote id for an environment/name pair.

        Raises:
            ValueError: If either part is empty or the environment contains the separator
        """
        key = SecretKey(environment, name)
        return f"{self.prefix}{SEPARATOR}{key.environment}{SEPARATOR}{key.name}"

    def remote_id(self, key: SecretKey) -> str:
        return f"{self.prefix}{SEPARATOR}{key.environment}{SEPARATOR}{key.name}"

    def has_prefix(self, remote_id: str) -> bool:
        return remote_id.startswith(self.prefix + SEPARATOR)

    def from_remote_id(self, remote_id: str) -> Tuple[str, str, bool]:
        """
        Parse environment and name back out of a remote id.

        Args:
            remote_id: Remote secret id

        Returns:
            (environment, name, ok); ok is False when the id lacks the prefix or
            does not hold both a non-empty environment and name
        """
        if not self.has_prefix(remote_id):
            return "", "", False

        remainder = remote_id[len(self.prefix) + len(SEPARATOR):]
        environment, sep, name = remainder.partition(SEPARATOR)
        if not sep or not environment or not name or "/" in remainder:
            return "", "", False
        return environment, name, True

    def parse(self, remote_id: str) -> SecretKey:
        """
        Parse a remote id into a SecretKey.

        Raises:
            AmbiguousIdentityError: If the id cannot be parsed
        """
        environment, name, ok = self.from_remote_id(remote_id)
        if not ok:
            raise AmbiguousIdentityError(remote_id)
        return SecretKey(environment, name)

    def belongs_to(self, remote_id: str, environment: str) -> bool:
        env, _, ok = self.from_remote_id(remote_id)
        return ok and env == environment

    def scope(self, remote_ids: Iterable[str], environment: str) -> Tuple[List[str], List[str]]:
        """
        Filter remote ids down to one environment.

        Ids without the prefix are ignored silently. Ids with the prefix that
        cannot be parsed are returned separately so callers can report them.

        Returns:
            (ids belonging to the environment, unparseable prefixed ids)
        """
        matching: List[str] = []
        skipped: List[str] = []
        for remote_id in remote_ids:
            if not self.has_prefix(remote_id):
                continue
            env, _, ok = self.from_remote_id(remote_id)
            if not ok:
                logger.warning(f"Skipping secret with unparseable id: {remote_id}")
                skipped.append(remote_id)
            elif env == environment:
                matching.append(remote_id)
        return matching, skipped
