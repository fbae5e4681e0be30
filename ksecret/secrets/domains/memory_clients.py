"""In-memory secret source and target, used for tests and local dry runs."""
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from .errors import NotFoundError, RemoteUnavailableError


class InMemorySecretSource:
    """Dict-backed SecretSource.

    Ids listed in ``fail_on`` raise RemoteUnavailableError; ``"*"`` fails listing.
    """

    def __init__(self, secrets: Optional[Dict[str, str]] = None):
        self.secrets: Dict[str, str] = dict(secrets or {})
        self.created: Dict[str, datetime] = {}
        self.fail_on: Set[str] = set()
        self.calls: List[Tuple[str, ...]] = []

    def _check(self, remote_id: str) -> None:
        if remote_id in self.fail_on:
            raise RemoteUnavailableError(f"Secret source unavailable for {remote_id}")

    def list_secret_ids(self) -> List[str]:
        self.calls.append(("list",))
        if "*" in self.fail_on:
            raise RemoteUnavailableError("Secret source unavailable")
        return sorted(self.secrets)

    def list_secret_metadata(self) -> Dict[str, Optional[datetime]]:
        return {remote_id: self.created.get(remote_id) for remote_id in self.list_secret_ids()}

    def get_value(self, remote_id: str) -> str:
        self.calls.append(("get", remote_id))
        self._check(remote_id)
        if remote_id not in self.secrets:
            raise NotFoundError(f"Secret not found: {remote_id}")
        return self.secrets[remote_id]

    def create_or_update(self, remote_id: str, value: str) -> None:
        self.calls.append(("create_or_update", remote_id))
        self._check(remote_id)
        self.secrets[remote_id] = value

    def delete(self, remote_id: str) -> None:
        self.calls.append(("delete", remote_id))
        self._check(remote_id)
        self.secrets.pop(remote_id, None)


class InMemoryEnvironmentTarget:
    """Dict-backed EnvironmentTarget keyed by namespace.

    Every call is recorded in ``calls`` in order. ``(action, remote_id)`` pairs
    in ``fail_on`` raise RemoteUnavailableError.
    """

    def __init__(self, namespaces: Optional[Dict[str, Dict[str, str]]] = None):
        self.namespaces: Dict[str, Dict[str, str]] = {
            ns: dict(secrets) for ns, secrets in (namespaces or {}).items()
        }
        self.fail_on: Set[Tuple[str, str]] = set()
        self.calls: List[Tuple[str, ...]] = []

    def _check(self, action: str, remote_id: str) -> None:
        if (action, remote_id) in self.fail_on:
            raise RemoteUnavailableError(f"Target rejected {action} of {remote_id}")

    @property
    def mutations(self) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] in ("create_or_update", "delete")]

    def namespace_exists(self, namespace: str) -> bool:
        return namespace in self.namespaces

    def list_secret_ids(self, namespace: str) -> List[str]:
        self.calls.append(("list", namespace))
        return sorted(self.namespaces.get(namespace, {}))

    def get_value(self, namespace: str, remote_id: str) -> Optional[str]:
        self.calls.append(("get", namespace, remote_id))
        return self.namespaces.get(namespace, {}).get(remote_id)

    def create_or_update(self, namespace: str, remote_id: str, value: str) -> None:
        self.calls.append(("create_or_update", namespace, remote_id))
        self._check("create", remote_id)
        self.namespaces.setdefault(namespace, {})[remote_id] = value

    def delete(self, namespace: str, remote_id: str) -> None:
        self.calls.append(("delete", namespace, remote_id))
        self._check("delete", remote_id)
        self.namespaces.get(namespace, {}).pop(remote_id, None)
