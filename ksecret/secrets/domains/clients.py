"""Interfaces for the secret source and the deployment target."""
from datetime import datetime
from typing import Dict, List, Optional, Protocol


class SecretSource(Protocol):
    """Source of truth for secret values (Secret Manager)."""

    def list_secret_ids(self) -> List[str]:
        """Return every secret id in the store."""
        ...

    def list_secret_metadata(self) -> Dict[str, Optional[datetime]]:
        """Return every secret id in the store mapped to its creation time, if known."""
        ...

    def get_value(self, remote_id: str) -> str:
        """Return the latest value. Raises NotFoundError if the secret is absent."""
        ...

    def create_or_update(self, remote_id: str, value: str) -> None:
        ...

    def delete(self, remote_id: str) -> None:
        """Delete a secret. Deleting an absent secret is not an error."""
        ...


class EnvironmentTarget(Protocol):
    """Secret storage of the deployment environment (a Kubernetes namespace)."""

    def list_secret_ids(self, namespace: str) -> List[str]:
        """Return the ids of the secrets managed by ksecret in the namespace."""
        ...

    def get_value(self, namespace: str, remote_id: str) -> Optional[str]:
        """Return the stored value, or None if the secret does not exist."""
        ...

    def create_or_update(self, namespace: str, remote_id: str, value: str) -> None:
        ...

    def delete(self, namespace: str, remote_id: str) -> None:
        ...
