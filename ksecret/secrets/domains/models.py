"""Domain models for secret management and sync."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from .errors import PartialSyncFailure


@dataclass(frozen=True)
class SecretKey:
    """Logical secret identity: an environment and a name."""
    environment: str
    name: str

    def __post_init__(self):
        if not self.environment or not self.name:
            raise ValueError("Secret environment and name must both be non-empty")
        if "/" in self.environment or "/" in self.name:
            raise ValueError(f"Secret environment and name may not contain '/': {self.environment}/{self.name}")
        # Environment is the first segment of a remote id, so it cannot hold the separator
        if "-" in self.environment:
            raise ValueError(f"Environment name may not contain '-': {self.environment}")

    def __str__(self) -> str:
        return f"{self.environment}/{self.name}"


@dataclass
class CacheEntry:
    """Cached secret value with the epoch time it was fetched."""
    value: str
    fetched_at: float


class CacheLookup(NamedTuple):
    """Result of a cache lookup."""
    value: Optional[str]
    found: bool
    fresh: bool


@dataclass
class SecretListing:
    """Secret names for one environment plus the ids that could not be parsed."""
    environment: str
    names: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    created: Dict[str, Optional[datetime]] = field(default_factory=dict)  # keyed by name


@dataclass
class SyncPlan:
    """Delta between the source secrets and the target namespace for one environment."""
    environment: str
    namespace: str
    to_delete: List[str] = field(default_factory=list)
    to_create: Dict[str, str] = field(default_factory=dict)
    unchanged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_delete and not self.to_create


@dataclass
class SyncOperation:
    """Outcome of a single delete or create against the target."""
    action: str  # "delete" or "create"
    remote_id: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class SyncResult:
    """Itemized outcome of applying a sync plan."""
    plan: SyncPlan
    dry_run: bool
    operations: List[SyncOperation] = field(default_factory=list)

    @property
    def succeeded(self) -> List[SyncOperation]:
        return [op for op in self.operations if op.succeeded]

    @property
    def failed(self) -> List[SyncOperation]:
        return [op for op in self.operations if not op.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failed

    def describe(self) -> List[str]:
        """
        Human-readable lines for the plan (dry run) or the applied operations.

        Returns:
            One line per intended or attempted operation
        """
        if self.dry_run:
            lines = [f"delete {remote_id}" for remote_id in self.plan.to_delete]
            lines += [f"create {remote_id}" for remote_id in self.plan.to_create]
            return lines

        lines = []
        for op in self.operations:
            if op.succeeded:
                lines.append(f"{op.action} {op.remote_id}: done")
            else:
                lines.append(f"{op.action} {op.remote_id}: FAILED ({op.error})")
        return lines

    def raise_for_failures(self) -> None:
        """Raise PartialSyncFailure if any operation failed."""
        if self.failed:
            raise PartialSyncFailure(self)
