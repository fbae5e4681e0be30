"""Error kinds raised by the secret source, target and sync paths."""


class KsecretError(Exception):
    """Base class for ksecret errors."""
    pass


class NotFoundError(KsecretError):
    """Secret is absent at the source or the target."""
    pass


class RemoteUnavailableError(KsecretError):
    """Network, authentication or permission failure talking to a remote system."""
    pass


class CacheCorruptError(KsecretError):
    """On-disk cache document could not be read or parsed."""
    pass


class AmbiguousIdentityError(KsecretError):
    """Remote secret id carries the prefix but cannot be split into environment and name."""

    def __init__(self, remote_id: str):
        super().__init__(f"Cannot parse environment and name from secret id '{remote_id}'")
        self.remote_id = remote_id


class PartialSyncFailure(KsecretError):
    """One or more delete/create operations failed while applying a sync plan."""

    def __init__(self, result):
        failed = ", ".join(f"{op.action} {op.remote_id}" for op in result.failed)
        super().__init__(f"{len(result.failed)} sync operation(s) failed: {failed}")
        self.result = result
