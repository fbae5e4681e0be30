"""Workflow for secret operations with cache-through reads and writes.

The remote secret store is always written first. The cache is only updated
after the remote call succeeds, so it never claims a value exists remotely
when it doesn't. Remote failures are never masked by a cached value.
"""
import logging

from ..domains.cache_store import CacheStore
from ..domains.clients import SecretSource
from ..domains.errors import NotFoundError
from ..domains.models import SecretKey, SecretListing
from ..domains.naming import NamingScheme

logger = logging.getLogger(__name__)


def get_secret(
    source: SecretSource,
    cache: CacheStore,
    naming: NamingScheme,
    key: SecretKey,
    bypass_cache: bool = False,
) -> str:
    """
    Fetch a secret value, serving fresh cache hits locally.

    Args:
        source: Secret store client
        cache: Loaded cache store
        naming: Naming scheme for remote ids
        key: Secret to fetch
        bypass_cache: Always fetch from the source (--no-cache)

    Returns:
        Secret value

    Raises:
        NotFoundError: If the secret does not exist at the source
        RemoteUnavailableError: If the source cannot be reached

    Behavior:
        - Fresh cache hit: returned without a remote call
        - Miss, stale entry or bypass: fetched from the source, then cached
    """
    if not bypass_cache:
        lookup = cache.get(key)
        if lookup.found and lookup.fresh:
            logger.debug(f"Cache hit for {key}")
            return lookup.value
        logger.debug(f"Cache {'stale' if lookup.found else 'miss'} for {key}")

    value = source.get_value(naming.remote_id(key))
    cache.put(key, value)
    return value


def set_secret(
    source: SecretSource,
    cache: CacheStore,
    naming: NamingScheme,
    key: SecretKey,
    value: str,
) -> None:
    """Write a secret to the source, then cache it. Remote failures propagate untouched."""
    source.create_or_update(naming.remote_id(key), value)
    cache.put(key, value)
    logger.info(f"Secret {key} set")


def delete_secret(
    source: SecretSource,
    cache: CacheStore,
    naming: NamingScheme,
    key: SecretKey,
) -> None:
    """Delete a secret at the source, then evict it from the cache.

    A secret already absent at the source still gets evicted.
    """
    try:
        source.delete(naming.remote_id(key))
    except NotFoundError:
        logger.debug(f"Secret {key} already absent at source")
    cache.delete(key)
    logger.info(f"Secret {key} deleted")


def list_secrets(source: SecretSource, naming: NamingScheme, environment: str) -> SecretListing:
    """
    List the secret names of one environment, always from the source.

    Returns:
        SecretListing with sorted names, their creation times and any
        unparseable prefixed ids
    """
    metadata = source.list_secret_metadata()
    remote_ids, skipped = naming.scope(metadata, environment)
    created = {naming.parse(remote_id).name: metadata[remote_id] for remote_id in remote_ids}
    return SecretListing(environment=environment, names=sorted(created), skipped=skipped, created=created)
