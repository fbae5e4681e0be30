"""CLI entrypoint for ksecret."""
import sys
import json
import getpass
import argparse
import logging
from datetime import timezone

from .validators import validate_environment_name, validate_secret_name, validate_secret_value

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def build_source(config):
    """Create the Secret Manager client for the configured project."""
    from ksecret.secrets.domains.gcp_client import GCPSecretClient

    return GCPSecretClient(config["gcp"]["project_id"])


def build_target(context):
    """Create the Kubernetes client for the given kubeconfig context."""
    from ksecret.secrets.domains.k8s_client import KubectlClient

    return KubectlClient(context=context)


def build_cache(config):
    """Create and load the cache store at the configured location."""
    from ksecret.secrets.domains.cache_store import CacheStore
    from ksecret.secrets.domains.config_loader import get_cache_path, get_cache_ttl

    cache = CacheStore(get_cache_path(config), ttl_seconds=get_cache_ttl(config))
    cache.load()
    return cache


def _load(args):
    from ksecret.secrets.domains.config_loader import load_config
    from ksecret.secrets.domains.naming import NamingScheme

    config = load_config(getattr(args, "project", None))
    return config, NamingScheme(config["secret_prefix"])


def _read_value(args) -> str:
    if args.stdin:
        return sys.stdin.read().rstrip("\r\n")
    if args.value is not None:
        return args.value
    return getpass.getpass("Enter secret value: ")


def _format_created(created):
    if created is None:
        return None
    return created.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_version(args):
    """Show version information."""
    print(f"ksecret {VERSION}")


def cmd_init(args):
    """Write the configuration file."""
    from ksecret.secrets.domains.config_loader import save_config

    config_path = save_config(args.project, args.prefix)
    print(f"Success: Configuration saved to {config_path}")
    print(f"  GCP Project ID: {args.project}")
    print(f"  Secret prefix: {args.prefix}")


def cmd_set(args):
    """Set a secret value in GCP Secret Manager."""
    from ksecret.secrets.domains.models import SecretKey
    from ksecret.secrets.workflows.secret_operations import set_secret

    validate_environment_name(args.env)
    validate_secret_name(args.secret_name)
    value = _read_value(args)
    validate_secret_value(value)

    config, naming = _load(args)
    set_secret(build_source(config), build_cache(config), naming, SecretKey(args.env, args.secret_name), value)
    print(f"Success: Secret '{args.secret_name}' set for environment '{args.env}'")


def cmd_get(args):
    """Get a secret value, from the cache when fresh."""
    from ksecret.secrets.domains.models import SecretKey
    from ksecret.secrets.workflows.secret_operations import get_secret

    validate_environment_name(args.env)
    validate_secret_name(args.secret_name)

    config, naming = _load(args)
    value = get_secret(
        build_source(config),
        build_cache(config),
        naming,
        SecretKey(args.env, args.secret_name),
        bypass_cache=args.no_cache,
    )

    if args.output == "json":
        print(json.dumps({"name": args.secret_name, "environment": args.env, "value": value}, indent=2))
    else:
        print(value)


def cmd_list(args):
    """List secrets for an environment."""
    from ksecret.secrets.workflows.secret_operations import list_secrets

    validate_environment_name(args.env)

    config, naming = _load(args)
    listing = list_secrets(build_source(config), naming, args.env)

    for remote_id in listing.skipped:
        print(f"Warning: Skipped secret with unparseable id '{remote_id}'", file=sys.stderr)

    if args.output == "json":
        print(json.dumps([
            {"name": name, "environment": args.env, "created_at": _format_created(listing.created.get(name))}
            for name in listing.names
        ], indent=2))
        return

    if not listing.names:
        print(f"No secrets found for environment '{args.env}'")
        return

    print(f"Secrets for environment '{args.env}':\n")
    print(f"  {'NAME':<40} {'CREATED':<24}")
    print(f"  {'-' * 64}")
    for name in listing.names:
        print(f"  {name:<40} {_format_created(listing.created.get(name)) or '-':<24}")
    print(f"\n  Total: {len(listing.names)} secret(s)")


def cmd_delete(args):
    """Delete a secret from GCP Secret Manager."""
    from ksecret.secrets.domains.models import SecretKey
    from ksecret.secrets.workflows.secret_operations import delete_secret

    validate_environment_name(args.env)
    validate_secret_name(args.secret_name)

    if not args.force:
        response = input(
            f"Are you sure you want to delete secret '{args.secret_name}' "
            f"from environment '{args.env}'? [y/N] "
        ).strip().lower()
        if response != 'y':
            print("Aborted.")
            return

    config, naming = _load(args)
    delete_secret(build_source(config), build_cache(config), naming, SecretKey(args.env, args.secret_name))
    print(f"Success: Secret '{args.secret_name}' deleted from environment '{args.env}'")


def cmd_sync(args):
    """Sync all secrets of an environment to a Kubernetes namespace."""
    from ksecret.secrets.workflows.sync_engine import SyncEngine

    validate_environment_name(args.environment)
    namespace = args.namespace or args.environment

    config, naming = _load(args)
    target = build_target(args.context)

    print(f"Syncing secrets for environment '{args.environment}' to namespace '{namespace}'")
    if args.dry_run:
        print("  (dry-run mode - no changes will be made)")

    if not target.namespace_exists(namespace):
        print(f"Error: Namespace '{namespace}' does not exist", file=sys.stderr)
        sys.exit(1)

    engine = SyncEngine(build_source(config), target, naming)
    plan = engine.plan(args.environment, namespace, recreate_all=args.recreate_all)

    for remote_id in plan.skipped:
        print(f"Warning: Skipped secret '{remote_id}' (unparseable id or invalid Kubernetes name)", file=sys.stderr)

    if plan.is_empty:
        print(f"  Namespace is up to date ({len(plan.unchanged)} secret(s) unchanged)")
        return

    result = engine.apply(plan, dry_run=args.dry_run)
    for line in result.describe():
        print(f"  {line}")

    if args.dry_run:
        print(f"\nDry run: {len(plan.to_delete)} delete(s), {len(plan.to_create)} create(s) planned")
        return

    if result.ok:
        print(
            f"\nSuccess: Synced {len(plan.to_create)} secret(s) to namespace '{namespace}' "
            f"({len(plan.to_delete)} delete(s), {len(plan.unchanged)} unchanged)"
        )
        return

    print(
        f"\n{len(result.succeeded)} operation(s) succeeded, {len(result.failed)} failed. "
        f"Run sync again to converge.",
        file=sys.stderr
    )
    result.raise_for_failures()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ksecret",
        description="ksecret - manage environment secrets in GCP Secret Manager and sync them to Kubernetes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, partial sync failure, etc.)
  2 - Usage error (invalid arguments, invalid secret name format, etc.)

Environment variables:
  KSECRET_GCP_PROJECT  - GCP project ID (overrides config file)
  KSECRET_CONFIG_FILE  - Config file path (default: ~/.config/ksecret/config.yml)
  KSECRET_CACHE_FILE   - Cache file path (default: ~/.config/ksecret/cache.json)
        """
    )
    parser.add_argument(
        "--project",
        help="GCP project ID (overrides config file and KSECRET_GCP_PROJECT)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging on stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of ksecret"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize configuration file",
        description="Write ~/.config/ksecret/config.yml (or KSECRET_CONFIG_FILE) with the GCP project ID."
    )
    init_parser.add_argument("--project", required=True, help="GCP project ID")
    init_parser.add_argument("--prefix", default="k8s", help="Secret id prefix (default: k8s)")

    # set command
    set_parser = subparsers.add_parser(
        "set",
        help="Set a secret value",
        description="""
Create or update a secret in GCP Secret Manager.

The value is taken from --value, from stdin with --stdin, or prompted for.
The local cache is only updated after GCP accepts the write.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    set_parser.add_argument("secret_name", help="Name of the secret (format: [a-z0-9-]+)")
    set_parser.add_argument("-e", "--env", required=True, help="Environment name (e.g. dev, staging, prod)")
    set_parser.add_argument("--value", help="Secret value (prompted for if omitted)")
    set_parser.add_argument("--stdin", action="store_true", help="Read the secret value from stdin")

    # get command
    get_parser = subparsers.add_parser(
        "get",
        help="Get a secret value",
        description="""
Fetch a secret from GCP Secret Manager.

Behavior:
  1. Returns the cached value if it was fetched less than 5 minutes ago
  2. Otherwise fetches from GCP Secret Manager and refreshes the cache

Exit codes:
  0 - Secret found and printed
  1 - Secret not found or GCP unreachable
  2 - Invalid secret or environment name
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    get_parser.add_argument("secret_name", help="Name of the secret")
    get_parser.add_argument("-e", "--env", required=True, help="Environment name")
    get_parser.add_argument("-o", "--output", choices=["text", "json"], default="text", help="Output format")
    get_parser.add_argument("--no-cache", action="store_true", help="Skip cache and fetch directly from GCP")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List secrets for an environment",
        description="List every secret of an environment in GCP Secret Manager (never cached)."
    )
    list_parser.add_argument("-e", "--env", required=True, help="Environment name")
    list_parser.add_argument("-o", "--output", choices=["table", "json"], default="table", help="Output format")

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete a secret",
        description="Delete a secret from GCP Secret Manager and evict it from the local cache."
    )
    delete_parser.add_argument("secret_name", help="Name of the secret")
    delete_parser.add_argument("-e", "--env", required=True, help="Environment name")
    delete_parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync an environment's secrets to a Kubernetes namespace",
        description="""
Make the secrets of a Kubernetes namespace exactly match an environment in GCP.

Secrets removed from GCP are deleted, changed secrets are deleted and then
recreated, new secrets are created. Only secrets labelled
app.kubernetes.io/managed-by=ksecret are considered. If some operations fail,
each one is reported; running sync again converges the namespace.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sync_parser.add_argument("environment", metavar="ENV", help="Environment name (e.g. dev, staging, prod)")
    sync_parser.add_argument("-n", "--namespace", help="Target namespace (defaults to the environment name)")
    sync_parser.add_argument("-c", "--context", help="Kubernetes context (defaults to the current context)")
    sync_parser.add_argument("--dry-run", action="store_true", help="Show the plan without making changes")
    sync_parser.add_argument(
        "--recreate-all",
        action="store_true",
        help="Delete and recreate every secret, even ones already up to date"
    )

    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, secret not found, etc.)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        "version": cmd_version,
        "init": cmd_init,
        "set": cmd_set,
        "get": cmd_get,
        "list": cmd_list,
        "delete": cmd_delete,
        "sync": cmd_sync,
    }

    # Route to command handlers
    try:
        handlers[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
