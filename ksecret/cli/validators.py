"""Input validation for CLI arguments."""
import re
import sys

# Remote ids double as Kubernetes Secret names, which must be lowercase RFC 1123 names
SECRET_NAME_PATTERN = r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$'
ENVIRONMENT_PATTERN = r'^[a-z0-9]+$'


def validate_secret_name(name: str) -> None:
    """
    Validate secret name.

    Secret names end up in both GCP secret ids and Kubernetes Secret names,
    so only the characters both accept are allowed: [a-z0-9-], starting and
    ending with a letter or digit.

    Args:
        name: Secret name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        print("\nSecret names must match: [a-z0-9-]", file=sys.stderr)
        sys.exit(2)

    if not re.match(SECRET_NAME_PATTERN, name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nAllowed characters: lowercase letters, numbers, hyphens (-)", file=sys.stderr)
        print("Names must start and end with a letter or number.", file=sys.stderr)
        print("Not allowed: uppercase letters, underscores (_), dots (.), slashes (/), spaces", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ db-password", file=sys.stderr)
        print("  ✓ api-key", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ API_KEY (uppercase, underscore)", file=sys.stderr)
        print("  ✗ api.key (contains dot)", file=sys.stderr)
        print("  ✗ db/password (contains slash)", file=sys.stderr)
        sys.exit(2)


def validate_environment_name(environment: str) -> None:
    """
    Validate environment name.

    Environments form the first segment of remote ids ({prefix}-{env}-{name}),
    so they may not contain hyphens: [a-z0-9]

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not environment or not re.match(ENVIRONMENT_PATTERN, environment):
        print(f"Error: Invalid environment name '{environment}'", file=sys.stderr)
        print("\nAllowed characters: lowercase letters, numbers", file=sys.stderr)
        print("Hyphens are not allowed because they separate environment and name in secret ids.", file=sys.stderr)
        sys.exit(2)


def validate_secret_value(value: str) -> None:
    """
    Validate secret value is not empty.

    GCP Secret Manager does not allow empty secret payloads.

    Args:
        value: Secret value to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: Secret value cannot be empty", file=sys.stderr)
        print("\nGCP Secret Manager does not allow empty secret payloads.", file=sys.stderr)
        print("If you need a placeholder, use a special value like 'UNSET' or 'TODO'.", file=sys.stderr)
        sys.exit(2)
