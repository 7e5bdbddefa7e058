"""Input validation for CLI arguments."""
import re
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Application:
    """A OneOps environment (org/assembly/env). Its secrets group is org_assembly_env."""
    org: str
    assembly: str
    env: str

    @property
    def name(self) -> str:
        return f"{self.org}_{self.assembly}_{self.env}"

    @property
    def ns_path(self) -> str:
        return f"/{self.org}/{self.assembly}/{self.env}"


_APP_PART = re.compile(r'^[a-zA-Z0-9-]+$')
_SECRET_NAME = re.compile(r'^[a-zA-Z0-9_.-]+$')


def validate_app(path: str) -> Application:
    """
    Parse and validate an application path.

    Args:
        path: Application path, e.g. 'oneops/myapp/prod'

    Returns:
        The parsed Application

    Raises:
        SystemExit with code 2 if validation fails
    """
    parts = (path or "").strip("/").split("/")
    if len(parts) != 3 or not all(_APP_PART.match(p) for p in parts):
        print(f"Error: Invalid application path '{path}'", file=sys.stderr)
        print("\nExpected format: org/assembly/env (e.g. oneops/myapp/prod)", file=sys.stderr)
        print("Each part may contain letters, numbers and hyphens (-).", file=sys.stderr)
        sys.exit(2)
    return Application(*parts)


def validate_secret_name(name: str) -> None:
    """
    Validate secret name.

    Allowed: [a-zA-Z0-9_.-]

    Args:
        name: Secret name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        print("\nSecret names must match: [a-zA-Z0-9_.-]", file=sys.stderr)
        sys.exit(2)

    if not _SECRET_NAME.match(name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, dots (.), underscores (_), hyphens (-)", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ db.password", file=sys.stderr)
        print("  ✓ keystore.p12", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ conf/app.yml (contains slash)", file=sys.stderr)
        print("  ✗ MY SECRET (contains space)", file=sys.stderr)
        sys.exit(2)


def validate_secret_file(path: str) -> None:
    """
    Validate the secret file exists and is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    file = Path(path).expanduser()
    if not file.is_file():
        print(f"Error: Secret file not found: {file}", file=sys.stderr)
        sys.exit(2)
    if file.stat().st_size == 0:
        print(f"Error: Secret file is empty: {file}", file=sys.stderr)
        print("\nThe Secrets Proxy does not allow empty secrets.", file=sys.stderr)
        sys.exit(2)
