"""CLI entrypoint for the OneOps Secrets CLI."""
import sys
import argparse
import getpass
import logging
import time
from pathlib import Path

from oneops_secrets import __version__
from oneops_secrets.proxy.domains import preferences
from oneops_secrets.proxy.domains.config_loader import ConfigError, default_config_path, get_proxy_config
from oneops_secrets.proxy.domains.exceptions import SecretsProxyException, TrustStoreError
from oneops_secrets.proxy.domains.models import SecretReq
from oneops_secrets.proxy.workflows import secret_operations as ops

from . import display
from .validators import validate_app, validate_secret_file, validate_secret_name

VERSION = __version__

# Max rows printed by 'clients'
CLIENT_DISPLAY_LIMIT = 50

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _get_client():
    """Create the Secrets Proxy client and restore the saved login session."""
    from oneops_secrets.proxy.domains.client import SecretsClient

    client = SecretsClient(get_proxy_config())
    ops.restore_session(client)
    return client


def cmd_version(args):
    """Show version information."""
    print(f"oneops-secrets {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    preferences.set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    config_path_pref = preferences.get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found)")


def cmd_config_clear(args):
    """Clear config path preference."""
    preferences.clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_login(args):
    """Log in to the Secrets Proxy and save the token."""
    password = args.password or getpass.getpass(f"Password for {args.domain}\\{args.user}: ")
    client = _get_client()
    token = ops.login(client, args.user, password, args.domain)
    expiry = f" (expires in {token.expires_in_sec // 60} minutes)" if token.expires_in_sec else ""
    display.success(f"Success: Logged in as {args.domain}\\{args.user}{expiry}.")


def cmd_logout(args):
    """Remove the saved token."""
    ops.logout()
    display.info("Logged out.")


def cmd_whoami(args):
    """Show the user of the current token."""
    client = _get_client()
    user = ops.run("whoami", client.get_auth_user)
    display.print_details([("User", user.username), ("Name", user.cn), ("Domain", user.domain)])


def cmd_app(args):
    """Show the secrets group details of an application."""
    app = validate_app(args.app)
    group = ops.run("app", _get_client().get_group_details, app.name)
    rows = [
        ("Application", app.ns_path),
        ("Group", group.name),
        ("Description", group.description),
        ("Created", group.created_at),
        ("Created By", group.created_by),
    ]
    rows.extend((k, v) for k, v in sorted(group.metadata.items()))
    display.print_details(rows)


def cmd_clients(args):
    """Show all clients (computes) registered for the application."""
    app = validate_app(args.app)
    clients = ops.run("clients", _get_client().get_all_clients, app.name)
    display.success(f"{len(clients)} clients (computes) are registered for the application {app.ns_path}.")

    if clients:
        if len(clients) > CLIENT_DISPLAY_LIMIT:
            display.dim(f"Showing first {CLIENT_DISPLAY_LIMIT} clients.")
            clients = clients[:CLIENT_DISPLAY_LIMIT]
        display.print_clients(clients)
    else:
        display.info()
        display.info("Verify the followings,")
        display.bullet(f"'secrets-client' component is added to '{app.assembly}' platforms.")
        display.bullet(f"Completed the '{app.ns_path}' application env deployment.")


def cmd_client(args):
    """Show a client's details."""
    app = validate_app(args.app)
    client = ops.run("client", _get_client().get_client_details, app.name, args.name)
    display.print_details([
        ("Client", client.name),
        ("Description", client.description),
        ("Created", client.created_at),
        ("Created By", client.created_by),
        ("Updated", client.updated_at),
        ("Updated By", client.updated_by),
        ("Last Seen", client.last_seen),
    ])


def cmd_client_delete(args):
    """Delete a client from the application."""
    app = validate_app(args.app)
    ops.run("client-delete", _get_client().delete_client, app.name, args.name)
    display.success(f"Success: Client '{args.name}' deleted from {app.ns_path}.")


def cmd_list(args):
    """List the application secrets."""
    app = validate_app(args.app)
    client = _get_client()

    if args.expiring is not None:
        before = int(time.time()) + args.expiring * 86400
        names = ops.run("list", client.get_all_secrets_expiring, app.name, before)
        display.success(f"{len(names)} secrets of {app.ns_path} expire within {args.expiring} days.")
        for name in names:
            display.bullet(name)
        return

    secrets = ops.run("list", client.get_all_secrets, app.name)
    display.success(f"{len(secrets)} secrets are stored for the application {app.ns_path}.")
    if secrets:
        display.print_secrets(secrets)


def _expiry(args):
    if args.expiry_days is None:
        return None
    return int(time.time()) + args.expiry_days * 86400


def cmd_add(args):
    """Add a new secret."""
    app = validate_app(args.app)
    validate_secret_name(args.name)
    validate_secret_file(args.file)
    req = SecretReq(
        content=ops.read_secret_file(args.file),
        description=args.description or "",
        expiry=_expiry(args) or 0,
        metadata={},
    )
    ops.run("add", _get_client().create_secret, app.name, args.name, args.create_group, req)
    display.success(f"Success: Secret '{args.name}' added to {app.ns_path}.")


def cmd_update(args):
    """Update the content of an existing secret. Description and expiry are only sent when given."""
    app = validate_app(args.app)
    validate_secret_name(args.name)
    validate_secret_file(args.file)
    req = SecretReq(
        content=ops.read_secret_file(args.file),
        description=args.description,
        expiry=_expiry(args),
    )
    ops.run("update", _get_client().update_secret, app.name, args.name, req)
    display.success(f"Success: Secret '{args.name}' updated in {app.ns_path}.")


def cmd_info(args):
    """Show secret metadata."""
    app = validate_app(args.app)
    secret = ops.run("info", _get_client().get_secret, app.name, args.name)
    rows = [
        ("Secret", secret.name),
        ("Description", secret.description),
        ("Version", secret.version),
        ("Checksum", secret.checksum),
        ("Created", secret.created_at),
        ("Created By", secret.created_by),
        ("Updated", secret.updated_at),
        ("Updated By", secret.updated_by),
        ("Expiry", secret.expiry),
    ]
    rows.extend((k, v) for k, v in sorted(secret.metadata.items()))
    display.print_details(rows)


def cmd_versions(args):
    """Show all versions of a secret."""
    app = validate_app(args.app)
    versions = ops.run("versions", _get_client().get_secret_versions, app.name, args.name)
    display.success(f"{len(versions)} versions of secret '{args.name}'.")
    if versions:
        display.print_secrets(versions, show_version=True)


def cmd_rollback(args):
    """Set the current version of a secret."""
    app = validate_app(args.app)
    ops.run("rollback", _get_client().set_secret_version, app.name, args.name, args.version)
    display.success(f"Success: Secret '{args.name}' is now at version {args.version}.")


def cmd_get(args):
    """Download the secret content."""
    app = validate_app(args.app)
    content = ops.run("get", _get_client().get_secret_content, app.name, args.name)
    data = ops.decode_secret(content.secret)

    if args.output:
        path = ops.write_secret(data, args.output)
        display.success(f"Success: Secret '{args.name}' saved to {path}.")
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.flush()


def cmd_delete(args):
    """Delete a secret."""
    app = validate_app(args.app)
    ops.run("delete", _get_client().delete_secret, app.name, args.name)
    display.success(f"Success: Secret '{args.name}' deleted from {app.ns_path}.")


def cmd_delete_all(args):
    """Delete all secrets of the application."""
    app = validate_app(args.app)
    if not args.yes:
        print(f"Error: Refusing to delete all secrets of {app.ns_path} without --yes", file=sys.stderr)
        sys.exit(2)
    deleted = ops.run("delete-all", _get_client().delete_all_secrets, app.name)
    display.success(f"Success: {len(deleted)} secrets deleted from {app.ns_path}.")
    for name in deleted:
        display.bullet(name)


def _add_app(parser):
    parser.add_argument(
        "-a", "--app",
        required=True,
        help="Application path as org/assembly/env"
    )


def build_parser():
    """Build the argparse parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="secrets",
        description="OneOps Secrets CLI - manage application secrets in the OneOps Secrets Proxy",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (proxy error, network, trust-store, configuration, etc.)
  2 - Usage error (invalid arguments, invalid application path or secret name, etc.)

Environment variables:
  SECRETS_PROXY_URL - Secrets Proxy base URL (overrides config file)

Configuration:
  Default location: ~/.config/oneops-secrets/config.yml
  Custom path: Set with 'secrets config set-path <path>'
  View current: Run 'secrets config show'
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log trust-store loading and HTTP exchanges to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    p = subparsers.add_parser("version", help="Show version information")
    p.set_defaults(func=cmd_version)

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage the CLI configuration file location"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    p = config_subparsers.add_parser("set-path", help="Set config file path")
    p.add_argument("path", help="Path to config file")
    p.set_defaults(func=cmd_config_set_path)
    p = config_subparsers.add_parser("show", help="Show current config path")
    p.set_defaults(func=cmd_config_show)
    p = config_subparsers.add_parser("clear", help="Clear config path preference")
    p.set_defaults(func=cmd_config_clear)

    p = subparsers.add_parser(
        "login",
        help="Log in to the Secrets Proxy",
        description="Authenticate with your OneOps credentials. The token is saved for later commands."
    )
    p.add_argument("-u", "--user", required=True, help="OneOps username")
    p.add_argument("-d", "--domain", default="prod", help="OneOps auth domain (default: prod)")
    p.add_argument("-p", "--password", help="Password (prompted if omitted)")
    p.set_defaults(func=cmd_login)

    p = subparsers.add_parser("logout", help="Remove the saved token")
    p.set_defaults(func=cmd_logout)

    p = subparsers.add_parser("whoami", help="Show the logged in user")
    p.set_defaults(func=cmd_whoami)

    p = subparsers.add_parser("app", help="Show the application secrets group")
    _add_app(p)
    p.set_defaults(func=cmd_app)

    p = subparsers.add_parser("clients", help="Show all clients (computes) for the application")
    _add_app(p)
    p.set_defaults(func=cmd_clients)

    p = subparsers.add_parser("client", help="Show client details")
    _add_app(p)
    p.add_argument("name", help="Client name")
    p.set_defaults(func=cmd_client)

    p = subparsers.add_parser("client-delete", help="Delete a client")
    _add_app(p)
    p.add_argument("name", help="Client name")
    p.set_defaults(func=cmd_client_delete)

    p = subparsers.add_parser("list", help="List the application secrets")
    _add_app(p)
    p.add_argument(
        "--expiring",
        type=int,
        metavar="DAYS",
        help="Only list secrets expiring within DAYS days"
    )
    p.set_defaults(func=cmd_list)

    p = subparsers.add_parser("add", help="Add a new secret")
    _add_app(p)
    p.add_argument("name", help="Secret name (format: [a-zA-Z0-9_.-]+)")
    p.add_argument("-f", "--file", required=True, help="File holding the secret content")
    p.add_argument("--description", help="Secret description")
    p.add_argument("--expiry-days", type=int, help="Secret expires after this many days")
    p.add_argument(
        "--create-group",
        action="store_true",
        help="Create the application secrets group if it doesn't exist"
    )
    p.set_defaults(func=cmd_add)

    p = subparsers.add_parser("update", help="Update a secret")
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.add_argument("-f", "--file", required=True, help="File holding the new secret content")
    p.add_argument("--description", help="Secret description")
    p.add_argument("--expiry-days", type=int, help="Secret expires after this many days")
    p.set_defaults(func=cmd_update)

    p = subparsers.add_parser("info", help="Show secret metadata")
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.set_defaults(func=cmd_info)

    p = subparsers.add_parser("versions", help="Show all versions of a secret")
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.set_defaults(func=cmd_versions)

    p = subparsers.add_parser("rollback", help="Set the current version of a secret")
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.add_argument("version", type=int, help="Version to make current")
    p.set_defaults(func=cmd_rollback)

    p = subparsers.add_parser(
        "get",
        help="Download a secret",
        description="Print the secret content to stdout, or save it to a file (mode 0600) with -o."
    )
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.add_argument("-o", "--output", help="Output file")
    p.set_defaults(func=cmd_get)

    p = subparsers.add_parser("delete", help="Delete a secret")
    _add_app(p)
    p.add_argument("name", help="Secret name")
    p.set_defaults(func=cmd_delete)

    p = subparsers.add_parser("delete-all", help="Delete all secrets of the application")
    _add_app(p)
    p.add_argument("--yes", action="store_true", help="Confirm deleting every secret")
    p.set_defaults(func=cmd_delete_all)

    return parser


def _usage(parser):
    parser.print_help()
    sys.exit(2)


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (proxy error, network, trust-store, configuration, etc.)
        2 - Usage errors (invalid arguments, invalid application path, etc.)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # 'config' without a subcommand has no handler either
    if not args.command or not hasattr(args, "func"):
        _usage(parser)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except SecretsProxyException as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.__cause__ is not None:
            logger.debug("Transport failure", exc_info=e.__cause__)
        sys.exit(1)
    except (ConfigError, TrustStoreError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Check the configuration with 'secrets config show'.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
