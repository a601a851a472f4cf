"""lldap command-line entry point.

Usage::

    lldap run
    lldap run -c /etc/lldap/lldap_config.toml --http-port 8080
    lldap run -v --key-file /var/lib/lldap/server_key
    lldap send_test_email --to "Admin <admin@example.com>"
    python -m lldap run
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import TYPE_CHECKING

from lldap.config.overrides import (
    DEFAULT_CONFIG_FILE,
    GeneralConfigOpts,
    RunOpts,
    SmtpOpts,
    TestEmailOpts,
)
from lldap.config.settings import Mailbox

if TYPE_CHECKING:
    from lldap.config.settings import Configuration

log = logging.getLogger(__name__)

_MAX_PORT = 65535
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def _get_version() -> str:
    from lldap import __version__

    return __version__


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        msg = f"invalid port: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if not 0 <= port <= _MAX_PORT:
        msg = f"port out of range: {port}"
        raise argparse.ArgumentTypeError(msg)
    return port


def _mailbox(value: str) -> Mailbox:
    try:
        return Mailbox.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"expected true or false, got {value!r}"
    raise argparse.ArgumentTypeError(msg)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _general_parser() -> argparse.ArgumentParser:
    general = argparse.ArgumentParser(add_help=False)
    general.add_argument(
        "-c",
        "--config-file",
        default=os.environ.get("LLDAP_CONFIG_FILE", DEFAULT_CONFIG_FILE),
        metavar="PATH",
        help="Path to the TOML configuration file (env: LLDAP_CONFIG_FILE).",
    )
    general.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable verbose output and print the resolved configuration.",
    )
    general.add_argument(
        "--key-file",
        metavar="PATH",
        help="Path of the OPAQUE server setup file.",
    )
    return general


def _add_smtp_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("smtp options")
    group.add_argument("--smtp-from", type=_mailbox, metavar="MAILBOX")
    group.add_argument("--smtp-reply-to", type=_mailbox, metavar="MAILBOX")
    group.add_argument("--smtp-server", metavar="HOST")
    group.add_argument("--smtp-port", type=_port, metavar="PORT")
    group.add_argument("--smtp-user", metavar="USER")
    group.add_argument("--smtp-password", metavar="PASSWORD")
    group.add_argument("--smtp-tls-required", type=_bool, metavar="{true,false}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lldap",
        description="lldap - light LDAP implementation for authentication",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    general = _general_parser()
    subparsers = parser.add_subparsers(dest="command")

    # run
    run_parser = subparsers.add_parser(
        "run",
        parents=[general],
        help="Resolve the configuration and start the server",
    )
    run_parser.add_argument("--ldap-port", type=_port, metavar="PORT")
    run_parser.add_argument("--ldaps-port", type=_port, metavar="PORT")
    run_parser.add_argument("--http-port", type=_port, metavar="PORT")
    _add_smtp_arguments(run_parser)

    # send_test_email
    email_parser = subparsers.add_parser(
        "send_test_email",
        parents=[general],
        help="Resolve the mail settings for a test email",
    )
    email_parser.add_argument("--to", type=_mailbox, required=True, metavar="MAILBOX")
    _add_smtp_arguments(email_parser)

    return parser


# ---------------------------------------------------------------------------
# Option groups
# ---------------------------------------------------------------------------


def _general_opts(args: argparse.Namespace) -> GeneralConfigOpts:
    return GeneralConfigOpts(
        verbose=args.verbose,
        config_file=args.config_file,
        key_file=args.key_file,
    )


def _smtp_opts(args: argparse.Namespace) -> SmtpOpts:
    return SmtpOpts(
        smtp_from=args.smtp_from,
        smtp_reply_to=args.smtp_reply_to,
        smtp_server=args.smtp_server,
        smtp_port=args.smtp_port,
        smtp_user=args.smtp_user,
        smtp_password=args.smtp_password,
        smtp_tls_required=args.smtp_tls_required,
    )


def _build_opts(args: argparse.Namespace) -> RunOpts | TestEmailOpts:
    if args.command == "send_test_email":
        return TestEmailOpts(
            general_config=_general_opts(args),
            to=args.to,
            smtp_opts=_smtp_opts(args),
        )
    return RunOpts(
        general_config=_general_opts(args),
        ldap_port=args.ldap_port,
        ldaps_port=args.ldaps_port,
        http_port=args.http_port,
        smtp_opts=_smtp_opts(args),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"error: {message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments and resolves the configuration."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        sys.exit(2)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    opts = _build_opts(args)

    from lldap.config import ConfigError, init

    try:
        config = init(opts)
    except ConfigError as exc:
        _print_error(str(exc))
        sys.exit(1)

    from lldap.logging import configure_logging

    configure_logging(verbose=config.verbose)

    if isinstance(opts, TestEmailOpts):
        _report_test_email(config, opts)
    else:
        _print_settings_summary(config)


def _print_settings_summary(config: Configuration) -> None:
    """Log the listening ports of the resolved configuration."""
    log.info(
        "Configuration ready: ldap_port=%d ldaps_port=%d http_port=%d base_dn=%s",
        config.ldap_port,
        config.ldaps_port,
        config.http_port,
        config.ldap_base_dn,
    )
    log.info("Server public key: %s", config.get_server_keys().public.hex())


def _report_test_email(config: Configuration, opts: TestEmailOpts) -> None:
    smtp = config.smtp_options
    log.info(
        "Test email to %s via %s:%d (user=%s, tls_required=%s)",
        opts.to,
        smtp.server,
        smtp.port,
        smtp.user,
        smtp.tls_required,
    )
