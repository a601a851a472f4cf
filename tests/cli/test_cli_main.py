"""Tests for the lldap CLI entry point (lldap.cli.main).

Covers parser construction, option-group mapping and the main()
flow against real temporary config and key files.
"""

from __future__ import annotations

import pytest

from lldap.cli.main import _build_opts, _build_parser, main
from lldap.config.lldap_config import get_config
from lldap.config.overrides import RunOpts, TestEmailOpts
from lldap.config.settings import Mailbox

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def parser():
    """Return a freshly built ArgumentParser."""
    return _build_parser()


# ===========================================================================
# Parser construction
# ===========================================================================


class TestBuildParser:
    def test_run_subcommand(self, parser):
        args = parser.parse_args(["run"])
        assert args.command == "run"
        assert args.config_file == "lldap_config.toml"
        assert args.verbose is False
        assert args.key_file is None
        assert args.http_port is None

    def test_config_file_from_env(self, monkeypatch):
        monkeypatch.setenv("LLDAP_CONFIG_FILE", "/etc/lldap.toml")
        args = _build_parser().parse_args(["run"])
        assert args.config_file == "/etc/lldap.toml"

    def test_general_options(self, parser):
        args = parser.parse_args(["run", "-v", "-c", "my.toml", "--key-file", "k"])
        assert args.verbose is True
        assert args.config_file == "my.toml"
        assert args.key_file == "k"

    def test_ports(self, parser):
        args = parser.parse_args(["run", "--ldap-port", "1389", "--http-port", "8080"])
        assert args.ldap_port == 1389
        assert args.http_port == 8080
        assert args.ldaps_port is None

    @pytest.mark.parametrize("value", ["abc", "70000", "-5"])
    def test_invalid_port(self, parser, value):
        with pytest.raises(SystemExit):
            parser.parse_args(["run", "--http-port", value])

    def test_smtp_options(self, parser):
        args = parser.parse_args(
            [
                "run",
                "--smtp-from",
                "LLDAP <noreply@example.com>",
                "--smtp-port",
                "465",
                "--smtp-tls-required",
                "false",
            ],
        )
        assert args.smtp_from == Mailbox("LLDAP", "noreply@example.com")
        assert args.smtp_port == 465
        assert args.smtp_tls_required is False

    def test_invalid_mailbox(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["run", "--smtp-from", "nobody"])

    def test_invalid_bool(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["run", "--smtp-tls-required", "maybe"])

    def test_send_test_email_requires_to(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["send_test_email"])

    def test_send_test_email(self, parser):
        args = parser.parse_args(["send_test_email", "--to", "admin@example.com", "-v"])
        assert args.command == "send_test_email"
        assert args.to == Mailbox("", "admin@example.com")
        assert args.verbose is True


class TestBuildOpts:
    def test_run_opts(self, parser):
        args = parser.parse_args(["run", "--http-port", "7070", "--smtp-server", "mail", "-v"])
        opts = _build_opts(args)
        assert isinstance(opts, RunOpts)
        assert opts.http_port == 7070
        assert opts.ldap_port is None
        assert opts.general_config.verbose is True
        assert opts.smtp_opts.smtp_server == "mail"
        assert opts.smtp_opts.smtp_port is None

    def test_test_email_opts(self, parser):
        args = parser.parse_args(["send_test_email", "--to", "a@example.com", "--smtp-user", "u"])
        opts = _build_opts(args)
        assert isinstance(opts, TestEmailOpts)
        assert opts.to == Mailbox("", "a@example.com")
        assert opts.smtp_opts.smtp_user == "u"


# ===========================================================================
# main()
# ===========================================================================


class TestMain:
    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 2
        assert "usage" in capsys.readouterr().err

    def test_run_resolves_configuration(self, tmp_path, capsys):
        (tmp_path / "lldap_config.toml").write_text("http_port = 8080\n", encoding="utf-8")
        main(["run", "--ldap-port", "1389"])
        out = capsys.readouterr().out
        assert "Loading configuration from lldap_config.toml" in out
        assert "WARNING: Default JWT secret used!" in out
        config = get_config()
        assert config.http_port == 8080
        assert config.ldap_port == 1389
        assert (tmp_path / "server_key").is_file()

    def test_env_applies(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LLDAP_HTTP_PORT", "9090")
        main(["run"])
        assert get_config().http_port == 9090

    def test_key_file_option(self, tmp_path):
        main(["run", "--key-file", "custom_key"])
        assert (tmp_path / "custom_key").is_file()
        assert not (tmp_path / "server_key").exists()

    def test_send_test_email(self, tmp_path):
        main(["send_test_email", "--to", "admin@example.com", "--smtp-port", "2525"])
        assert get_config().smtp_options.port == 2525

    def test_malformed_config_exits_1(self, tmp_path, capsys):
        (tmp_path / "lldap_config.toml").write_text("http_port = = 1\n", encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            main(["run"])
        assert excinfo.value.code == 1
        assert capsys.readouterr().err.startswith("error: ")
        assert not (tmp_path / "server_key").exists()

    def test_corrupt_key_file_exits_1(self, tmp_path, capsys):
        (tmp_path / "server_key").write_bytes(b"corrupt")
        with pytest.raises(SystemExit) as excinfo:
            main(["run"])
        assert excinfo.value.code == 1
        err = capsys.readouterr().err
        assert "server_key" in err
        assert "deserialize" in err

    def test_unusable_key_file_path_exits_1(self, tmp_path, capsys):
        (tmp_path / "lldap_config.toml").write_text('key_file = "a\\u0000b"\n', encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            main(["run"])
        assert excinfo.value.code == 1
        assert capsys.readouterr().err.startswith("error: Could not write key file")
