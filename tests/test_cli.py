# tests/test_cli.py
"""Tests for the command-line entry point."""

import json
import logging

import pytest

from apbrowse import cli


@pytest.fixture(autouse=True)
def restore_logging():
    """main() points the apbrowse logger at a file; undo that afterwards."""
    logger = logging.getLogger("apbrowse")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def base_args(temp_dir):
    return [
        "--key-path", str(temp_dir / "private_key.pem"),
        "--log-file", str(temp_dir / "debug.log"),
    ]


class TestParser:
    """Test argument parsing."""

    def test_profile_flags(self):
        args = cli.build_parser().parse_args([
            "--root-uri", "https://me.test/users/a",
            "--preferred-username", "a",
            "--name", "A",
            "actor",
        ])
        assert args.root_uri == "https://me.test/users/a"
        assert args.preferred_username == "a"
        assert args.name == "A"
        assert args.command == "actor"

    def test_unset_flags_are_none(self):
        args = cli.build_parser().parse_args(["actor"])
        assert args.root_uri is None
        assert args.serve is None

    def test_browse_uri_optional(self):
        assert cli.build_parser().parse_args(["browse"]).uri is None
        assert cli.build_parser().parse_args(["browse", "https://a.test/x"]).uri == "https://a.test/x"

    def test_flags_override_config(self, temp_dir):
        config = temp_dir / "apbrowse.yaml"
        config.write_text("name: From File\npreferred_username: file\n")
        args = cli.build_parser().parse_args(["--config", str(config), "--name", "From Flag", "actor"])

        settings = cli.load_settings(args)

        assert settings.name == "From Flag"
        assert settings.preferred_username == "file"


class TestMain:
    """Test main()."""

    def test_actor_command(self, temp_dir, capsys):
        code = cli.main(base_args(temp_dir) + [
            "--root-uri", "https://me.test/users/a",
            "--preferred-username", "a",
            "--name", "A",
            "actor",
        ])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["id"] == "https://me.test/users/a"
        assert data["followers"] == "https://me.test/users/a/followers"
        assert data["publicKey"]["id"] == "https://me.test/users/a#main-key"
        assert (temp_dir / "private_key.pem").exists()

    def test_key_reused_between_runs(self, temp_dir, capsys):
        cli.main(base_args(temp_dir) + ["actor"])
        first = json.loads(capsys.readouterr().out)
        cli.main(base_args(temp_dir) + ["actor"])
        second = json.loads(capsys.readouterr().out)
        assert first["publicKey"]["publicKeyPem"] == second["publicKey"]["publicKeyPem"]

    def test_bad_key_is_fatal(self, temp_dir, capsys):
        (temp_dir / "private_key.pem").write_text("garbage")

        code = cli.main(base_args(temp_dir) + ["actor"])

        assert code == 1
        assert "error:" in capsys.readouterr().err

    def test_bad_config(self, temp_dir, capsys):
        config = temp_dir / "bad.yaml"
        config.write_text("unknown_setting: 1\n")

        code = cli.main(base_args(temp_dir) + ["--config", str(config), "actor"])

        assert code == 2
        assert "Unknown setting" in capsys.readouterr().err

    def test_fetch_command(self, temp_dir, capsys, document_server):
        document_server.route_json("/actor", {"id": "https://a.test/actor", "type": "Person"})

        code = cli.main(base_args(temp_dir) + ["fetch", document_server.url("/actor")])

        out = capsys.readouterr().out
        assert code == 0
        assert out.startswith("Status: 200\n")
        assert '"type": "Person"' in out
        path, headers = document_server.requests[0]
        assert "Signature" in headers

    def test_fetch_not_found(self, temp_dir, capsys, document_server):
        code = cli.main(base_args(temp_dir) + ["fetch", document_server.url("/missing")])
        assert code == 1
        assert "Status: 404" in capsys.readouterr().out

    def test_fetch_transport_error(self, temp_dir, capsys):
        code = cli.main(base_args(temp_dir) + ["fetch", "not a uri"])
        assert code == 1
        assert "error:" in capsys.readouterr().err

    def test_fetch_non_ascii_uri(self, temp_dir, capsys, document_server):
        document_server.route_json("/tags/caf%C3%A9", {"type": "OrderedCollection"})

        code = cli.main(base_args(temp_dir) + ["fetch", document_server.url("/tags/café")])

        assert code == 0
        assert '"type": "OrderedCollection"' in capsys.readouterr().out

    def test_fetch_deeply_nested_body(self, temp_dir, capsys, document_server):
        """Bodies the JSON parser gives up on are printed raw."""
        document_server.route("/deep", body=b"[" * 100000 + b"]" * 100000)

        code = cli.main(base_args(temp_dir) + ["fetch", document_server.url("/deep")])

        assert code == 0
        assert capsys.readouterr().out.startswith("Status: 200\n[[[")

    def test_logs_to_file(self, temp_dir, capsys):
        cli.main(base_args(temp_dir) + ["actor"])
        assert "generating a new one" in (temp_dir / "debug.log").read_text()
