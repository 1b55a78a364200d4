"""Unit tests for the lega CLI commands."""

import json
import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from pylega.cli import main
from pylega.exceptions import LegaConnectionError, LegaTransferError

FTP_ENV = {
    "FTP_HOST": "ftp.example.com",
    "FTP_USER": "deploy",
    "FTP_PASSWORD": "secret",
    "FTP_REMOTE_DIR": "/www",
}

NO_FTP_ENV = {name: None for name in FTP_ENV}


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


def invoke(runner, args, **kwargs):
    """Invoke the CLI without picking up a stray .env file."""
    return runner.invoke(main, ["--env-file", "missing.env", *args], **kwargs)


def staged(runner, content="x"):
    """Create u1 with a.txt staged into both trees."""
    Path("a.txt").write_text(content)
    invoke(runner, ["create", "u1"])
    invoke(runner, ["add", "u1", "a.txt", "--no-edit"])


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Help lists every command."""
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in (
            "create",
            "add",
            "remove",
            "list",
            "compare",
            "backup",
            "backups",
            "restore",
            "open",
            "push",
        ):
            assert command in result.output

    @patch.dict(os.environ, clear=False)
    def test_env_file_is_loaded(self, runner):
        """--env-file supplies push credentials."""
        for name in FTP_ENV:
            os.environ.pop(name, None)
        with runner.isolated_filesystem():
            staged(runner)
            Path("deploy.env").write_text(
                "".join(f"{k}={v}\n" for k, v in FTP_ENV.items())
            )

            result = runner.invoke(
                main, ["--env-file", "deploy.env", "push", "u1", "new"], input="n\n"
            )

            assert "ftp://deploy@ftp.example.com:21/www" in result.output
            assert "Operation cancelled." in result.output


class TestStagingCommands:
    """Tests for create, add, remove and list."""

    def test_create(self, runner):
        """create makes old/ and new/."""
        with runner.isolated_filesystem():
            result = invoke(runner, ["create", "u1"])

            assert result.exit_code == 0
            assert "Update directory u1 created successfully." in result.output
            assert Path("u1/old").is_dir()
            assert Path("u1/new").is_dir()

    def test_create_with_structure(self, runner):
        """--structure-from replicates directories."""
        with runner.isolated_filesystem():
            Path("site/css").mkdir(parents=True)

            result = invoke(runner, ["create", "u1", "--structure-from", "site"])

            assert result.exit_code == 0
            assert Path("u1/new/css").is_dir()

    def test_add(self, runner):
        """add copies the file into both trees."""
        with runner.isolated_filesystem():
            Path("a.txt").write_text("x")
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["add", "u1", "a.txt", "--no-edit"])

            assert result.exit_code == 0
            assert "File a.txt added to update directory u1." in result.output
            assert Path("u1/old/a.txt").read_text() == "x"
            assert Path("u1/new/a.txt").read_text() == "x"

    @patch("pylega.editor.subprocess.run")
    def test_add_opens_editor(self, mock_run, runner):
        """Without --no-edit the new copy is handed to the editor."""
        mock_run.return_value = Mock(returncode=0, stderr="")
        with runner.isolated_filesystem():
            Path("a.txt").write_text("x")
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["add", "u1", "a.txt"], env={"LEGA_EDITOR": "ed"})

            assert result.exit_code == 0
            argv = mock_run.call_args.args[0]
            assert argv[0] == "ed"
            assert argv[-1].endswith(str(Path("u1/new/a.txt")))

    def test_add_missing_file(self, runner):
        """A missing file is an error."""
        with runner.isolated_filesystem():
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["add", "u1", "nope.txt", "--no-edit"])

            assert result.exit_code == 1
            assert "Error:" in result.output

    def test_remove(self, runner):
        """remove deletes from both trees and reports a second call."""
        with runner.isolated_filesystem():
            staged(runner)

            first = invoke(runner, ["remove", "u1", "a.txt"])
            second = invoke(runner, ["remove", "u1", "a.txt"])

            assert first.exit_code == 0
            assert first.output.count("Removed") == 2
            assert second.exit_code == 0
            assert second.output.count("does not exist.") == 2

    def test_remove_outside_tree(self, runner):
        """Paths leaving the update directory are refused."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["remove", "u1", "../../a.txt"])

            assert result.exit_code == 1
            assert "Invalid path" in result.output
            assert Path("a.txt").exists()

    def test_list(self, runner):
        """list prints the files of one version."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["list", "u1", "new"])

            assert result.exit_code == 0
            assert "Files in the new directory:" in result.output
            assert "a.txt" in result.output

    def test_list_empty(self, runner):
        """An empty version says so."""
        with runner.isolated_filesystem():
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["list", "u1", "old"])

            assert result.exit_code == 0
            assert "No files found in the old directory." in result.output

    def test_list_invalid_version(self, runner):
        """Only old and new are accepted."""
        with runner.isolated_filesystem():
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["list", "u1", "newer"])

            assert result.exit_code == 2

    def test_list_json(self, runner):
        """--json prints a JSON array."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["--json", "list", "u1", "old"])

            assert result.exit_code == 0
            assert result.output.strip().startswith("[")
            assert "a.txt" in result.output


class TestCompareCommand:
    """Tests for the compare command."""

    def test_compare_reports_edit(self, runner):
        """Editing new/a.txt yields a single differs line."""
        with runner.isolated_filesystem():
            staged(runner)
            Path("u1/new/a.txt").write_text("y")

            result = invoke(runner, ["compare", "u1"])

            assert result.exit_code == 0
            assert result.output.strip() == "File a.txt differs between old and new."

    def test_compare_no_differences(self, runner):
        """Identical trees report nothing to do."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["compare", "u1"])

            assert "No differences between old and new." in result.output

    def test_compare_missing_workspace(self, runner):
        """Comparing a missing update directory fails."""
        with runner.isolated_filesystem():
            result = invoke(runner, ["compare", "u1"])

            assert result.exit_code == 1


class TestBackupCommands:
    """Tests for backup, backups and restore."""

    def test_backup_and_restore(self, runner):
        """A backup can be restored after edits."""
        with runner.isolated_filesystem():
            staged(runner)
            backup_result = invoke(runner, ["backup", "u1"])
            assert backup_result.exit_code == 0
            backup_dirs = [p for p in Path(".").iterdir() if "_backup_" in p.name]
            assert len(backup_dirs) == 1
            Path("u1/new/a.txt").write_text("edited")

            result = invoke(runner, ["restore", "u1", str(backup_dirs[0]), "--yes"])

            assert result.exit_code == 0
            assert "Restored u1 from backup" in result.output
            assert Path("u1/new/a.txt").read_text() == "x"

    def test_restore_declined(self, runner):
        """Answering no keeps the update directory."""
        with runner.isolated_filesystem():
            staged(runner)
            invoke(runner, ["backup", "u1"])
            backup_dir = next(p for p in Path(".").iterdir() if "_backup_" in p.name)
            Path("u1/new/a.txt").write_text("edited")

            result = invoke(runner, ["restore", "u1", str(backup_dir)], input="n\n")

            assert "Restore cancelled." in result.output
            assert Path("u1/new/a.txt").read_text() == "edited"

    def test_restore_missing_backup(self, runner):
        """A missing backup directory is reported."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["restore", "u1", "u1_backup_0", "--yes"])

            assert result.exit_code == 1
            assert "Backup directory u1_backup_0 does not exist." in result.output

    def test_backups_listing(self, runner):
        """backups lists existing backups."""
        with runner.isolated_filesystem():
            staged(runner)
            invoke(runner, ["backup", "u1"])

            result = invoke(runner, ["--json", "backups", "u1"])

            assert result.exit_code == 0
            assert "u1_backup_" in result.output

    @patch("pylega.mirror.workspace.Path.iterdir")
    def test_backups_unreadable(self, mock_iterdir, runner):
        """An unreadable parent directory is reported as an error."""
        mock_iterdir.side_effect = PermissionError("denied")
        with runner.isolated_filesystem():
            result = invoke(runner, ["backups", "u1"])

            assert result.exit_code == 1
            assert "Cannot list backups" in result.output

    def test_backups_none(self, runner):
        """No backups is not an error."""
        with runner.isolated_filesystem():
            result = invoke(runner, ["backups", "u1"])

            assert result.exit_code == 0
            assert "No backups found for u1." in result.output


class TestOpenCommand:
    """Tests for the open command."""

    @patch("pylega.editor.subprocess.run")
    def test_open_all(self, mock_run, runner):
        """Every file in new/ is opened."""
        mock_run.return_value = Mock(returncode=0, stderr="")
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["open", "u1"])

            assert result.exit_code == 0
            assert mock_run.call_count == 1
            assert "Opened 1 file(s)" in result.output

    def test_open_missing_new(self, runner):
        """A missing new/ directory is an error."""
        with runner.isolated_filesystem():
            result = invoke(runner, ["open", "u1"])

            assert result.exit_code == 1
            assert "The new directory does not exist in u1." in result.output


class TestPushCommand:
    """Tests for the push command."""

    @pytest.fixture
    def transport_class(self):
        """Patch the FTP transport used by push."""
        with patch("pylega.cli.FtpTransport") as mock_class:
            connection = Mock()
            mock_class.return_value.connect.return_value = connection
            yield mock_class

    def test_push_declined(self, runner, transport_class):
        """Answering no cancels without connecting."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["push", "u1", "new"], input="n\n", env=FTP_ENV)

            assert result.exit_code == 0
            assert "Files to be uploaded:" in result.output
            assert "-> /www/a.txt" in result.output
            assert "Do you want to proceed?" in result.output
            assert "Operation cancelled." in result.output
            transport_class.return_value.connect.assert_not_called()

    def test_push_confirmed(self, runner, transport_class):
        """Answering yes uploads every file."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(
                runner,
                ["push", "u1", "new", "--no-progress"],
                input="y\n",
                env=FTP_ENV,
            )

            assert result.exit_code == 0
            assert "Upload completed successfully (1 file(s))." in result.output
            connection = transport_class.return_value.connect.return_value
            local_path, remote_path = connection.upload.call_args.args
            assert remote_path == "/www/a.txt"
            assert local_path.name == "a.txt"
            connection.close.assert_called_once()

    def test_push_yes_skips_prompt(self, runner, transport_class):
        """--yes uploads without asking."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["push", "u1", "old", "--yes"], env=FTP_ENV)

            assert result.exit_code == 0
            assert "Do you want to proceed?" not in result.output
            connection = transport_class.return_value.connect.return_value
            connection.upload.assert_called_once()

    def test_push_options_override_environment(self, runner, transport_class):
        """Command-line options win over environment variables."""
        with runner.isolated_filesystem():
            staged(runner)

            invoke(
                runner,
                ["push", "u1", "new", "--yes", "--remote-dir", "/site", "--tls"],
                env=FTP_ENV,
            )

            config = transport_class.return_value.connect.call_args.args[0]
            assert config.remote_dir == "/site"
            assert config.use_tls is True
            connection = transport_class.return_value.connect.return_value
            assert connection.upload.call_args.args[1] == "/site/a.txt"

    def test_push_missing_credentials(self, runner, transport_class):
        """Missing FTP settings stop the push before any prompt."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["push", "u1", "new"], env=NO_FTP_ENV)

            assert result.exit_code == 1
            assert "FTP credentials are not set" in result.output
            transport_class.return_value.connect.assert_not_called()

    def test_push_upload_failure(self, runner, transport_class):
        """A failing upload exits with status 1."""
        connection = transport_class.return_value.connect.return_value
        connection.upload.side_effect = LegaTransferError(
            "553 Not allowed", "a.txt", "/www/a.txt"
        )
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["push", "u1", "new", "--yes"], env=FTP_ENV)

            assert result.exit_code == 1
            assert "Error during upload: 553 Not allowed" in result.output

    def test_push_connection_failure(self, runner, transport_class):
        """A failing connection exits with status 1."""
        transport_class.return_value.connect.side_effect = LegaConnectionError(
            "connection refused", host="ftp.example.com"
        )
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["push", "u1", "new", "--yes"], env=FTP_ENV)

            assert result.exit_code == 1
            assert "connection refused" in result.output

    def test_push_empty_version(self, runner, transport_class):
        """An empty tree completes without a prompt."""
        with runner.isolated_filesystem():
            invoke(runner, ["create", "u1"])

            result = invoke(runner, ["push", "u1", "new"], env=FTP_ENV)

            assert result.exit_code == 0
            assert "No files found in the new directory." in result.output
            transport_class.return_value.connect.assert_not_called()

    def test_push_json(self, runner, transport_class):
        """--json prints the transfer report."""
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(
                runner, ["--json", "push", "u1", "new", "--yes"], env=FTP_ENV
            )

            assert result.exit_code == 0
            assert '"state": "completed"' in result.output

    @patch("pylega.cli.click.confirm")
    def test_push_json_prompt_uses_stderr(self, mock_confirm, runner, transport_class):
        """The confirmation prompt never mixes into JSON output."""
        mock_confirm.return_value = False
        with runner.isolated_filesystem():
            staged(runner)

            result = invoke(runner, ["--json", "push", "u1", "new"], env=FTP_ENV)

            assert result.exit_code == 0
            assert mock_confirm.call_args.kwargs["err"] is True
            assert json.loads(result.output)["state"] == "cancelled"
