"""CLI interface for managing update directories."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .cli_progress import TransferProgressDisplay
from .config import EditorConfig, TransferConfig, load_env_file
from .editor import EditorNotifier
from .exceptions import LegaError
from .mirror import (
    FtpTransport,
    SessionState,
    TransferPlanner,
    TransferSession,
    UpdateWorkspace,
)
from .output import OutputFormatter
from .utils import DEFAULT_FTP_PORT, DEFAULT_FTP_TIMEOUT, format_millis

logger = logging.getLogger(__name__)

VERSION_CHOICE = click.Choice(["old", "new"])


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Load environment variables from this file (default: nearest .env)",
)
@click.version_option(package_name="pylega")
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    env_file: Optional[Path],
) -> None:
    """Lega - stage, compare, back up and push update directories.

    An update directory holds two mirrored trees: old/ (what is deployed)
    and new/ (what you edited). Push uploads one of them to an FTP server.
    """
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pylega").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    # Must run before subcommands resolve their envvar-backed options
    load_env_file(env_file)


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.option(
    "--structure-from",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Replicate the directory skeleton of this tree into old/ and new/",
)
@click.pass_context
def create(ctx: Any, update_dir: Path, structure_from: Optional[Path]) -> None:
    """Create an update directory with old and new folders.

    UPDATE_DIR: Update directory to create (existing ones are kept)
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        workspace = UpdateWorkspace(update_dir)
        workspace.create(structure_from=structure_from)
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"Update directory {update_dir} created successfully.")


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--no-edit", is_flag=True, help="Do not open the new copy in the editor")
@click.pass_context
def add(ctx: Any, update_dir: Path, path: Path, no_edit: bool) -> None:
    """Add a file to the update directory.

    UPDATE_DIR: Update directory

    PATH: File or directory to stage, relative to the current directory.
    It is copied into both old/ and new/ and the new copy is opened in the
    editor (set LEGA_EDITOR to change the command, default "code --add").
    """
    out: OutputFormatter = ctx.obj["out"]

    notifier = None if no_edit else EditorNotifier(EditorConfig.from_environ())

    try:
        workspace = UpdateWorkspace(update_dir, notify=notifier)
        _, dest_new = workspace.add(path)
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"File {path} added to update directory {update_dir}.")
    if not no_edit:
        out.info(f"Opened {dest_new} for editing.")


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.argument("relative_path", type=str)
@click.pass_context
def remove(ctx: Any, update_dir: Path, relative_path: str) -> None:
    """Remove a file from the update directory.

    UPDATE_DIR: Update directory

    RELATIVE_PATH: Path inside old/ and new/ to remove from both
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        results = UpdateWorkspace(update_dir).remove(relative_path)
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            [
                {"version": r.version.value, "path": str(r.path), "removed": r.removed}
                for r in results
            ]
        )
        return

    for result in results:
        if result.removed:
            out.success(f"Removed {result.path}")
        else:
            out.info(f"{result.path} does not exist.")


@main.command(name="list")
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.argument("version", type=VERSION_CHOICE)
@click.pass_context
def list_files(ctx: Any, update_dir: Path, version: str) -> None:
    """List all files in the specified version (old or new) directory.

    UPDATE_DIR: Update directory

    VERSION: old or new
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        files = UpdateWorkspace(update_dir).list_files(version)
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json([str(f) for f in files])
        return

    if not files:
        out.info(f"No files found in the {version} directory.")
        return

    out.info(f"Files in the {version} directory:")
    for file_path in files:
        out.print(str(file_path))


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.pass_context
def compare(ctx: Any, update_dir: Path) -> None:
    """Compare files between old and new directories.

    UPDATE_DIR: Update directory

    Reports files that are missing on one side or whose content differs.
    Identical files are not listed.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        entries = UpdateWorkspace(update_dir).compare()
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json([entry.to_dict() for entry in entries])
        return

    if not entries:
        out.success("No differences between old and new.")
        return

    for entry in entries:
        out.print(entry.describe())


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.pass_context
def backup(ctx: Any, update_dir: Path) -> None:
    """Backup the update directory.

    UPDATE_DIR: Update directory

    The copy is written next to it as UPDATE_DIR_backup_<epoch millis>.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        backup_dir = UpdateWorkspace(update_dir).backup()
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"backup": str(backup_dir)})
    else:
        out.success(f"Backup created at {backup_dir}")


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.pass_context
def backups(ctx: Any, update_dir: Path) -> None:
    """List backups of the update directory, newest first.

    UPDATE_DIR: Update directory
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        infos = UpdateWorkspace(update_dir).list_backups()
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    rows = [
        {
            "path": str(info.path),
            "created": format_millis(info.created_millis),
            "millis": info.created_millis,
        }
        for info in infos
    ]

    if out.json_output:
        out.output_json(rows)
        return

    if not rows:
        out.info(f"No backups found for {update_dir}.")
        return

    out.output_table(rows, ["created", "path"], {"created": "Created", "path": "Path"})


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.argument("backup_dir", type=click.Path(path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def restore(ctx: Any, update_dir: Path, backup_dir: Path, yes: bool) -> None:
    """Restore the update directory from a backup.

    UPDATE_DIR: Update directory to replace

    BACKUP_DIR: Backup directory created by 'lega backup'
    """
    out: OutputFormatter = ctx.obj["out"]

    if not backup_dir.is_dir():
        out.error(f"Backup directory {backup_dir} does not exist.")
        ctx.exit(1)

    if (
        not yes
        and not out.quiet
        and not click.confirm(
            f"Replace {update_dir} with the contents of {backup_dir}?",
            default=False,
        )
    ):
        out.warning("Restore cancelled.")
        return

    try:
        UpdateWorkspace(update_dir).restore(backup_dir)
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"Restored {update_dir} from backup {backup_dir}")


@main.command(name="open")
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.pass_context
def open_files(ctx: Any, update_dir: Path) -> None:
    """Open all files in the new/ directory in the editor.

    UPDATE_DIR: Update directory
    """
    out: OutputFormatter = ctx.obj["out"]

    notifier = EditorNotifier(EditorConfig.from_environ())
    workspace = UpdateWorkspace(update_dir, notify=notifier)

    if not workspace.new_dir.is_dir():
        out.error(f"The new directory does not exist in {update_dir}.")
        ctx.exit(1)

    try:
        count = workspace.open_all()
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    out.info(f"Opened {count} file(s) from {workspace.new_dir}.")


@main.command()
@click.argument("update_dir", type=click.Path(path_type=Path))
@click.argument("version", type=VERSION_CHOICE)
@click.option("--host", envvar="FTP_HOST", help="FTP host [env: FTP_HOST]")
@click.option("--user", envvar="FTP_USER", help="FTP user [env: FTP_USER]")
@click.option(
    "--password", envvar="FTP_PASSWORD", help="FTP password [env: FTP_PASSWORD]"
)
@click.option(
    "--remote-dir",
    envvar="FTP_REMOTE_DIR",
    help="Remote base directory [env: FTP_REMOTE_DIR]",
)
@click.option(
    "--port",
    envvar="FTP_PORT",
    type=int,
    default=DEFAULT_FTP_PORT,
    show_default=True,
    help="FTP port [env: FTP_PORT]",
)
@click.option(
    "--timeout",
    envvar="FTP_TIMEOUT",
    type=float,
    default=DEFAULT_FTP_TIMEOUT,
    show_default=True,
    help="Connection timeout in seconds [env: FTP_TIMEOUT]",
)
@click.option(
    "--passive/--active",
    envvar="FTP_PASSIVE",
    default=True,
    show_default=True,
    help="Data connection mode [env: FTP_PASSIVE]",
)
@click.option(
    "--tls/--no-tls",
    envvar="FTP_TLS",
    default=False,
    show_default=True,
    help="Use explicit FTPS [env: FTP_TLS]",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.option("--no-progress", is_flag=True, help="Disable progress bar")
@click.pass_context
def push(  # noqa: C901
    ctx: Any,
    update_dir: Path,
    version: str,
    host: Optional[str],
    user: Optional[str],
    password: Optional[str],
    remote_dir: Optional[str],
    port: int,
    timeout: float,
    passive: bool,
    tls: bool,
    yes: bool,
    no_progress: bool,
) -> None:
    """Load the specified version (old or new) to the FTP server.

    UPDATE_DIR: Update directory

    VERSION: old or new

    Every file of the version tree is uploaded to the remote directory at
    the same relative path, one after another, after confirmation. The
    first failing upload stops the push.

    Examples:
        lega push u1 new                      # settings from .env
        lega push u1 old --remote-dir /www -y # roll back without asking
    """
    out: OutputFormatter = ctx.obj["out"]

    config = TransferConfig(
        host=host,
        user=user,
        password=password,
        remote_dir=remote_dir,
        port=port,
        timeout=timeout,
        passive=passive,
        use_tls=tls,
    )

    try:
        config.validate()
        workspace = UpdateWorkspace(update_dir)
        plan = TransferPlanner().plan(
            workspace.version_dir(version), config.remote_dir or "/"
        )
    except LegaError as e:
        out.error(str(e))
        ctx.exit(1)

    if not out.json_output:
        out.info(f"Target: {config.describe()}")
        out.info("Files to be uploaded:")
        for item in plan:
            out.print(f"  {item.describe()}")
        out.print("")

    def confirm(prompt: str) -> bool:
        if yes:
            return True
        # stderr keeps stdout clean for --json
        return click.confirm(prompt, default=False, err=True)

    show_progress = not (no_progress or out.quiet or out.json_output)
    display = TransferProgressDisplay(console=out.console)

    try:
        with display:
            session = TransferSession(
                FtpTransport(),
                config,
                confirm,
                progress_callback=display.handle_event if show_progress else None,
            )
            report = session.run(plan)
    except KeyboardInterrupt:
        out.warning("\nPush cancelled by user")
        ctx.exit(130)
    except click.Abort:
        out.warning("\nPush cancelled by user")
        ctx.exit(1)

    if out.json_output:
        out.output_json(report.to_dict())
    elif report.state is SessionState.CANCELLED:
        out.warning("Operation cancelled.")
    elif report.state is SessionState.COMPLETED:
        if plan:
            out.success(
                f"Upload completed successfully ({len(report.uploaded)} file(s))."
            )
        else:
            out.info(f"No files found in the {version} directory.")
    else:
        out.error(f"Error during upload: {report.error}")
        if report.uploaded:
            out.info(f"Uploaded before the failure: {len(report.uploaded)} file(s)")
        if report.not_attempted:
            out.info(f"Not attempted: {len(report.not_attempted)} file(s)")

    if report.state is SessionState.FAILED:
        ctx.exit(1)


if __name__ == "__main__":
    main()
