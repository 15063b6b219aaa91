"""Command-line interface for gitfixture.

This module provides the CLI entry point for running fixture-setup steps by
hand or from a harness script. Credentials and defaults come from
GITFIXTURE_* environment variables (see gitfixture.config); the commands
take the repository URL, branch and files.
"""
import argparse
import logging
import os
import shutil
import sys
import uuid
from datetime import datetime
from pathlib import Path

from gitfixture.bootstrap import bootstrap_command
from gitfixture.config import load_config
from gitfixture.fixture import commit_and_push_all, create_tag_and_push, get_repository
from gitfixture.git.errors import GitFixtureError

logger = logging.getLogger("gitfixture.cli")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def parse_file_pairs(pairs: list[str]) -> dict[str, bytes]:
    """Parse ``DEST=SRC`` pairs into a FileSet.

    DEST is the path inside the repository, SRC a local file whose content is
    committed there.

    Args:
        pairs: List of strings in "dest=src" format.

    Returns:
        dict[str, bytes]: Repository path to file content.

    Raises:
        SystemExit: If a pair is malformed or a source file cannot be read.
    """
    files = {}
    for pair in pairs:
        if "=" not in pair:
            print(f"Error: invalid --file value (expected dest=src): {pair}", file=sys.stderr)
            sys.exit(1)
        dest, src = pair.split("=", 1)
        try:
            files[dest] = Path(src).read_bytes()
        except OSError as e:
            print(f"Error: cannot read {src}: {e.strerror}", file=sys.stderr)
            sys.exit(1)
    return files


def configure_logging(verbose: bool = False, log_dir: str | None = None) -> str | None:
    """Configure the gitfixture loggers.

    Logs go to stderr at INFO (DEBUG with verbose). With log_dir, every record
    is also written to ``{YYYYMMDDhhmmss}-{id}.log`` in that directory.

    Returns:
        str | None: The log file path, if one was created.
    """
    root = logging.getLogger("gitfixture")
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stream_handler)

    log_path = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        log_path = os.path.join(log_dir, f"{timestamp}-{uuid.uuid4().hex[:8]}.log")
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
    return log_path


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(prog="gitfixture")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--log-dir", default=None)
    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync")
    sync_parser.add_argument("--url", required=True)
    sync_parser.add_argument("--branch", required=True)
    sync_parser.add_argument("--file", action="append", default=[])
    sync_parser.add_argument("--message", default=None)
    sync_parser.add_argument("--workdir", default=None)
    sync_parser.add_argument("--keep", action="store_true")

    tag_parser = subparsers.add_parser("tag")
    tag_parser.add_argument("--url", required=True)
    tag_parser.add_argument("--branch", required=True)
    tag_parser.add_argument("--tag", required=True)
    tag_parser.add_argument("--workdir", default=None)
    tag_parser.add_argument("--keep", action="store_true")

    bootstrap_parser = subparsers.add_parser("bootstrap-command")
    bootstrap_parser.add_argument("--url", required=True)
    bootstrap_parser.add_argument("--kubeconfig", required=True)
    bootstrap_parser.add_argument("--path", default="clusters/e2e")

    receiver_parser = subparsers.add_parser("receiver")
    receiver_parser.add_argument("--host", default="127.0.0.1")
    receiver_parser.add_argument("--port", type=int, default=9292)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the gitfixture CLI.

    Commands:
        sync: Clone --url, land on --branch, commit the --file DEST=SRC pairs
            (repeatable) and push. Prints "committed <sha>" or "nothing to commit".
        tag: Clone --url at --branch and recreate --tag at the branch tip.
        bootstrap-command: Print the bootstrap command for --url and --kubeconfig.
        receiver: Serve the notification receiver with uvicorn.

    Working copies are removed afterwards unless --keep is given.

    Raises:
        SystemExit: Exit code 0 for success, 1 for errors.

    Examples:
        gitfixture sync --url https://example.com/fleet.git --branch e2e --file a.txt=./a.txt
        gitfixture tag --url https://example.com/app.git --branch feature/branch --tag v1
        gitfixture receiver --port 9292
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    log_path = configure_logging(args.verbose, args.log_dir)
    logger.debug(f"CLI args parsed: command={args.command}, log_file={log_path}")

    if args.command == "receiver":
        import uvicorn

        uvicorn.run("gitfixture.server:app", host=args.host, port=args.port)
        return

    try:
        config = load_config()
        auth = config.auth()
        if args.command == "bootstrap-command":
            print(" ".join(bootstrap_command(args.url, auth, args.kubeconfig, path=args.path)))
            return

        files = parse_file_pairs(args.file) if args.command == "sync" else {}
        try:
            repo = get_repository(
                args.url,
                args.branch,
                auth,
                base_dir=args.workdir or config.workdir,
                timeout=config.timeout,
            )
            try:
                if args.command == "sync":
                    kwargs = {"message": args.message} if args.message else {}
                    result = commit_and_push_all(repo, files, args.branch, author=config.signature(), **kwargs)
                    print(f"committed {result.record.sha}" if result.committed else "nothing to commit")
                elif args.command == "tag":
                    tag = create_tag_and_push(repo, args.branch, args.tag, config.signature())
                    print(f"{tag.name} {tag.target}")
            finally:
                if args.keep:
                    print(f"working copy kept at {repo.path}", file=sys.stderr)
                else:
                    shutil.rmtree(repo.path, ignore_errors=True)
        finally:
            auth.cleanup()
    except GitFixtureError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
