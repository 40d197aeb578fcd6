#!/usr/bin/env python3
#
# refkind - Classify and resolve git references
# Copyright (C) 2026 The refkind authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# refkind is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Simple command-line interface to refkind.

Lists and resolves the references of the repository in the current
directory, showing how each one is classified.
"""

__all__ = [
    "Command",
    "cmd_branch",
    "cmd_help",
    "cmd_rev_parse",
    "cmd_show_ref",
    "cmd_tag",
    "commands",
    "main",
]

import argparse
import logging
import signal
import sys
import types
from collections.abc import Sequence
from typing import Optional, Union

from .errors import (
    ClassificationError,
    FileFormatException,
    NotGitRepository,
    RefFormatError,
)
from .log_utils import _configure_logging_from_trace, getLogger
from .object_store import peel_sha
from .references import Branch, Reference, TagReference
from .refs import (
    HEADREF,
    LOCAL_BRANCH_PREFIX,
    LOCAL_REMOTE_PREFIX,
    LOCAL_TAG_PREFIX,
    is_pseudoref_name,
)
from .repo import Repo

logger = getLogger(__name__)


def signal_int(signal: int, frame: Optional[types.FrameType]) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


def kind_of(ref: object) -> str:
    """Return a short label for the kind of a classified reference."""
    if isinstance(ref, Branch):
        return "remote" if ref.is_remote else "branch"
    elif isinstance(ref, TagReference):
        return "annotated" if ref.is_annotated else "tag"
    elif isinstance(ref, Reference) and ref.is_note:
        return "note"
    else:
        return "ref"


class Command:
    """A refkind subcommand."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_show_ref(Command):
    """List references with their kind."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the show-ref command.

        Args:
            args: Command line arguments
        Returns:
            Exit code (0 for success, 1 for error or no matches)
        """
        parser = argparse.ArgumentParser(prog="refkind show-ref")
        parser.add_argument(
            "--head",
            action="store_true",
            help="Show the HEAD reference",
        )
        parser.add_argument(
            "--branches",
            action="store_true",
            help="Limit to local branches",
        )
        parser.add_argument(
            "--tags",
            action="store_true",
            help="Limit to local tags",
        )
        parser.add_argument(
            "-d",
            "--dereference",
            action="store_true",
            help="Dereference tags into object IDs",
        )
        parser.add_argument(
            "--skip-invalid",
            action="store_true",
            help="Warn about and skip references that cannot be classified",
        )
        parsed_args = parser.parse_args(args)

        prefixes: list[bytes] = []
        if parsed_args.branches:
            prefixes.append(LOCAL_BRANCH_PREFIX)
        if parsed_args.tags:
            prefixes.append(LOCAL_TAG_PREFIX)
        if not prefixes:
            prefixes.append(b"refs/")

        try:
            with Repo(".") as repo:
                refs: list[object] = []
                if parsed_args.head:
                    try:
                        refs.append(repo.reference(HEADREF))
                    except KeyError:
                        pass
                for prefix in prefixes:
                    refs.extend(
                        repo.references(prefix, skip_invalid=parsed_args.skip_invalid)
                    )
                lines = []
                for ref in refs:
                    assert isinstance(ref, (Reference, Branch, TagReference))
                    lines.append(self._format(ref))
                    if (
                        parsed_args.dereference
                        and isinstance(ref, TagReference)
                        and ref.is_annotated
                    ):
                        try:
                            _, peeled = peel_sha(repo.object_store, ref.oid)
                        except KeyError:
                            continue
                        lines.append(
                            f"{peeled.id.decode()} peeled\t{ref.long_name.decode()}^{{}}"
                        )
        except (
            NotGitRepository,
            OSError,
            FileFormatException,
            ClassificationError,
            RefFormatError,
        ) as e:
            logger.error("Error: %s", e)
            return 1

        if not lines:
            return 1
        for line in lines:
            logger.info("%s", line)
        return 0

    def _format(self, ref: Union[Reference, Branch, TagReference]) -> str:
        if ref.oid is None:
            assert isinstance(ref, Reference) and ref.symbolic_target is not None
            oid = "ref: " + ref.symbolic_target.decode()
        else:
            oid = ref.oid.decode()
        return f"{oid} {kind_of(ref)}\t{ref.long_name.decode()}"


class cmd_branch(Command):
    """List branches."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the branch command.

        Args:
            args: Command line arguments
        Returns:
            Exit code
        """
        parser = argparse.ArgumentParser(prog="refkind branch")
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            "-r", "--remotes", action="store_true", help="List remote-tracking branches"
        )
        group.add_argument(
            "-a", "--all", action="store_true", help="List local and remote branches"
        )
        parsed_args = parser.parse_args(args)

        try:
            with Repo(".") as repo:
                branches: list[Branch] = []
                if not parsed_args.remotes:
                    branches.extend(repo.local_branches())
                if parsed_args.remotes or parsed_args.all:
                    branches.extend(repo.remote_branches())
                try:
                    current = repo.head()
                except (KeyError, ClassificationError):
                    current = None
        except (NotGitRepository, OSError, FileFormatException) as e:
            logger.error("Error: %s", e)
            return 1

        for branch in branches:
            marker = "*" if branch.is_local and branch == current else " "
            name = branch.name.decode()
            if branch.is_remote and parsed_args.all:
                name = "remotes/" + name
            logger.info("%s %s", marker, name)
        return 0


class cmd_tag(Command):
    """List tags."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the tag command.

        Args:
            args: Command line arguments
        Returns:
            Exit code
        """
        parser = argparse.ArgumentParser(prog="refkind tag")
        parser.add_argument(
            "-n",
            dest="show_kind",
            action="store_true",
            help="Show whether each tag is annotated or lightweight",
        )
        parsed_args = parser.parse_args(args)

        try:
            with Repo(".") as repo:
                tags = repo.tags()
        except (NotGitRepository, OSError, FileFormatException) as e:
            logger.error("Error: %s", e)
            return 1

        for tag in tags:
            if parsed_args.show_kind:
                kind = "annotated" if tag.is_annotated else "lightweight"
                logger.info("%-20s %s", tag.name.decode(), kind)
            else:
                logger.info("%s", tag.name.decode())
        return 0


class cmd_rev_parse(Command):
    """Resolve a reference to an object id."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the rev-parse command.

        Args:
            args: Command line arguments
        Returns:
            Exit code
        """
        parser = argparse.ArgumentParser(prog="refkind rev-parse")
        parser.add_argument("name", help="Reference name, full or short")
        parsed_args = parser.parse_args(args)
        name = parsed_args.name.encode("utf-8")

        try:
            with Repo(".") as repo:
                if name == HEADREF:
                    ref = repo.head()
                else:
                    ref = None
                    prefixes = [
                        b"refs/",
                        LOCAL_TAG_PREFIX,
                        LOCAL_BRANCH_PREFIX,
                        LOCAL_REMOTE_PREFIX,
                    ]
                    # Only full names and FETCH_HEAD-style names are looked
                    # up as given; anything else would name a file in the
                    # repository directory.
                    if is_pseudoref_name(name) or name.startswith(b"refs/"):
                        prefixes.insert(0, b"")
                    for prefix in prefixes:
                        try:
                            ref = repo.reference(prefix + name)
                        except KeyError:
                            continue
                        break
                    if ref is None:
                        logger.error(
                            "fatal: ambiguous argument '%s': unknown revision",
                            parsed_args.name,
                        )
                        return 128
        except (
            NotGitRepository,
            OSError,
            FileFormatException,
            ClassificationError,
            RefFormatError,
        ) as e:
            logger.error("Error: %s", e)
            return 1

        if ref.oid is None:
            logger.error("fatal: %s does not point at an object", parsed_args.name)
            return 128
        logger.info("%s", ref.oid.decode())
        return 0


class cmd_help(Command):
    """Display help information."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the help command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="refkind help")
        parser.add_argument(
            "-a",
            "--all",
            action="store_true",
            help="List all commands.",
        )
        parsed_args = parser.parse_args(args)

        if parsed_args.all:
            logger.info("Available commands:")
            for cmd in sorted(commands):
                logger.info("  %s", cmd)
        else:
            logger.info(
                "The refkind command line tool lists the references of a repository\n"
                "and shows how each one is classified.\n"
                "\n"
                "For a list of supported commands, see 'refkind help -a'."
            )
        return 0


commands = {
    "branch": cmd_branch,
    "help": cmd_help,
    "rev-parse": cmd_rev_parse,
    "show-ref": cmd_show_ref,
    "tag": cmd_tag,
}


def main(argv: Optional[Sequence[str]] = None) -> Optional[int]:
    """Main entry point for the refkind CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="refkind",
        description="Simple command-line interface to refkind",
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show help")
    global_args, remaining = parser.parse_known_args(argv)

    if global_args.help or not remaining:
        parser = argparse.ArgumentParser(
            prog="refkind", description="Simple command-line interface to refkind"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
        )
        parser.print_help()
        return 1

    # Try to configure from GIT_TRACE, fall back to default if it fails
    if not _configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
        )

    cmd = remaining[0]
    cmd_args = remaining[1:]

    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logging.fatal("No such subcommand: %s", cmd)
        return 1
    return cmd_kls().run(cmd_args)


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
