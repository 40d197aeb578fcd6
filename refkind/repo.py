# repo.py -- For dealing with git repositories.
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

"""Repository access.

This module contains the base class for repositories, an on-disk
implementation and an in-memory one. Repositories pair an object store with
a refs container and hand out classified references.
"""

__all__ = [
    "BARE_REPOSITORY_DIRS",
    "CONTROLDIR",
    "OBJECTDIR",
    "REFSDIR",
    "BaseRepo",
    "MemoryRepo",
    "Repo",
    "UnsupportedExtension",
    "UnsupportedVersion",
    "read_gitfile",
]

import os
from collections.abc import Iterator
from types import TracebackType
from typing import BinaryIO, Optional, Union

from .config import Config, ConfigFile
from .errors import ClassificationError, NotGitRepository, RefFormatError
from .log_utils import getLogger
from .object_store import BaseObjectStore, DiskObjectStore, MemoryObjectStore
from .objects import ObjectFormat, ObjectID, ShaFile, get_object_format
from .references import Branch, Reference, TagReference, classify
from .refs import (
    HEADREF,
    LOCAL_BRANCH_PREFIX,
    LOCAL_REMOTE_PREFIX,
    LOCAL_TAG_PREFIX,
    SYMREF,
    DictRefsContainer,
    DiskRefsContainer,
    RefsContainer,
)

logger = getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"
REFSDIR_TAGS = "tags"
REFSDIR_HEADS = "heads"

BARE_REPOSITORY_DIRS = [
    OBJECTDIR,
    os.path.join(REFSDIR, REFSDIR_TAGS),
    os.path.join(REFSDIR, REFSDIR_HEADS),
    "branches",
    "hooks",
    "info",
]

DEFAULT_BRANCH = b"master"

AnyReference = Union[Reference, Branch, TagReference]


class UnsupportedVersion(Exception):
    """Unsupported repository version."""

    def __init__(self, version: int) -> None:
        """Initialize UnsupportedVersion exception.

        Args:
            version: The unsupported repository version
        """
        self.version = version
        super().__init__(f"unsupported repository format version {version}")


class UnsupportedExtension(Exception):
    """Unsupported repository extension."""

    def __init__(self, extension: str) -> None:
        """Initialize UnsupportedExtension exception.

        Args:
            extension: The unsupported repository extension
        """
        self.extension = extension
        super().__init__(f"unsupported repository extension {extension}")


def read_gitfile(f: BinaryIO) -> str:
    """Read a ``.git`` file.

    The first line of the file should start with "gitdir: "

    Args:
      f: File-like object to read from
    Returns: A path
    """
    cs = f.read()
    if not cs.startswith(b"gitdir: "):
        raise ValueError("Expected file to start with 'gitdir: '")
    return os.fsdecode(cs[len(b"gitdir: ") :].rstrip(b"\r\n"))


class BaseRepo:
    """Base class for a git repository.

    Attributes:
      object_store: Dictionary-like object for accessing
        the objects
      refs: Dictionary-like object with the refs in this
        repository
    """

    def __init__(self, object_store: BaseObjectStore, refs: RefsContainer) -> None:
        """Open a repository.

        This shouldn't be called directly, but rather through one of the
        base classes, such as MemoryRepo or Repo.

        Args:
          object_store: Object store to use
          refs: Refs container to use
        """
        self.object_store = object_store
        self.refs = refs
        if refs.object_store is None:
            refs.object_store = object_store

    @property
    def object_format(self) -> ObjectFormat:
        return self.object_store.object_format

    def get_config(self) -> Config:
        """Retrieve the config object."""
        raise NotImplementedError(self.get_config)

    def get_object(self, sha: ObjectID) -> ShaFile:
        """Retrieve the object with the specified SHA.

        Args:
          sha: SHA to retrieve
        Returns: A ShaFile object
        Raises:
          KeyError: when the object can not be found
        """
        return self.object_store[sha]

    def __getitem__(self, name: bytes) -> ShaFile:
        """Retrieve a Git object by SHA1 or ref.

        Args:
          name: A Git object SHA1 or a ref name
        Returns: A `ShaFile` object, such as a Commit or Blob
        Raises:
          KeyError: when the specified ref or object does not exist
        """
        if not isinstance(name, bytes):
            raise TypeError(f"'name' must be bytestring, not {type(name).__name__:.80}")
        if len(name) == self.object_format.hex_length:
            try:
                return self.object_store[name]
            except KeyError:
                pass
        return self.object_store[self.refs[name]]

    def __contains__(self, name: bytes) -> bool:
        """Check if a specific Git object or ref is present."""
        if len(name) == self.object_format.hex_length and name in self.object_store:
            return True
        return name in self.refs

    def get_refs(self) -> dict[bytes, ObjectID]:
        """Get dictionary with all refs.

        Returns: A ``dict`` mapping ref names to object ids
        """
        return self.refs.as_dict()

    def reference(self, name: bytes) -> AnyReference:
        """Look up and classify a single reference.

        Args:
          name: Full name of the reference, e.g. b"refs/heads/main"
        Raises:
          KeyError: if the reference does not exist
          ClassificationError: if the reference could not be classified
        """
        with self.refs.get_raw_ref(name) as raw:
            return classify(raw)

    def references(
        self, prefix: Optional[bytes] = None, skip_invalid: bool = False
    ) -> Iterator[AnyReference]:
        """Iterate over classified references, sorted by name.

        Args:
          prefix: Only include references under this prefix
          skip_invalid: Log and skip references that fail to classify instead
            of raising
        """
        for name in self.refs.sorted_names(prefix):
            try:
                with self.refs.get_raw_ref(name) as raw:
                    ref = classify(raw)
            except KeyError:
                # Disappeared since listing
                continue
            except (ClassificationError, RefFormatError) as e:
                if not skip_invalid:
                    raise
                logger.warning("skipping reference %s: %s", name.decode("utf-8", "replace"), e)
                continue
            yield ref

    def _branches(self, prefix: bytes) -> list[Branch]:
        ret = []
        for ref in self.references(prefix, skip_invalid=True):
            assert isinstance(ref, Branch)
            ret.append(ref)
        return ret

    def local_branches(self) -> list[Branch]:
        """Return all local branches."""
        return self._branches(LOCAL_BRANCH_PREFIX)

    def remote_branches(self) -> list[Branch]:
        """Return all remote-tracking branches."""
        return self._branches(LOCAL_REMOTE_PREFIX)

    def local_branch(self, name: bytes) -> Branch:
        """Return a local branch by short name.

        Raises:
          KeyError: if there is no such branch
        """
        ref = self.reference(LOCAL_BRANCH_PREFIX + name)
        assert isinstance(ref, Branch)
        return ref

    def remote_branch(self, name: bytes) -> Branch:
        """Return a remote-tracking branch by short name, e.g. b"origin/main".

        Raises:
          KeyError: if there is no such branch
        """
        ref = self.reference(LOCAL_REMOTE_PREFIX + name)
        assert isinstance(ref, Branch)
        return ref

    def tags(self) -> list[TagReference]:
        """Return all tags, annotated and lightweight."""
        ret = []
        for ref in self.references(LOCAL_TAG_PREFIX, skip_invalid=True):
            assert isinstance(ref, TagReference)
            ret.append(ref)
        return ret

    def tag(self, name: bytes) -> TagReference:
        """Return a tag by name.

        Raises:
          KeyError: if there is no such tag
        """
        ref = self.reference(LOCAL_TAG_PREFIX + name)
        assert isinstance(ref, TagReference)
        return ref

    def head(self) -> AnyReference:
        """Return the reference HEAD points at.

        For an attached HEAD this is normally a :class:`Branch`; a detached
        HEAD is returned as a generic :class:`Reference`.

        Raises:
          KeyError: if there is no HEAD
          DanglingSymbolicReference: if HEAD points at a branch that does
            not exist yet
        """
        with self.refs.get_raw_ref(HEADREF) as raw:
            if not raw.is_symbolic:
                return classify(raw)
            with self.refs.resolve(raw) as resolved:
                return classify(resolved)

    def close(self) -> None:
        """Close any files opened by this repository."""
        self.object_store.close()
        if self.refs.open_handle_count():
            logger.warning(
                "%r closed with %d reference handle(s) still open",
                self,
                self.refs.open_handle_count(),
            )

    def __enter__(self) -> "BaseRepo":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()


class Repo(BaseRepo):
    """A git repository backed by local disk.

    To open an existing repository, call the constructor with
    the path of the repository.

    To create a new repository, use the Repo.init_bare class method.

    Attributes:
      path: Path to the working copy (if it exists) or repository control
        directory (if the repository is bare)
      bare: Whether this is a bare repository
    """

    path: str
    bare: bool
    object_store: DiskObjectStore

    def __init__(
        self,
        root: Union[str, bytes, "os.PathLike[str]"],
        bare: Optional[bool] = None,
    ) -> None:
        """Open a repository on disk.

        Args:
          root: Path to the repository's root.
          bare: True if this is a bare repository. If not given it is worked
            out from the directory layout and ``core.bare``.
        Raises:
          NotGitRepository: if no repository exists at ``root``
          UnsupportedVersion: if the repository format version is not 0 or 1
          UnsupportedExtension: if the repository requires an unknown extension
        """
        root = os.fspath(root)
        if isinstance(root, bytes):
            root = os.fsdecode(root)
        hidden_path = os.path.join(root, CONTROLDIR)
        detected = bare is None
        if bare is None:
            if os.path.isfile(hidden_path) or os.path.isdir(
                os.path.join(hidden_path, OBJECTDIR)
            ):
                bare = False
            elif os.path.isdir(os.path.join(root, OBJECTDIR)) and os.path.isdir(
                os.path.join(root, REFSDIR)
            ):
                bare = True
            else:
                raise NotGitRepository(f"No git repository was found at {root}")

        self.bare = bare
        if bare is False:
            if os.path.isfile(hidden_path):
                with open(hidden_path, "rb") as f:
                    path = read_gitfile(f)
                self._controldir = os.path.join(root, path)
            else:
                self._controldir = hidden_path
        else:
            self._controldir = root
        self.path = root

        config = self.get_config()
        try:
            format_version = int(config.get("core", "repositoryformatversion"))
        except KeyError:
            format_version = 0

        if format_version not in (0, 1):
            raise UnsupportedVersion(format_version)

        if detected and bare and config.get_boolean((b"core",), b"bare") is False:
            # A control directory opened directly; the work tree is its parent.
            self.bare = False
            self.path = os.path.dirname(os.path.abspath(root))

        for extension, value in config.items((b"extensions",)):
            if extension.lower() != b"objectformat":
                raise UnsupportedExtension(extension.decode("utf-8"))

        object_store = DiskObjectStore.from_config(
            os.path.join(self._controldir, OBJECTDIR), config
        )
        refs = DiskRefsContainer(self._controldir, object_store=object_store)
        BaseRepo.__init__(self, object_store, refs)
        logger.debug("opened repository at %s (bare=%s)", self.path, self.bare)

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def get_named_file(self, path: str) -> Optional[BinaryIO]:
        """Get a file from the control dir with a specific name.

        Args:
          path: The path to the file, relative to the control dir.
        Returns: An open file object, or None if the file does not exist.
        """
        try:
            return open(os.path.join(self.controldir(), path.lstrip("/")), "rb")
        except FileNotFoundError:
            return None

    def get_config(self) -> ConfigFile:
        """Retrieve the config object.

        Returns: `ConfigFile` object for the ``.git/config`` file.
        """
        path = os.path.join(self._controldir, "config")
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    def __repr__(self) -> str:
        return f"<Repo at {self.path!r}>"

    @classmethod
    def init_bare(
        cls,
        path: Union[str, bytes, "os.PathLike[str]"],
        *,
        mkdir: bool = False,
        default_branch: Optional[bytes] = None,
        object_format: Optional[str] = None,
    ) -> "Repo":
        """Create a new bare repository.

        ``path`` should already exist and be an empty directory.

        Args:
          path: Path to create bare repository in
          mkdir: Whether to create the directory
          default_branch: Branch HEAD points at, ``master`` if not given
          object_format: Object format to use ("sha1" or "sha256")
        Returns: a `Repo` instance
        """
        path = os.fspath(path)
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if mkdir:
            os.mkdir(path)
        fmt = get_object_format(object_format)
        for d in BARE_REPOSITORY_DIRS:
            os.makedirs(os.path.join(path, d), exist_ok=True)
        DiskObjectStore.init(os.path.join(path, OBJECTDIR), object_format=fmt)
        with open(os.path.join(path, os.fsdecode(HEADREF)), "wb") as f:
            f.write(SYMREF + LOCAL_BRANCH_PREFIX + (default_branch or DEFAULT_BRANCH) + b"\n")
        lines = [
            b"[core]",
            b"\trepositoryformatversion = %d" % (0 if object_format is None else 1),
            b"\tfilemode = true",
            b"\tbare = true",
        ]
        if object_format is not None:
            lines += [b"[extensions]", b"\tobjectformat = " + fmt.name.encode("ascii")]
        with open(os.path.join(path, "config"), "wb") as f:
            f.write(b"\n".join(lines) + b"\n")
        logger.debug("initialized bare repository at %s", path)
        return cls(path, bare=True)

    create = init_bare


class MemoryRepo(BaseRepo):
    """Repo that stores refs and objects in memory.

    MemoryRepos are always bare.
    """

    def __init__(self, refs: Optional[dict[bytes, bytes]] = None) -> None:
        """Create a new repository in memory.

        Args:
          refs: Initial reference contents, hex ids or ``ref: <name>`` values
        """
        object_store = MemoryObjectStore()
        BaseRepo.__init__(
            self, object_store, DictRefsContainer(refs or {}, object_store=object_store)
        )
        self.bare = True
        self._config = ConfigFile()
        self._config.set((b"core",), b"bare", True)

    def get_config(self) -> ConfigFile:
        """Retrieve the config object."""
        return self._config

    @classmethod
    def init_bare(
        cls, objects: list[ShaFile], refs: dict[bytes, bytes]
    ) -> "MemoryRepo":
        """Create a new bare repository in memory.

        Args:
          objects: Objects for the new repository
          refs: Refs as dictionary, mapping names to object ids or symref values
        """
        ret = cls(refs)
        ret.object_store.add_objects(objects)
        return ret
