# refs.py -- For dealing with git refs
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

"""Ref handling.

Refs containers hand out :class:`RawRef` handles: a snapshot of one
reference as stored, with its kind flags and its direct or symbolic target.
Only reading is supported.
"""

__all__ = [
    "HEADREF",
    "LOCAL_BRANCH_PREFIX",
    "LOCAL_NOTES_PREFIX",
    "LOCAL_REMOTE_PREFIX",
    "LOCAL_TAG_PREFIX",
    "SYMREF",
    "DanglingSymbolicReference",
    "DictRefsContainer",
    "DiskRefsContainer",
    "MalformedBranchName",
    "RawRef",
    "RefsContainer",
    "SymrefLoop",
    "check_ref_format",
    "is_pseudoref_name",
    "parse_remote_ref",
    "parse_symref_value",
    "shorten_ref_name",
]

import os
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Optional, Union

from ._handles import Handle, HandleOwner
from .errors import ClassificationError, RefFormatError
from .log_utils import getLogger
from .objects import ObjectID, valid_hexsha

if TYPE_CHECKING:
    from .object_store import BaseObjectStore

logger = getLogger(__name__)

Ref = bytes

HEADREF = b"HEAD"
SYMREF = b"ref: "
LOCAL_BRANCH_PREFIX = b"refs/heads/"
LOCAL_TAG_PREFIX = b"refs/tags/"
LOCAL_REMOTE_PREFIX = b"refs/remotes/"
LOCAL_NOTES_PREFIX = b"refs/notes/"
BAD_REF_CHARS = set(b"\177 ~^:?*[")
PSEUDOREF_CHARS = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZ_")

# Maximum number of symbolic hops followed before giving up.
MAX_SYMREF_DEPTH = 5


class MalformedBranchName(ClassificationError):
    """No short branch name can be extracted from a reference."""


class DanglingSymbolicReference(ClassificationError):
    """A symbolic reference does not lead to a concrete target.

    Attributes:
      refname: The symbolic reference that was being resolved
      missing: The name in the chain that does not exist
    """

    def __init__(self, refname: bytes, missing: bytes) -> None:
        self.missing = missing
        super().__init__(
            refname, f"symbolic reference target {missing.decode('utf-8', 'replace')} does not exist"
        )


class SymrefLoop(DanglingSymbolicReference):
    """There is a loop between one or more symrefs."""

    def __init__(self, ref: bytes, depth: int) -> None:
        self.ref = ref
        self.depth = depth
        self.missing = ref
        ClassificationError.__init__(
            self, ref, f"symbolic reference chain deeper than {depth} levels"
        )


def parse_symref_value(contents: bytes) -> bytes:
    """Parse a symref value.

    Args:
      contents: Contents to parse
    Returns: Destination
    """
    if contents.startswith(SYMREF):
        return contents[len(SYMREF) :].rstrip(b"\r\n")
    raise ValueError(contents)


def check_ref_format(refname: Ref) -> bool:
    """Check if a refname is correctly formatted.

    Implements all the same rules as git-check-ref-format[1].

    [1]
    http://www.kernel.org/pub/software/scm/git/docs/git-check-ref-format.html

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    # These could be combined into one big expression, but are listed
    # separately to parallel [1].
    if b"/." in refname or refname.startswith(b"."):
        return False
    if b"/" not in refname:
        return False
    if b".." in refname:
        return False
    for i, c in enumerate(refname):
        if ord(refname[i : i + 1]) < 0o40 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in b"/.":
        return False
    if refname.endswith(b".lock"):
        return False
    if b"@{" in refname:
        return False
    if b"\\" in refname:
        return False
    return True


def is_pseudoref_name(name: Ref) -> bool:
    """Check whether a name has the shape of a top-level ref like FETCH_HEAD.

    Such refs live directly in the repository directory and are spelled in
    upper case letters and underscores only.
    """
    return bool(name) and all(c in PSEUDOREF_CHARS for c in name)


def parse_remote_ref(ref: bytes) -> tuple[bytes, bytes]:
    """Parse a remote ref into remote name and branch name.

    Args:
      ref: Remote ref like b"refs/remotes/origin/main"
    Returns:
      Tuple of (remote_name, branch_name)
    Raises:
      ValueError: If ref is not a valid remote ref
    """
    if not ref.startswith(LOCAL_REMOTE_PREFIX):
        raise ValueError(f"Not a remote ref: {ref!r}")
    remote_name, sep, branch_name = ref[len(LOCAL_REMOTE_PREFIX) :].partition(b"/")
    if not sep or not remote_name or not branch_name:
        raise ValueError(f"Invalid remote ref format: {ref!r}")
    return (remote_name, branch_name)


def shorten_ref_name(ref: bytes) -> bytes:
    """Convert a full ref name to its short display form.

    Examples:
      >>> shorten_ref_name(b"refs/heads/master")
      b'master'
      >>> shorten_ref_name(b"refs/remotes/origin/main")
      b'origin/main'
      >>> shorten_ref_name(b"refs/tags/v1.0")
      b'v1.0'
      >>> shorten_ref_name(b"refs/notes/commits")
      b'notes/commits'
      >>> shorten_ref_name(b"HEAD")
      b'HEAD'
    """
    for prefix in (LOCAL_BRANCH_PREFIX, LOCAL_TAG_PREFIX, LOCAL_REMOTE_PREFIX, b"refs/"):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


class RawRef(Handle):
    """A reference as read from a refs container.

    Exactly one of ``target`` and ``symbolic_target`` is set.
    """

    def __init__(
        self,
        refs: "RefsContainer",
        name: Ref,
        target: Optional[ObjectID] = None,
        symbolic_target: Optional[Ref] = None,
    ) -> None:
        if (target is None) == (symbolic_target is None):
            raise ValueError("exactly one of target and symbolic_target is required")
        super().__init__(refs)
        self._name = name
        self._target = target
        self._symbolic_target = symbolic_target

    @property
    def refs(self) -> "RefsContainer":
        """The container this reference was read from."""
        assert isinstance(self._owner, RefsContainer)
        return self._owner

    @property
    def name(self) -> Ref:
        """Full name of the reference, e.g. ``refs/heads/master``."""
        return self._name

    @property
    def shorthand(self) -> bytes:
        return shorten_ref_name(self._name)

    @property
    def target(self) -> Optional[ObjectID]:
        """Object id stored in the reference, None for symbolic references."""
        return self._target

    @property
    def symbolic_target(self) -> Optional[Ref]:
        """Name of the reference this one points at, if it is symbolic."""
        return self._symbolic_target

    @property
    def is_symbolic(self) -> bool:
        return self._symbolic_target is not None

    @property
    def is_branch(self) -> bool:
        return self._name.startswith(LOCAL_BRANCH_PREFIX)

    @property
    def is_remote(self) -> bool:
        return self._name.startswith(LOCAL_REMOTE_PREFIX)

    @property
    def is_tag(self) -> bool:
        return self._name.startswith(LOCAL_TAG_PREFIX)

    @property
    def is_note(self) -> bool:
        return self._name.startswith(LOCAL_NOTES_PREFIX)

    def branch_name(self) -> bytes:
        """Return the short name of a local or remote branch.

        Raises:
          MalformedBranchName: if this is not a well-formed branch reference
        """
        if self.is_branch:
            short = self._name[len(LOCAL_BRANCH_PREFIX) :]
        elif self.is_remote:
            short = self._name[len(LOCAL_REMOTE_PREFIX) :]
        else:
            raise MalformedBranchName(self._name, "not a local or remote branch")
        if not short or not check_ref_format(b"heads/" + short):
            raise MalformedBranchName(self._name, "invalid branch name")
        return short

    def __repr__(self) -> str:
        if self._symbolic_target is not None:
            return f"<{self.__class__.__name__} {self._name!r} -> {self._symbolic_target!r}>"
        return f"<{self.__class__.__name__} {self._name!r} {self._target!r}>"


class RefsContainer(HandleOwner):
    """A read-only container for refs.

    Args:
      object_store: Object store the refs point into; needed to tell
        annotated tags from lightweight ones
    """

    def __init__(self, object_store: Optional["BaseObjectStore"] = None) -> None:
        super().__init__()
        self.object_store = object_store

    def allkeys(self) -> set[Ref]:
        """All refs present in this container."""
        raise NotImplementedError(self.allkeys)

    def __iter__(self) -> Iterator[Ref]:
        return iter(self.allkeys())

    def keys(self, base: Optional[bytes] = None) -> set[bytes]:
        """Refs present in this container.

        Args:
          base: An optional base to return refs under.
        Returns: An unsorted set of valid refs in this container.
        """
        if base is not None:
            return self.subkeys(base)
        else:
            return self.allkeys()

    def subkeys(self, base: bytes) -> set[bytes]:
        """Refs present in this container under a base.

        Args:
          base: The base to return refs under.
        Returns: A set of valid refs in this container under the base; the base
            prefix is stripped from the ref names returned.
        """
        keys = set()
        base_len = len(base.rstrip(b"/")) + 1
        for refname in self.allkeys():
            if refname.startswith(base.rstrip(b"/") + b"/"):
                keys.add(refname[base_len:])
        return keys

    def read_loose_ref(self, name: bytes) -> Optional[bytes]:
        """Read a reference and return its raw contents, or None."""
        raise NotImplementedError(self.read_loose_ref)

    def read_ref(self, refname: bytes) -> Optional[bytes]:
        """Read a reference without following any references.

        Args:
          refname: The name of the reference
        Returns: The contents of the ref, or None if it does not exist.
        """
        return self.read_loose_ref(refname)

    def follow(self, name: bytes) -> tuple[list[bytes], Optional[bytes]]:
        """Follow a reference name.

        Returns: a tuple of (refnames, sha), wheres refnames are the names of
            references in the chain
        Raises:
          SymrefLoop: if the chain is longer than MAX_SYMREF_DEPTH
        """
        contents: Optional[bytes] = SYMREF + name
        depth = 0
        refnames = []
        while contents and contents.startswith(SYMREF):
            refname = contents[len(SYMREF) :]
            refnames.append(refname)
            contents = self.read_ref(refname)
            if not contents:
                break
            depth += 1
            if depth > MAX_SYMREF_DEPTH:
                raise SymrefLoop(name, depth)
        return refnames, contents

    def __contains__(self, refname: bytes) -> bool:
        return bool(self.read_ref(refname))

    def __getitem__(self, name: bytes) -> ObjectID:
        """Get the object id for a reference name, following symrefs."""
        _, sha = self.follow(name)
        if sha is None:
            raise KeyError(name)
        return sha

    def as_dict(self, base: Optional[bytes] = None) -> dict[Ref, ObjectID]:
        """Return the contents of this container as a dictionary."""
        ret = {}
        keys = self.keys(base)
        prefix = b"" if base is None else base.rstrip(b"/")
        for key in keys:
            try:
                ret[key] = self[(prefix + b"/" + key).strip(b"/")]
            except (DanglingSymbolicReference, KeyError):
                continue
        return ret

    def get_symrefs(self) -> dict[bytes, bytes]:
        """Get a dict with all symrefs in this container.

        Returns: Dictionary mapping source ref to target ref
        """
        ret = {}
        for src in self.allkeys():
            contents = self.read_ref(src)
            if contents is not None and contents.startswith(SYMREF):
                ret[src] = parse_symref_value(contents)
        return ret

    def _make_raw_ref(self, name: Ref, contents: bytes) -> RawRef:
        if contents.startswith(SYMREF):
            return RawRef(self, name, symbolic_target=parse_symref_value(contents))
        contents = contents.rstrip(b"\r\n")
        if not valid_hexsha(contents):
            raise RefFormatError(f"{name!r} does not contain an object id: {contents!r}")
        return RawRef(self, name, target=contents)

    def get_raw_ref(self, name: Ref) -> RawRef:
        """Open a handle on a reference without following it.

        The returned handle must be released by the caller.

        Raises:
          KeyError: if the reference does not exist
          RefFormatError: if the reference contents are unreadable
        """
        contents = self.read_ref(name)
        if not contents:
            raise KeyError(name)
        return self._make_raw_ref(name, contents)

    def resolve(self, raw_ref: RawRef) -> RawRef:
        """Open a handle on the concrete reference a raw ref leads to.

        A direct reference resolves to a fresh handle on itself. The returned
        handle must be released by the caller.

        Raises:
          DanglingSymbolicReference: if a name in the chain does not exist
          SymrefLoop: if the chain does not end
          RefFormatError: if a direct reference has no object id
        """
        if raw_ref.symbolic_target is None:
            if raw_ref.target is None:
                raise RefFormatError(f"{raw_ref.name!r} has no target")
            return RawRef(self, raw_ref.name, target=raw_ref.target)
        refnames, contents = self.follow(raw_ref.symbolic_target)
        if not contents:
            logger.debug("%r dangles at %r", raw_ref.name, refnames[-1])
            raise DanglingSymbolicReference(raw_ref.name, refnames[-1])
        return self._make_raw_ref(refnames[-1], contents)

    def sorted_names(self, base: Optional[bytes] = None) -> list[Ref]:
        """Return the full names of references, sorted.

        Args:
          base: Only include references under this prefix (e.g. b"refs/tags")
        """
        if base is None:
            return sorted(self.allkeys())
        prefix = base.rstrip(b"/")
        return sorted(prefix + b"/" + key for key in self.subkeys(prefix))

    def iter_raw_refs(self, base: Optional[bytes] = None) -> Iterator[RawRef]:
        """Iterate over handles on every reference, sorted by name.

        Each handle is released once the consumer moves on to the next one.

        Args:
          base: Only include references under this prefix (e.g. b"refs/tags")
        """
        for name in self.sorted_names(base):
            try:
                raw = self.get_raw_ref(name)
            except KeyError:
                # Disappeared since listing
                continue
            with raw:
                yield raw


class DictRefsContainer(RefsContainer):
    """RefsContainer backed by a simple dict.

    Values are either hex object ids or ``ref: <name>`` symref contents.
    """

    def __init__(
        self,
        refs: Mapping[bytes, bytes],
        object_store: Optional["BaseObjectStore"] = None,
    ) -> None:
        super().__init__(object_store=object_store)
        self._refs = dict(refs)

    def allkeys(self) -> set[bytes]:
        return set(self._refs.keys())

    def read_loose_ref(self, name: bytes) -> Optional[bytes]:
        return self._refs.get(name, None)


class DiskRefsContainer(RefsContainer):
    """Refs container that reads loose refs from disk."""

    def __init__(
        self,
        path: Union[str, bytes, "os.PathLike[str]"],
        object_store: Optional["BaseObjectStore"] = None,
    ) -> None:
        super().__init__(object_store=object_store)
        self.path = os.fsencode(os.fspath(path))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def refpath(self, name: bytes) -> bytes:
        """Return the disk path of a ref."""
        path = name
        if os.path.sep != "/":
            path = path.replace(b"/", os.fsencode(os.path.sep))
        return os.path.join(self.path, path)

    def _iter_loose_refs(self, base: bytes = b"refs/") -> Iterator[bytes]:
        base = base.rstrip(b"/")
        refspath = os.path.join(self.path, base)
        prefix_len = len(os.path.join(self.path, b""))
        for root, _dirs, files in os.walk(refspath):
            directory = root[prefix_len:]
            if os.path.sep != "/":
                directory = directory.replace(os.fsencode(os.path.sep), b"/")
            for filename in files:
                refname = b"/".join([directory, filename])
                if check_ref_format(refname):
                    yield refname

    def subkeys(self, base: bytes) -> set[bytes]:
        base = base.rstrip(b"/")
        return {
            key[len(base) :].strip(b"/")
            for key in self._iter_loose_refs(base)
            if key.startswith(base + b"/")
        }

    def allkeys(self) -> set[bytes]:
        allkeys = set()
        if os.path.exists(self.refpath(HEADREF)):
            allkeys.add(HEADREF)
        allkeys.update(self._iter_loose_refs())
        return allkeys

    def read_loose_ref(self, name: bytes) -> Optional[bytes]:
        """Read a reference file and return its contents.

        If the reference file a symbolic reference, only read the first line of
        the file. Otherwise, only read as many bytes as the longest object id.

        Args:
          name: the refname to read, relative to refpath
        Returns: The contents of the ref file, or None if the file does not
            exist or the name is not one a reference can have.
        """
        if not (
            is_pseudoref_name(name)
            or (name.startswith(b"refs/") and check_ref_format(name))
        ):
            logger.debug("not reading %r: invalid reference name", name)
            return None
        filename = self.refpath(name)
        try:
            with open(filename, "rb") as f:
                header = f.read(len(SYMREF))
                if header == SYMREF:
                    # Read only the first line
                    return header + next(iter(f), b"").rstrip(b"\r\n")
                else:
                    return (header + f.read(64 - len(SYMREF))).split(b"\n", 1)[0].rstrip(b"\r")
        except (OSError, UnicodeError):
            # don't assume anything specific about the error; in
            # particular, invalid or forbidden paths can raise weird
            # errors depending on the specific operating system
            return None
