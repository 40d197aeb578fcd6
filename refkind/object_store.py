# object_store.py -- Object store for git objects
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

"""Git object store interfaces and implementation."""

__all__ = [
    "BaseObjectStore",
    "DiskObjectStore",
    "MemoryObjectStore",
    "ObjectHandle",
    "peel_sha",
]

import os
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Optional

from ._handles import Handle, HandleOwner
from .errors import (
    NotBlobError,
    NotCommitError,
    NotTagError,
    NotTreeError,
    ObjectMissing,
    WrongObjectException,
)
from .log_utils import getLogger
from .objects import (
    DEFAULT_OBJECT_FORMAT,
    ObjectFormat,
    ObjectID,
    ShaFile,
    Tag,
    hex_to_filename,
    valid_hexsha,
)

if TYPE_CHECKING:
    from .config import Config

logger = getLogger(__name__)

_WRONG_KIND_ERRORS: dict[bytes, type[WrongObjectException]] = {
    b"commit": NotCommitError,
    b"tree": NotTreeError,
    b"blob": NotBlobError,
    b"tag": NotTagError,
}


class ObjectHandle(Handle):
    """An object looked up from an object store.

    The handle must be released once the caller is done with it; use it as
    a context manager.
    """

    def __init__(self, store: "BaseObjectStore", obj: ShaFile) -> None:
        super().__init__(store)
        self._object = obj

    @property
    def object(self) -> ShaFile:
        self._check_open()
        return self._object

    @property
    def id(self) -> ObjectID:
        self._check_open()
        return self._object.id

    @property
    def type_name(self) -> bytes:
        self._check_open()
        return self._object.type_name

    def __repr__(self) -> str:
        state = "released" if self.released else "open"
        return f"<{self.__class__.__name__} {self._object.type_name.decode()} {state}>"


class BaseObjectStore(HandleOwner):
    """Object store interface."""

    def __init__(self, *, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__()
        self.object_format = object_format if object_format else DEFAULT_OBJECT_FORMAT

    def __contains__(self, sha: ObjectID) -> bool:
        """Check if a particular object is present by id."""
        raise NotImplementedError(self.__contains__)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the ids that are present in this store."""
        raise NotImplementedError(self.__iter__)

    def _get_object(self, sha: ObjectID) -> Optional[ShaFile]:
        """Load an object, or return None if it is not present."""
        raise NotImplementedError(self._get_object)

    def __getitem__(self, sha: ObjectID) -> ShaFile:
        """Obtain an object by id.

        Raises:
          ObjectMissing: if the object is not present
        """
        obj = self._get_object(sha)
        if obj is None:
            raise ObjectMissing(sha)
        return obj

    def lookup_object(
        self, sha: ObjectID, type_name: Optional[bytes] = None
    ) -> ObjectHandle:
        """Look up an object and return a handle on it.

        Args:
          sha: Hex id of the object
          type_name: Expected object type, or None to accept any type
        Returns: An open :class:`ObjectHandle`
        Raises:
          ObjectMissing: if the object is not present
          WrongObjectException: if the object has a different type
        """
        obj = self[sha]
        if type_name is not None and obj.type_name != type_name:
            logger.debug(
                "object %s is a %s, not a %s",
                sha.decode("ascii"),
                obj.type_name.decode("ascii"),
                type_name.decode("ascii"),
            )
            raise _WRONG_KIND_ERRORS[type_name](sha)
        return ObjectHandle(self, obj)

    def add_object(self, obj: ShaFile) -> None:
        """Add a single object to this object store."""
        raise NotImplementedError(self.add_object)

    def add_objects(self, objects: Iterable[ShaFile]) -> None:
        """Add a set of objects to this object store."""
        for obj in objects:
            self.add_object(obj)

    def close(self) -> None:
        """Close any files opened by this object store."""
        if self._open_handles:
            logger.warning(
                "%r closed with %d handle(s) still open", self, len(self._open_handles)
            )


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects in memory."""

    def __init__(self, *, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__(object_format=object_format)
        self._data: dict[ObjectID, ShaFile] = {}

    def __contains__(self, sha: ObjectID) -> bool:
        return sha in self._data

    def __iter__(self) -> Iterator[ObjectID]:
        return iter(self._data.keys())

    def _get_object(self, sha: ObjectID) -> Optional[ShaFile]:
        try:
            return self._data[sha].copy()
        except KeyError:
            return None

    def __delitem__(self, sha: ObjectID) -> None:
        """Delete an object from this store, for testing only."""
        del self._data[sha]

    def add_object(self, obj: ShaFile) -> None:
        self._data[obj.id] = obj.copy()


class DiskObjectStore(BaseObjectStore):
    """Git-style object store that reads loose objects from a directory."""

    def __init__(
        self, path: str, *, object_format: Optional[ObjectFormat] = None
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store (usually ``.git/objects``).
          object_format: Hash algorithm the objects are named with
        """
        super().__init__(object_format=object_format)
        self.path = path

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def from_config(cls, path: str, config: "Config") -> "DiskObjectStore":
        """Create a DiskObjectStore using the repository configuration.

        Args:
          path: Path to the object store directory
          config: Configuration object to read ``extensions.objectformat`` from
        """
        from .objects import get_object_format

        try:
            name = config.get((b"extensions",), b"objectformat").decode("ascii")
        except KeyError:
            name = None
        return cls(path, object_format=get_object_format(name))

    @classmethod
    def init(
        cls, path: str, *, object_format: Optional[ObjectFormat] = None
    ) -> "DiskObjectStore":
        """Create a new, empty object store directory."""
        os.makedirs(os.path.join(path, "info"), exist_ok=True)
        os.makedirs(os.path.join(path, "pack"), exist_ok=True)
        return cls(path, object_format=object_format)

    def _get_shafile_path(self, sha: ObjectID) -> str:
        return hex_to_filename(self.path, sha)

    def __contains__(self, sha: ObjectID) -> bool:
        if not valid_hexsha(sha, self.object_format):
            return False
        return os.path.exists(self._get_shafile_path(sha))

    def __iter__(self) -> Iterator[ObjectID]:
        try:
            bases = sorted(os.listdir(self.path))
        except FileNotFoundError:
            return
        for base in bases:
            if len(base) != 2:
                continue
            for rest in sorted(os.listdir(os.path.join(self.path, base))):
                sha = os.fsencode(base + rest)
                if valid_hexsha(sha, self.object_format):
                    yield sha

    def _get_object(self, sha: ObjectID) -> Optional[ShaFile]:
        if not valid_hexsha(sha, self.object_format):
            return None
        try:
            return ShaFile.from_path(
                self._get_shafile_path(sha), sha, object_format=self.object_format
            )
        except FileNotFoundError:
            return None

    def add_object(self, obj: ShaFile) -> None:
        """Write a single object as a loose object."""
        path = self._get_shafile_path(obj.id)
        if os.path.exists(path):
            return
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp_path = path + ".tmp"
        with open(tmp_path, "wb") as f:
            f.write(obj.as_legacy_object())
        os.replace(tmp_path, path)


def peel_sha(store: BaseObjectStore, sha: ObjectID) -> tuple[ShaFile, ShaFile]:
    """Peel all tags from a SHA.

    Args:
      store: Object store to get objects from
      sha: The object SHA to peel.
    Returns: Tuple of (unpeeled object, fully peeled object); the two are the
        same object if ``sha`` does not point to a tag.
    """
    unpeeled = obj = store[sha]
    while isinstance(obj, Tag):
        _, sha = obj.object
        obj = store[sha]
    return unpeeled, obj
