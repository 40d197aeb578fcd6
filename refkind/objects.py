# objects.py -- Access to base git objects
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

"""Access to base git objects.

Object ids are handled in their hex form (``ObjectID``) throughout; the
binary form only appears inside tree entries.
"""

__all__ = [
    "DEFAULT_OBJECT_FORMAT",
    "OBJECT_CLASSES",
    "SHA1",
    "SHA256",
    "ZERO_SHA",
    "Blob",
    "Commit",
    "ObjectFormat",
    "ObjectID",
    "PointerTo",
    "ShaFile",
    "Tag",
    "Tree",
    "format_timezone",
    "get_object_format",
    "hex_to_filename",
    "hex_to_sha",
    "object_class",
    "object_header",
    "parse_timezone",
    "sha_to_hex",
    "valid_hexsha",
]

import binascii
import os
import stat
import zlib
from collections.abc import Callable, Iterator
from hashlib import sha1, sha256
from typing import TYPE_CHECKING, Any, Optional, Union

from .errors import ChecksumMismatch, ObjectFormatException

if TYPE_CHECKING:
    from .object_store import BaseObjectStore

ObjectID = bytes

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"
_ENCODING_HEADER = b"encoding"

# Header fields for objects
_OBJECT_HEADER = b"object"
_TYPE_HEADER = b"type"
_TAG_HEADER = b"tag"
_TAGGER_HEADER = b"tagger"


class ObjectFormat:
    """Hash algorithm used to name objects."""

    def __init__(
        self,
        name: str,
        oid_length: int,
        hex_length: int,
        hash_func: Callable[[], Any],
    ) -> None:
        self.name = name
        self.oid_length = oid_length
        self.hex_length = hex_length
        self.hash_func = hash_func

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"ObjectFormat({self.name!r})"

    @property
    def zero_sha(self) -> ObjectID:
        return b"0" * self.hex_length

    def hash_hex(self, *chunks: bytes) -> ObjectID:
        """Return the hex digest of the concatenated chunks."""
        h = self.hash_func()
        for chunk in chunks:
            h.update(chunk)
        return h.hexdigest().encode("ascii")


SHA1 = ObjectFormat("sha1", oid_length=20, hex_length=40, hash_func=sha1)
SHA256 = ObjectFormat("sha256", oid_length=32, hex_length=64, hash_func=sha256)

OBJECT_FORMATS = {f.name: f for f in (SHA1, SHA256)}

DEFAULT_OBJECT_FORMAT = SHA1

ZERO_SHA = DEFAULT_OBJECT_FORMAT.zero_sha


def get_object_format(name: Optional[str] = None) -> ObjectFormat:
    """Get an object format by name.

    Args:
      name: Format name ("sha1" or "sha256"). If None, returns default.
    Raises:
      ValueError: If the format name is not supported
    """
    if name is None:
        return DEFAULT_OBJECT_FORMAT
    try:
        return OBJECT_FORMATS[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported object format: {name}") from None


def valid_hexsha(hex: Union[bytes, str], object_format: Optional[ObjectFormat] = None) -> bool:
    """Check whether a string is a well-formed hex object id.

    Without an object format any supported length is accepted.
    """
    if object_format is not None:
        lengths: tuple[int, ...] = (object_format.hex_length,)
    else:
        lengths = tuple(f.hex_length for f in OBJECT_FORMATS.values())
    if len(hex) not in lengths:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    return True


def sha_to_hex(sha: bytes) -> ObjectID:
    """Takes a binary sha and returns its hex form."""
    return binascii.hexlify(sha)


def hex_to_sha(hex: Union[bytes, str]) -> bytes:
    """Takes a hex sha and returns a binary sha."""
    try:
        return binascii.unhexlify(hex)
    except (TypeError, binascii.Error) as exc:
        if not isinstance(hex, bytes):
            raise
        raise ValueError(exc.args[0]) from exc


def hex_to_filename(path: str, hex: ObjectID) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    dir_name = hex[:2].decode("ascii")
    file_name = hex[2:].decode("ascii")
    return os.path.join(path, dir_name, file_name)


def object_header(type_name: bytes, length: int) -> bytes:
    """Return the loose object header for an object of the given type."""
    return type_name + b" " + str(length).encode("ascii") + b"\0"


def object_class(type: Union[bytes, int]) -> type["ShaFile"]:
    """Get the object class corresponding to the given type.

    Args:
      type: Either a type name string or a numeric type.
    Returns: The ShaFile subclass corresponding to the given type.
    Raises:
      KeyError: for an unknown type
    """
    return _TYPE_MAP[type]


def parse_timezone(text: bytes) -> int:
    """Parse a timezone like ``+0100`` into an offset in seconds."""
    if not (text[:1] in (b"+", b"-") and text[1:].isdigit()):
        raise ValueError(f"invalid timezone {text!r}")
    offset = int(text)
    signum = -1 if offset < 0 else 1
    offset = abs(offset)
    hours, minutes = divmod(offset, 100)
    return signum * (hours * 3600 + minutes * 60)


def format_timezone(offset: int) -> bytes:
    """Format an offset in seconds as a timezone like ``+0100``."""
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    sign = "-" if offset < 0 else "+"
    offset = abs(offset)
    return f"{sign}{offset // 3600:02d}{(offset // 60) % 60:02d}".encode("ascii")


def _parse_identity_line(value: bytes) -> tuple[bytes, Optional[int], int]:
    try:
        sep = value.rindex(b"> ")
    except ValueError:
        return value, None, 0
    identity = value[: sep + 1]
    try:
        timetext, timezonetext = value[sep + 2 :].rsplit(b" ", 1)
        return identity, int(timetext), parse_timezone(timezonetext)
    except ValueError as e:
        raise ObjectFormatException(f"invalid identity line {value!r}") from e


def _format_identity_line(identity: bytes, when: Optional[int], tz: int) -> bytes:
    if when is None:
        return identity
    return identity + b" " + str(when).encode("ascii") + b" " + format_timezone(tz)


def _parse_message(data: bytes) -> Iterator[tuple[Optional[bytes], bytes]]:
    """Split an object body into header fields and the trailing message.

    Yields (field, value) pairs; the message is yielded last with a field of
    None. Continuation lines (starting with a space) are folded into the
    preceding value.
    """
    headers, sep, message = data.partition(b"\n\n")
    if not sep and headers.endswith(b"\n"):
        headers = headers[:-1]
    field: Optional[bytes] = None
    value = b""
    for line in headers.split(b"\n"):
        if line.startswith(b" ") and field is not None:
            value += b"\n" + line[1:]
            continue
        if field is not None:
            yield field, value
        field, _, value = line.partition(b" ")
    if field:
        yield field, value
    yield None, message


class ShaFile:
    """A git object, named by the hash of its contents."""

    type_name: bytes
    type_num: int

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        self.object_format = object_format or DEFAULT_OBJECT_FORMAT

    def _deserialize(self, data: bytes) -> None:
        raise NotImplementedError(self._deserialize)

    def _serialize(self) -> bytes:
        raise NotImplementedError(self._serialize)

    def as_raw_string(self) -> bytes:
        """Return the raw, uncompressed contents of this object."""
        return self._serialize()

    def raw_length(self) -> int:
        """Returns the length of the raw string of this object."""
        return len(self.as_raw_string())

    def _header(self, raw: bytes) -> bytes:
        return object_header(self.type_name, len(raw))

    @property
    def id(self) -> ObjectID:
        """The hex id of this object."""
        raw = self.as_raw_string()
        return self.object_format.hash_hex(self._header(raw), raw)

    def as_legacy_object(self) -> bytes:
        """Return the zlib-compressed loose object representation."""
        raw = self.as_raw_string()
        return zlib.compress(self._header(raw) + raw)

    @classmethod
    def from_raw_string(
        cls,
        type: Union[bytes, int],
        data: bytes,
        sha: Optional[ObjectID] = None,
        object_format: Optional[ObjectFormat] = None,
    ) -> "ShaFile":
        """Create an object of the indicated type from its raw contents.

        Args:
          type: The numeric type or type name of the object.
          data: The raw uncompressed contents.
          sha: Expected id; checked against the contents if given
          object_format: Hash algorithm the object is named with
        """
        try:
            obj = object_class(type)(object_format)
        except KeyError:
            raise ObjectFormatException(f"Not a known type: {type!r}") from None
        obj._deserialize(data)
        if sha is not None and obj.id != sha:
            raise ChecksumMismatch(sha, obj.id)
        return obj

    @classmethod
    def from_path(
        cls,
        path: str,
        sha: Optional[ObjectID] = None,
        object_format: Optional[ObjectFormat] = None,
    ) -> "ShaFile":
        """Read a loose object from disk."""
        with open(path, "rb") as f:
            compressed = f.read()
        try:
            text = zlib.decompress(compressed)
        except zlib.error as e:
            raise ObjectFormatException(f"{path}: not a zlib stream") from e
        header, sep, body = text.partition(b"\0")
        if not sep:
            raise ObjectFormatException(f"{path}: missing object header")
        type_name, _, size = header.partition(b" ")
        if not size.isdigit() or int(size) != len(body):
            raise ObjectFormatException(f"{path}: invalid object size {size!r}")
        obj = cls.from_raw_string(type_name, body, sha=sha, object_format=object_format)
        if not isinstance(obj, cls):
            raise ObjectFormatException(
                f"{path}: expected {cls.__name__}, got {obj.type_name!r}"
            )
        return obj

    @classmethod
    def from_string(cls, data: bytes) -> "ShaFile":
        """Create an object of this class from its raw contents."""
        obj = cls()
        obj._deserialize(data)
        return obj

    def copy(self) -> "ShaFile":
        """Create a new copy of this object."""
        return self.from_raw_string(
            self.type_name, self.as_raw_string(), object_format=self.object_format
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id.decode('ascii')}>"

    def __eq__(self, other: object) -> bool:
        """Return true if the ids of the two objects match."""
        return isinstance(other, ShaFile) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Blob(ShaFile):
    """A Git Blob object."""

    type_name = b"blob"
    type_num = 3

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__(object_format)
        self.data = b""

    def _deserialize(self, data: bytes) -> None:
        self.data = data

    def _serialize(self) -> bytes:
        return self.data


class Tree(ShaFile):
    """A Git tree object."""

    type_name = b"tree"
    type_num = 2

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__(object_format)
        self._entries: dict[bytes, tuple[int, ObjectID]] = {}

    def __contains__(self, name: bytes) -> bool:
        return name in self._entries

    def __getitem__(self, name: bytes) -> tuple[int, ObjectID]:
        return self._entries[name]

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, name: bytes, mode: int, hexsha: ObjectID) -> None:
        """Add an entry to the tree."""
        self._entries[name] = (mode, hexsha)

    def items(self) -> list[tuple[bytes, int, ObjectID]]:
        """Return (name, mode, sha) tuples in serialization order."""

        def key(item: tuple[bytes, tuple[int, ObjectID]]) -> bytes:
            name, (mode, _) = item
            return name + b"/" if stat.S_ISDIR(mode) else name

        return [
            (name, mode, sha) for name, (mode, sha) in sorted(self._entries.items(), key=key)
        ]

    def _deserialize(self, data: bytes) -> None:
        entries = {}
        oid_length = self.object_format.oid_length
        count = 0
        length = len(data)
        try:
            while count < length:
                mode_end = data.index(b" ", count)
                mode = int(data[count:mode_end], 8)
                name_end = data.index(b"\0", mode_end)
                name = data[mode_end + 1 : name_end]
                count = name_end + 1 + oid_length
                if count > length:
                    raise ObjectFormatException("truncated tree entry")
                entries[name] = (mode, sha_to_hex(data[name_end + 1 : count]))
        except ValueError as e:
            raise ObjectFormatException(f"invalid tree: {e}") from e
        self._entries = entries

    def _serialize(self) -> bytes:
        return b"".join(
            f"{mode:04o}".encode("ascii") + b" " + name + b"\0" + hex_to_sha(sha)
            for name, mode, sha in self.items()
        )


class Commit(ShaFile):
    """A git commit object."""

    type_name = b"commit"
    type_num = 1

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__(object_format)
        self.tree: ObjectID = b""
        self.parents: list[ObjectID] = []
        self.author = b""
        self.author_time = 0
        self.author_timezone = 0
        self.committer = b""
        self.commit_time = 0
        self.commit_timezone = 0
        self.encoding: Optional[bytes] = None
        self.extra: list[tuple[bytes, bytes]] = []
        self.message = b""

    def _deserialize(self, data: bytes) -> None:
        self.parents = []
        self.extra = []
        for field, value in _parse_message(data):
            if field is None:
                self.message = value
            elif field == _TREE_HEADER:
                self.tree = value
            elif field == _PARENT_HEADER:
                self.parents.append(value)
            elif field == _AUTHOR_HEADER:
                self.author, author_time, self.author_timezone = _parse_identity_line(value)
                self.author_time = author_time or 0
            elif field == _COMMITTER_HEADER:
                self.committer, commit_time, self.commit_timezone = _parse_identity_line(
                    value
                )
                self.commit_time = commit_time or 0
            elif field == _ENCODING_HEADER:
                self.encoding = value
            else:
                self.extra.append((field, value))
        if not self.tree:
            raise ObjectFormatException("commit without tree")

    def _serialize(self) -> bytes:
        chunks = [_TREE_HEADER + b" " + self.tree + b"\n"]
        for p in self.parents:
            chunks.append(_PARENT_HEADER + b" " + p + b"\n")
        chunks.append(
            _AUTHOR_HEADER
            + b" "
            + _format_identity_line(self.author, self.author_time, self.author_timezone)
            + b"\n"
        )
        chunks.append(
            _COMMITTER_HEADER
            + b" "
            + _format_identity_line(self.committer, self.commit_time, self.commit_timezone)
            + b"\n"
        )
        if self.encoding:
            chunks.append(_ENCODING_HEADER + b" " + self.encoding + b"\n")
        for k, v in self.extra:
            chunks.append(k + b" " + v.replace(b"\n", b"\n ") + b"\n")
        chunks.append(b"\n")
        chunks.append(self.message)
        return b"".join(chunks)


class Tag(ShaFile):
    """A Git Tag object."""

    type_name = b"tag"
    type_num = 4

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        super().__init__(object_format)
        self._object_class: Optional[type[ShaFile]] = None
        self._object_sha: ObjectID = b""
        self.name = b""
        self.tagger: Optional[bytes] = None
        self.tag_time: Optional[int] = None
        self.tag_timezone = 0
        self.message = b""

    def _get_object(self) -> tuple[type[ShaFile], ObjectID]:
        """Get the object pointed to by this tag.

        Returns: tuple of (object class, sha).
        """
        if self._object_class is None:
            raise ObjectFormatException("tag has no target")
        return (self._object_class, self._object_sha)

    def _set_object(self, value: tuple[type[ShaFile], ObjectID]) -> None:
        (self._object_class, self._object_sha) = value

    object = property(_get_object, _set_object)

    @property
    def target(self) -> "PointerTo":
        """Lazy pointer to the tagged object."""
        obj_class, sha = self.object
        return PointerTo(sha, obj_class.type_name)

    def _deserialize(self, data: bytes) -> None:
        self.tagger = None
        self.tag_time = None
        self.tag_timezone = 0
        object_type = None
        for field, value in _parse_message(data):
            if field is None:
                self.message = value
            elif field == _OBJECT_HEADER:
                self._object_sha = value
            elif field == _TYPE_HEADER:
                object_type = value
            elif field == _TAG_HEADER:
                self.name = value
            elif field == _TAGGER_HEADER:
                self.tagger, self.tag_time, self.tag_timezone = _parse_identity_line(value)
        if object_type is None or not self._object_sha:
            raise ObjectFormatException("tag without object or type header")
        try:
            self._object_class = object_class(object_type)
        except KeyError:
            raise ObjectFormatException(f"Not a known type: {object_type!r}") from None

    def _serialize(self) -> bytes:
        obj_class, sha = self.object
        chunks = [
            _OBJECT_HEADER + b" " + sha + b"\n",
            _TYPE_HEADER + b" " + obj_class.type_name + b"\n",
            _TAG_HEADER + b" " + self.name + b"\n",
        ]
        if self.tagger:
            chunks.append(
                _TAGGER_HEADER
                + b" "
                + _format_identity_line(self.tagger, self.tag_time, self.tag_timezone)
                + b"\n"
            )
        chunks.append(b"\n")
        chunks.append(self.message)
        return b"".join(chunks)


class PointerTo:
    """A lazy pointer to an object of an expected kind.

    Only the id is held; the object is looked up when :meth:`resolve` is
    called, so the cost and the failure of the lookup show up at the call
    site.
    """

    __slots__ = ("_oid", "_type_name")

    def __init__(self, oid: ObjectID, type_name: bytes) -> None:
        if type_name not in _TYPE_MAP:
            raise ValueError(f"unknown object type {type_name!r}")
        self._oid = oid
        self._type_name = type_name

    @property
    def oid(self) -> ObjectID:
        return self._oid

    @property
    def type_name(self) -> bytes:
        return self._type_name

    def resolve(self, object_store: "BaseObjectStore") -> ShaFile:
        """Look up the object this points at.

        Raises:
          ObjectMissing: if the object is not in the store
          WrongObjectException: if the object is not of the expected kind
        """
        with object_store.lookup_object(self._oid, self._type_name) as handle:
            return handle.object

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointerTo):
            return NotImplemented
        return self._oid == other._oid and self._type_name == other._type_name

    def __hash__(self) -> int:
        return hash((self._oid, self._type_name))

    def __repr__(self) -> str:
        return f"PointerTo({self._oid!r}, {self._type_name!r})"


OBJECT_CLASSES = (
    Commit,
    Tree,
    Blob,
    Tag,
)

_TYPE_MAP: dict[Union[bytes, int], type[ShaFile]] = {}

for cls in OBJECT_CLASSES:
    _TYPE_MAP[cls.type_name] = cls
    _TYPE_MAP[cls.type_num] = cls
