# references.py -- Classified git references
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

"""Classification of raw references into branches, tags and generic refs.

:func:`classify` takes a :class:`refkind.refs.RawRef` handle and returns one
of three immutable values:

* :class:`Branch` for ``refs/heads/*`` and ``refs/remotes/*``,
* :class:`TagReference` (either :class:`LightweightTag` or
  :class:`AnnotatedTag`) for ``refs/tags/*``,
* :class:`Reference` for anything else, such as ``HEAD`` or notes.

All of them compare and hash on ``(long_name, oid)``, whatever their kind.
"""

__all__ = [
    "AnnotatedTag",
    "Branch",
    "LightweightTag",
    "NotTagReference",
    "ObjectLookupFailure",
    "Reference",
    "ReferenceType",
    "TagReference",
    "classify",
    "reference_key",
    "references_equal",
]

from typing import Optional, Protocol, Union

from .errors import (
    ChecksumMismatch,
    ClassificationError,
    FileFormatException,
    NotTagError,
    ObjectMissing,
    RefFormatError,
)
from .log_utils import getLogger
from .objects import ObjectID, PointerTo, Tag
from .refs import (
    LOCAL_BRANCH_PREFIX,
    LOCAL_NOTES_PREFIX,
    LOCAL_REMOTE_PREFIX,
    LOCAL_TAG_PREFIX,
    RawRef,
    parse_remote_ref,
)

logger = getLogger(__name__)

# Failures while reading a tag object that mean the store is broken, as
# opposed to the object simply not being a tag.
_LOOKUP_FAILURES = (ChecksumMismatch, FileFormatException, OSError)


class NotTagReference(ClassificationError):
    """A tag was requested for a reference outside ``refs/tags/``."""


class ObjectLookupFailure(ClassificationError):
    """Looking up a tag object in the object store failed unexpectedly.

    The underlying exception is available as ``__cause__``.
    """


class ReferenceType(Protocol):
    """What every classified reference provides."""

    @property
    def long_name(self) -> bytes: ...

    @property
    def short_name(self) -> Optional[bytes]: ...

    @property
    def oid(self) -> Optional[ObjectID]: ...


def reference_key(ref: ReferenceType) -> tuple[bytes, Optional[ObjectID]]:
    """Return the identity of a reference: its full name and its id."""
    return (ref.long_name, ref.oid)


def references_equal(a: ReferenceType, b: ReferenceType) -> bool:
    """Check whether two references, of any kind, are the same."""
    return reference_key(a) == reference_key(b)


class _ReferenceBase:
    """Equality and hashing shared by all reference kinds."""

    __slots__ = ()

    long_name: bytes
    oid: Optional[ObjectID]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ReferenceBase):
            return NotImplemented
        return references_equal(self, other)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return hash(reference_key(self))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def _init(self, **fields: object) -> None:
        for name, value in fields.items():
            object.__setattr__(self, name, value)


class Reference(_ReferenceBase):
    """A reference that is neither a branch nor a tag.

    The id is read straight from the handle; symbolic references are not
    followed, so for ``HEAD -> refs/heads/main`` :attr:`oid` is None and
    :attr:`symbolic_target` is ``refs/heads/main``.
    """

    __slots__ = ("_long_name", "_oid", "_short_name", "_symbolic_target")

    def __init__(
        self,
        long_name: bytes,
        oid: Optional[ObjectID],
        short_name: Optional[bytes] = None,
        symbolic_target: Optional[bytes] = None,
    ) -> None:
        if short_name == long_name:
            short_name = None
        self._init(
            _long_name=long_name,
            _oid=oid,
            _short_name=short_name,
            _symbolic_target=symbolic_target,
        )

    @classmethod
    def from_raw(cls, raw_ref: RawRef) -> "Reference":
        """Build a generic reference from a raw handle."""
        return cls(
            raw_ref.name,
            raw_ref.target,
            short_name=raw_ref.shorthand,
            symbolic_target=raw_ref.symbolic_target,
        )

    @property
    def long_name(self) -> bytes:
        return self._long_name

    @property
    def short_name(self) -> Optional[bytes]:
        return self._short_name

    @property
    def oid(self) -> Optional[ObjectID]:
        return self._oid

    @property
    def symbolic_target(self) -> Optional[bytes]:
        return self._symbolic_target

    @property
    def is_note(self) -> bool:
        """Whether this reference holds notes, e.g. ``refs/notes/commits``."""
        return self._long_name.startswith(LOCAL_NOTES_PREFIX)

    def __repr__(self) -> str:
        if self._symbolic_target is not None:
            return f"Reference({self._long_name!r} -> {self._symbolic_target!r})"
        return f"Reference({self._long_name!r}, {self._oid!r})"


def _resolve_target(raw_ref: RawRef) -> ObjectID:
    """Return the id a raw ref leads to, following it if it is symbolic.

    Raises:
      DanglingSymbolicReference: if the symbolic chain does not resolve
      RefFormatError: if no object id is found at the end of the chain
    """
    target = raw_ref.target
    if raw_ref.is_symbolic:
        with raw_ref.refs.resolve(raw_ref) as resolved:
            logger.debug("resolved %r to %r", raw_ref.name, resolved.name)
            target = resolved.target
    if target is None:
        raise RefFormatError(f"{raw_ref.name!r} does not lead to an object id")
    return target


class Branch(_ReferenceBase):
    """A local or remote-tracking branch.

    Attributes:
      name: Short branch name, e.g. ``main`` or ``origin/main``
      commit: Lazy pointer to the commit at the tip of the branch
    """

    __slots__ = ("_long_name", "_name", "_commit")

    def __init__(self, long_name: bytes, name: bytes, oid: ObjectID) -> None:
        self._init(_long_name=long_name, _name=name, _commit=PointerTo(oid, b"commit"))

    @classmethod
    def from_raw(cls, raw_ref: RawRef) -> "Branch":
        """Build a branch from a raw handle.

        A symbolic branch is followed to the reference it points at; the
        commit itself is not looked up.

        Raises:
          MalformedBranchName: if no short branch name can be extracted
          DanglingSymbolicReference: if a symbolic branch does not resolve
        """
        name = raw_ref.branch_name()
        return cls(raw_ref.name, name, _resolve_target(raw_ref))

    @property
    def long_name(self) -> bytes:
        return self._long_name

    @property
    def name(self) -> bytes:
        return self._name

    @property
    def short_name(self) -> bytes:
        return self._name

    @property
    def commit(self) -> PointerTo:
        return self._commit

    @property
    def oid(self) -> ObjectID:
        return self._commit.oid

    @property
    def is_local(self) -> bool:
        return self._long_name.startswith(LOCAL_BRANCH_PREFIX)

    @property
    def is_remote(self) -> bool:
        return self._long_name.startswith(LOCAL_REMOTE_PREFIX)

    @property
    def remote_name(self) -> Optional[bytes]:
        """Name of the remote for a remote-tracking branch, else None."""
        if not self.is_remote:
            return None
        try:
            return parse_remote_ref(self._long_name)[0]
        except ValueError:
            return None

    def __repr__(self) -> str:
        return f"Branch({self._long_name!r}, {self.oid!r})"


class TagReference(_ReferenceBase):
    """A reference under ``refs/tags/``.

    Only :class:`LightweightTag` and :class:`AnnotatedTag` are ever
    instantiated.
    """

    __slots__ = ("_long_name",)

    is_annotated: bool

    @classmethod
    def from_raw(cls, raw_ref: RawRef) -> "Union[LightweightTag, AnnotatedTag]":
        """Build a tag from a raw handle.

        The id the tag ref points at is looked up once as a tag object. If
        there is one the tag is annotated; if the object is missing or is not
        a tag the tag is lightweight.

        Raises:
          NotTagReference: if the handle is not a tag
          DanglingSymbolicReference: if a symbolic tag ref does not resolve
          ObjectLookupFailure: if the object store fails during that lookup
        """
        if not raw_ref.is_tag:
            raise NotTagReference(raw_ref.name, "not a tag reference")
        long_name = raw_ref.name
        oid = _resolve_target(raw_ref)
        object_store = raw_ref.refs.object_store
        if object_store is None:
            raise ObjectLookupFailure(long_name, "no object store to look up tags in")
        try:
            handle = object_store.lookup_object(oid, Tag.type_name)
        except (ObjectMissing, NotTagError):
            logger.debug("%r is a lightweight tag", long_name)
            return LightweightTag(long_name, oid)
        except _LOOKUP_FAILURES as e:
            raise ObjectLookupFailure(
                long_name, f"unable to read object {oid.decode('ascii')}: {e}"
            ) from e
        with handle:
            tag = handle.object
            if not isinstance(tag, Tag):
                kind = tag.type_name.decode("ascii")
                raise ObjectLookupFailure(
                    long_name, f"object {oid.decode('ascii')} is a {kind}, not a tag"
                )
            logger.debug("%r is an annotated tag", long_name)
            return AnnotatedTag(long_name, tag)

    @property
    def long_name(self) -> bytes:
        return self._long_name

    @property
    def name(self) -> bytes:
        """Tag name without the ``refs/tags/`` prefix."""
        if self._long_name.startswith(LOCAL_TAG_PREFIX):
            return self._long_name[len(LOCAL_TAG_PREFIX) :]
        return self._long_name

    @property
    def short_name(self) -> bytes:
        return self.name

    @property
    def oid(self) -> ObjectID:
        raise NotImplementedError

    @property
    def target(self) -> PointerTo:
        """Lazy pointer to the object the tag ultimately names."""
        raise NotImplementedError


class LightweightTag(TagReference):
    """A tag ref pointing straight at an object that is not a tag."""

    __slots__ = ("_oid",)

    is_annotated = False

    def __init__(self, long_name: bytes, oid: ObjectID) -> None:
        self._init(_long_name=long_name, _oid=oid)

    @property
    def oid(self) -> ObjectID:
        return self._oid

    @property
    def target(self) -> PointerTo:
        # The kind is unknown without a lookup; commits are by far the most
        # common thing to tag.
        return PointerTo(self._oid, b"commit")

    def __repr__(self) -> str:
        return f"LightweightTag({self._long_name!r}, {self._oid!r})"


class AnnotatedTag(TagReference):
    """A tag ref pointing at a tag object.

    :attr:`oid` is the id the tag object points at, not the id of the tag
    object itself (available as ``tag.id``).
    """

    __slots__ = ("_tag", "_target")

    is_annotated = True

    def __init__(self, long_name: bytes, tag: Tag) -> None:
        self._init(_long_name=long_name, _tag=tag, _target=tag.target)

    @property
    def tag(self) -> Tag:
        return self._tag

    @property
    def target(self) -> PointerTo:
        return self._target

    @property
    def oid(self) -> ObjectID:
        return self._target.oid

    def __repr__(self) -> str:
        return f"AnnotatedTag({self._long_name!r}, {self.oid!r})"


def classify(raw_ref: RawRef) -> Union[Reference, Branch, TagReference]:
    """Turn a raw reference handle into a branch, a tag or a generic ref.

    Branches (local or remote) are checked first, then tags; anything else
    is a generic :class:`Reference`. Errors building a branch or a tag are
    raised, never turned into a generic reference.

    Args:
      raw_ref: An open handle from a refs container; it is not released
    Returns: The classified reference
    Raises:
      ClassificationError: if a branch or tag could not be built
    """
    if raw_ref.is_branch or raw_ref.is_remote:
        logger.debug("classifying %r as a branch", raw_ref.name)
        return Branch.from_raw(raw_ref)
    elif raw_ref.is_tag:
        logger.debug("classifying %r as a tag", raw_ref.name)
        return TagReference.from_raw(raw_ref)
    else:
        return Reference.from_raw(raw_ref)
