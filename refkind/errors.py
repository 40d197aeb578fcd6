# errors.py -- errors for refkind
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

"""refkind-related exception classes."""

# Please do not add more errors here, but instead add them close to the code
# that raises the error.

__all__ = [
    "ChecksumMismatch",
    "ClassificationError",
    "FileFormatException",
    "NotBlobError",
    "NotCommitError",
    "NotGitRepository",
    "NotTagError",
    "NotTreeError",
    "ObjectFormatException",
    "ObjectMissing",
    "RefFormatError",
    "WrongObjectException",
]

from typing import Optional


class ChecksumMismatch(Exception):
    """The id of an object did not match its contents."""

    def __init__(self, expected: bytes, got: bytes, extra: Optional[str] = None) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
          expected: The expected hex object id.
          got: The hex object id computed from the contents.
          extra: Optional additional error information.
        """
        self.expected = expected
        self.got = got
        self.extra = extra
        message = (
            f"Checksum mismatch: Expected {expected.decode('ascii')}, "
            f"got {got.decode('ascii')}"
        )
        if extra is not None:
            message += f"; {extra}"
        Exception.__init__(self, message)


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: bytes

    def __init__(self, sha: bytes, *args: object, **kwargs: object) -> None:
        """Initialize a WrongObjectException.

        Args:
          sha: The id of the object that was not of the expected type.
          *args: Additional positional arguments.
          **kwargs: Additional keyword arguments.
        """
        self.sha = sha
        Exception.__init__(
            self, f"{sha.decode('ascii')} is not a {self.type_name.decode('ascii')}"
        )


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = b"commit"


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = b"tree"


class NotTagError(WrongObjectException):
    """Indicates that the sha requested does not point to a tag."""

    type_name = b"tag"


class NotBlobError(WrongObjectException):
    """Indicates that the sha requested does not point to a blob."""

    type_name = b"blob"


class ObjectMissing(KeyError):
    """Indicates that a requested object is not in the object store."""

    def __init__(self, sha: bytes) -> None:
        """Initialize an ObjectMissing exception.

        Args:
          sha: The id of the missing object.
        """
        self.sha = sha
        KeyError.__init__(self, sha)

    def __str__(self) -> str:
        return f"{self.sha.decode('ascii', 'replace')} is not in the object store"


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object."""


class RefFormatError(Exception):
    """Indicates an invalid ref name or unreadable ref contents."""


class ClassificationError(Exception):
    """A reference could not be turned into a branch, tag or generic ref.

    Attributes:
      refname: Full name of the reference that failed to classify
    """

    def __init__(self, refname: bytes, message: str) -> None:
        self.refname = refname
        Exception.__init__(self, f"{refname.decode('utf-8', 'replace')}: {message}")
