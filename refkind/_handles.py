# _handles.py -- Scoped handles on store resources
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

"""Bookkeeping for handles handed out by refs containers and object stores.

A handle is acquired from its owner and must be released exactly once.
Releasing is idempotent, and handles are context managers so the usual way
to hold one is a ``with`` block.
"""

from types import TracebackType
from typing import Optional, TypeVar

H = TypeVar("H", bound="Handle")


class HandleReleased(Exception):
    """A handle was used after it had been released."""


class HandleOwner:
    """Mixin for containers that hand out handles."""

    def __init__(self) -> None:
        self._open_handles: set["Handle"] = set()

    def _acquire(self, handle: "Handle") -> None:
        self._open_handles.add(handle)

    def _release(self, handle: "Handle") -> None:
        self._open_handles.discard(handle)

    def open_handle_count(self) -> int:
        """Return the number of handles acquired but not yet released."""
        return len(self._open_handles)


class Handle:
    """A resource acquired from a :class:`HandleOwner`."""

    def __init__(self, owner: HandleOwner) -> None:
        self._owner = owner
        self._released = False
        owner._acquire(self)

    @property
    def owner(self) -> HandleOwner:
        return self._owner

    @property
    def released(self) -> bool:
        return self._released

    def _check_open(self) -> None:
        if self._released:
            raise HandleReleased(repr(self))

    def release(self) -> None:
        """Give the handle back to its owner."""
        if self._released:
            return
        self._released = True
        self._owner._release(self)

    def __enter__(self: H) -> H:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.release()
