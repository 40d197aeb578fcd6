# utils.py -- Test utilities for refkind.
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

"""Utility functions common to refkind tests."""

import datetime
import shutil
import tempfile
import time
from typing import Any, Optional

from refkind.object_store import BaseObjectStore, MemoryObjectStore
from refkind.objects import Blob, Commit, ObjectID, ShaFile, Tag, Tree
from refkind.refs import DictRefsContainer, RawRef
from refkind.repo import Repo

# Plain files are very frequently used in tests, so let the mode be very short.
F = 0o100644  # Shorthand mode for Files.


def make_object(cls: type[ShaFile], **attrs: Any) -> ShaFile:
    """Make an object for testing and assign some members.

    Args:
      cls: The class of the new object
      attrs: dict of attributes to set on the new object.
    Returns: A newly initialized object of type cls.
    """
    obj = cls()
    for name, value in attrs.items():
        setattr(obj, name, value)
    return obj


def make_blob(data: bytes = b"test data") -> Blob:
    """Make a Blob with the given contents."""
    blob = Blob()
    blob.data = data
    return blob


def make_tree(**entries: ObjectID) -> Tree:
    """Make a Tree holding plain files, keyed by file name."""
    tree = Tree()
    for name, sha in entries.items():
        tree.add(name.encode("utf-8"), F, sha)
    return tree


def make_commit(**attrs: Any) -> Commit:
    """Make a Commit object with a default set of members.

    Args:
      attrs: dict of attributes to overwrite from the default values.
    Returns: A newly initialized Commit object.
    """
    default_time = int(time.mktime(datetime.datetime(2010, 1, 1).timetuple()))
    all_attrs = {
        "author": b"Test Author <test@nodomain.com>",
        "author_time": default_time,
        "author_timezone": 0,
        "committer": b"Test Committer <test@nodomain.com>",
        "commit_time": default_time,
        "commit_timezone": 0,
        "message": b"Test message.",
        "parents": [],
        "tree": Tree().id,
    }
    all_attrs.update(attrs)
    obj = make_object(Commit, **all_attrs)
    assert isinstance(obj, Commit)
    return obj


def make_tag(target: ShaFile, **attrs: Any) -> Tag:
    """Make a Tag object with a default set of values.

    Args:
      target: object to be tagged (Commit, Blob, Tree, etc)
      attrs: dict of attributes to overwrite from the default values.
    Returns: A newly initialized Tag object.
    """
    tag_time = int(time.mktime(datetime.datetime(2010, 1, 1).timetuple()))
    all_attrs = {
        "tagger": b"Test Author <test@nodomain.com>",
        "tag_time": tag_time,
        "tag_timezone": 0,
        "message": b"Test message.",
        "object": (target.__class__, target.id),
        "name": b"Test Tag",
    }
    all_attrs.update(attrs)
    obj = make_object(Tag, **all_attrs)
    assert isinstance(obj, Tag)
    return obj


def make_refs(
    refs: dict[bytes, bytes], object_store: Optional[BaseObjectStore] = None
) -> DictRefsContainer:
    """Make a dict-backed refs container over a (new) memory object store."""
    if object_store is None:
        object_store = MemoryObjectStore()
    return DictRefsContainer(refs, object_store=object_store)


def make_raw_ref(
    name: bytes,
    target: bytes,
    object_store: Optional[BaseObjectStore] = None,
    extra_refs: Optional[dict[bytes, bytes]] = None,
) -> RawRef:
    """Open a raw ref handle on a single reference.

    Args:
      name: Full name of the reference
      target: Hex object id, or ``ref: <name>`` for a symbolic reference
      object_store: Object store the container points into
      extra_refs: Other references to put in the same container
    Returns: An open handle; its container is available as ``.refs``
    """
    refs = dict(extra_refs or {})
    refs[name] = target
    return make_refs(refs, object_store).get_raw_ref(name)


def init_temp_repo(testcase: Any, **kwargs: Any) -> Repo:
    """Create a bare repository in a temporary directory.

    The directory and the repository are cleaned up with the test case.
    """
    temp_dir = tempfile.mkdtemp()
    testcase.addCleanup(shutil.rmtree, temp_dir)
    repo = Repo.init_bare(temp_dir, **kwargs)
    testcase.addCleanup(repo.close)
    return repo
