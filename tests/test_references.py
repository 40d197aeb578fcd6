# test_references.py -- tests for references.py
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

"""Tests for refkind.references."""

from typing import Optional

from refkind.errors import (
    ClassificationError,
    NotCommitError,
    ObjectFormatException,
    ObjectMissing,
)
from refkind.object_store import MemoryObjectStore, ObjectHandle
from refkind.objects import ObjectID, PointerTo, ShaFile
from refkind.references import (
    AnnotatedTag,
    Branch,
    LightweightTag,
    NotTagReference,
    ObjectLookupFailure,
    Reference,
    TagReference,
    classify,
    reference_key,
    references_equal,
)
from refkind.refs import (
    DanglingSymbolicReference,
    DictRefsContainer,
    MalformedBranchName,
    SymrefLoop,
)

from . import TestCase
from .utils import make_blob, make_commit, make_raw_ref, make_refs, make_tag

MISSING_SHA = b"a" * 40


class BrokenObjectStore(MemoryObjectStore):
    """Object store whose objects can not be read."""

    def _get_object(self, sha: ObjectID) -> Optional[ShaFile]:
        raise ObjectFormatException(f"{sha!r} is corrupt")


class UncheckedObjectStore(MemoryObjectStore):
    """Object store that hands out objects without checking their type."""

    def lookup_object(
        self, sha: ObjectID, type_name: Optional[bytes] = None
    ) -> ObjectHandle:
        return ObjectHandle(self, self[sha])


class ReferencesTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store = MemoryObjectStore()
        self.commit = make_commit()
        self.store.add_object(self.commit)
        self.tag = make_tag(self.commit, name=b"v2.0")
        self.store.add_object(self.tag)

    def classify_ref(
        self, name: bytes, target: bytes, extra_refs: Optional[dict[bytes, bytes]] = None
    ) -> "Reference | Branch | TagReference":
        raw = make_raw_ref(name, target, self.store, extra_refs)
        refs = raw.refs
        try:
            return classify(raw)
        finally:
            raw.release()
            self.assertEqual(0, refs.open_handle_count())

    def tearDown(self) -> None:
        self.assertEqual(0, self.store.open_handle_count())
        super().tearDown()


class ClassifyBranchTests(ReferencesTestCase):
    def test_local_branch(self) -> None:
        ref = self.classify_ref(b"refs/heads/main", self.commit.id)
        self.assertIsInstance(ref, Branch)
        assert isinstance(ref, Branch)
        self.assertEqual(b"refs/heads/main", ref.long_name)
        self.assertEqual(b"main", ref.name)
        self.assertEqual(b"main", ref.short_name)
        self.assertEqual(self.commit.id, ref.oid)
        self.assertTrue(ref.is_local)
        self.assertFalse(ref.is_remote)
        self.assertIsNone(ref.remote_name)

    def test_branch_to_missing_commit(self) -> None:
        # The commit is not looked up while classifying.
        ref = self.classify_ref(b"refs/heads/main", MISSING_SHA)
        assert isinstance(ref, Branch)
        self.assertEqual(MISSING_SHA, ref.oid)
        self.assertEqual(PointerTo(MISSING_SHA, b"commit"), ref.commit)

    def test_nested_branch_name(self) -> None:
        ref = self.classify_ref(b"refs/heads/feature/x", self.commit.id)
        assert isinstance(ref, Branch)
        self.assertEqual(b"feature/x", ref.name)

    def test_remote_branch(self) -> None:
        ref = self.classify_ref(b"refs/remotes/origin/main", self.commit.id)
        self.assertIsInstance(ref, Branch)
        assert isinstance(ref, Branch)
        self.assertEqual(b"origin/main", ref.name)
        self.assertFalse(ref.is_local)
        self.assertTrue(ref.is_remote)
        self.assertEqual(b"origin", ref.remote_name)

    def test_symbolic_branch_is_followed(self) -> None:
        ref = self.classify_ref(
            b"refs/heads/alias",
            b"ref: refs/heads/main",
            {b"refs/heads/main": self.commit.id},
        )
        assert isinstance(ref, Branch)
        self.assertEqual(b"refs/heads/alias", ref.long_name)
        self.assertEqual(b"alias", ref.name)
        self.assertEqual(self.commit.id, ref.oid)

    def test_symbolic_remote_head(self) -> None:
        ref = self.classify_ref(
            b"refs/remotes/origin/HEAD",
            b"ref: refs/remotes/origin/main",
            {b"refs/remotes/origin/main": self.commit.id},
        )
        assert isinstance(ref, Branch)
        self.assertEqual(b"origin/HEAD", ref.name)
        self.assertEqual(self.commit.id, ref.oid)

    def test_symbolic_branch_chain(self) -> None:
        ref = self.classify_ref(
            b"refs/heads/a",
            b"ref: refs/heads/b",
            {b"refs/heads/b": b"ref: refs/heads/c", b"refs/heads/c": self.commit.id},
        )
        self.assertEqual(self.commit.id, ref.oid)

    def test_dangling_symbolic_branch(self) -> None:
        with self.assertRaises(DanglingSymbolicReference) as cm:
            self.classify_ref(b"refs/heads/alias", b"ref: refs/heads/gone")
        self.assertEqual(b"refs/heads/alias", cm.exception.refname)
        self.assertEqual(b"refs/heads/gone", cm.exception.missing)

    def test_symref_loop(self) -> None:
        with self.assertRaises(SymrefLoop) as cm:
            self.classify_ref(b"refs/heads/loop", b"ref: refs/heads/loop")
        self.assertIsInstance(cm.exception, DanglingSymbolicReference)

    def test_empty_branch_name(self) -> None:
        self.assertRaises(
            MalformedBranchName, self.classify_ref, b"refs/heads/", self.commit.id
        )

    def test_invalid_branch_name(self) -> None:
        self.assertRaises(
            MalformedBranchName, self.classify_ref, b"refs/heads/a..b", self.commit.id
        )

    def test_errors_are_classification_errors(self) -> None:
        for name, target in [
            (b"refs/heads/", self.commit.id),
            (b"refs/heads/alias", b"ref: refs/heads/gone"),
        ]:
            self.assertRaises(ClassificationError, self.classify_ref, name, target)

    def test_from_raw_on_non_branch(self) -> None:
        raw = make_raw_ref(b"refs/notes/commits", self.commit.id, self.store)
        with raw:
            self.assertRaises(MalformedBranchName, Branch.from_raw, raw)

    def test_commit_pointer_resolves_on_demand(self) -> None:
        ref = self.classify_ref(b"refs/heads/main", self.commit.id)
        assert isinstance(ref, Branch)
        self.assertEqual(self.commit, ref.commit.resolve(self.store))
        self.assertEqual(0, self.store.open_handle_count())

    def test_commit_pointer_wrong_kind(self) -> None:
        blob = make_blob()
        self.store.add_object(blob)
        ref = self.classify_ref(b"refs/heads/odd", blob.id)
        assert isinstance(ref, Branch)
        self.assertRaises(NotCommitError, ref.commit.resolve, self.store)


class ClassifyTagTests(ReferencesTestCase):
    def test_lightweight_missing_object(self) -> None:
        ref = self.classify_ref(b"refs/tags/v1.0", MISSING_SHA)
        self.assertIsInstance(ref, LightweightTag)
        assert isinstance(ref, LightweightTag)
        self.assertEqual(b"refs/tags/v1.0", ref.long_name)
        self.assertEqual(b"v1.0", ref.name)
        self.assertEqual(b"v1.0", ref.short_name)
        self.assertEqual(MISSING_SHA, ref.oid)
        self.assertFalse(ref.is_annotated)

    def test_lightweight_to_commit(self) -> None:
        ref = self.classify_ref(b"refs/tags/v1.0", self.commit.id)
        self.assertIsInstance(ref, LightweightTag)
        assert isinstance(ref, LightweightTag)
        self.assertEqual(self.commit.id, ref.oid)
        self.assertEqual(PointerTo(self.commit.id, b"commit"), ref.target)

    def test_annotated(self) -> None:
        ref = self.classify_ref(b"refs/tags/v2.0", self.tag.id)
        self.assertIsInstance(ref, AnnotatedTag)
        assert isinstance(ref, AnnotatedTag)
        self.assertEqual(b"refs/tags/v2.0", ref.long_name)
        self.assertEqual(b"v2.0", ref.name)
        self.assertTrue(ref.is_annotated)
        # One indirection deeper than the id stored in the ref
        self.assertEqual(self.commit.id, ref.oid)
        self.assertNotEqual(self.tag.id, ref.oid)
        self.assertEqual(self.tag.id, ref.tag.id)
        self.assertEqual(PointerTo(self.commit.id, b"commit"), ref.target)

    def test_annotated_tag_of_tag(self) -> None:
        outer = make_tag(self.tag, name=b"outer")
        self.store.add_object(outer)
        ref = self.classify_ref(b"refs/tags/outer", outer.id)
        assert isinstance(ref, AnnotatedTag)
        self.assertEqual(self.tag.id, ref.oid)
        self.assertEqual(b"tag", ref.target.type_name)

    def test_annotated_tag_of_blob(self) -> None:
        blob = make_blob()
        blob_tag = make_tag(blob, name=b"blob-tag")
        self.store.add_objects([blob, blob_tag])
        ref = self.classify_ref(b"refs/tags/blob-tag", blob_tag.id)
        assert isinstance(ref, AnnotatedTag)
        self.assertEqual(blob.id, ref.oid)
        self.assertEqual(blob, ref.target.resolve(self.store))

    def test_nested_tag_name(self) -> None:
        ref = self.classify_ref(b"refs/tags/release/1.0", self.commit.id)
        assert isinstance(ref, TagReference)
        self.assertEqual(b"release/1.0", ref.name)

    def test_symbolic_tag(self) -> None:
        ref = self.classify_ref(
            b"refs/tags/latest", b"ref: refs/tags/v2.0", {b"refs/tags/v2.0": self.tag.id}
        )
        assert isinstance(ref, AnnotatedTag)
        self.assertEqual(b"refs/tags/latest", ref.long_name)
        self.assertEqual(self.commit.id, ref.oid)

    def test_dangling_symbolic_tag(self) -> None:
        self.assertRaises(
            DanglingSymbolicReference,
            self.classify_ref,
            b"refs/tags/latest",
            b"ref: refs/tags/gone",
        )

    def test_lookup_failure(self) -> None:
        self.store = BrokenObjectStore()
        with self.assertRaises(ObjectLookupFailure) as cm:
            self.classify_ref(b"refs/tags/v2.0", self.tag.id)
        self.assertIsInstance(cm.exception.__cause__, ObjectFormatException)
        self.assertEqual(b"refs/tags/v2.0", cm.exception.refname)

    def test_store_returns_non_tag(self) -> None:
        self.store = UncheckedObjectStore()
        self.store.add_object(self.commit)
        with self.assertRaises(ObjectLookupFailure) as cm:
            self.classify_ref(b"refs/tags/v1.0", self.commit.id)
        self.assertEqual(b"refs/tags/v1.0", cm.exception.refname)
        self.assertIn("is a commit, not a tag", str(cm.exception))
        self.assertEqual(0, self.store.open_handle_count())

    def test_no_object_store(self) -> None:
        refs = DictRefsContainer({b"refs/tags/v1.0": self.commit.id})
        with refs.get_raw_ref(b"refs/tags/v1.0") as raw:
            self.assertRaises(ObjectLookupFailure, classify, raw)
        self.assertEqual(0, refs.open_handle_count())

    def test_from_raw_on_branch(self) -> None:
        raw = make_raw_ref(b"refs/heads/main", self.commit.id, self.store)
        with raw:
            self.assertRaises(NotTagReference, TagReference.from_raw, raw)

    def test_accessors_do_not_touch_store(self) -> None:
        ref = self.classify_ref(b"refs/tags/v2.0", self.tag.id)
        del self.store[self.tag.id]
        del self.store[self.commit.id]
        self.assertEqual(b"refs/tags/v2.0", ref.long_name)
        self.assertEqual(self.commit.id, ref.oid)
        self.assertEqual(b"v2.0", ref.short_name)


class ClassifyGenericTests(ReferencesTestCase):
    def test_symbolic_head(self) -> None:
        ref = self.classify_ref(
            b"HEAD", b"ref: refs/heads/main", {b"refs/heads/main": self.commit.id}
        )
        self.assertIs(Reference, type(ref))
        assert isinstance(ref, Reference)
        self.assertEqual(b"HEAD", ref.long_name)
        self.assertIsNone(ref.short_name)
        # Generic references never follow symbolic indirection.
        self.assertIsNone(ref.oid)
        self.assertEqual(b"refs/heads/main", ref.symbolic_target)

    def test_detached_head(self) -> None:
        ref = self.classify_ref(b"HEAD", self.commit.id)
        self.assertIs(Reference, type(ref))
        self.assertEqual(self.commit.id, ref.oid)
        self.assertIsNone(ref.short_name)
        self.assertFalse(ref.is_note)

    def test_notes(self) -> None:
        ref = self.classify_ref(b"refs/notes/commits", self.commit.id)
        self.assertIs(Reference, type(ref))
        self.assertEqual(b"notes/commits", ref.short_name)
        self.assertEqual(self.commit.id, ref.oid)
        assert isinstance(ref, Reference)
        self.assertTrue(ref.is_note)

    def test_annotated_tag_outside_tags_is_generic(self) -> None:
        ref = self.classify_ref(b"refs/custom/thing", self.tag.id)
        self.assertIs(Reference, type(ref))
        self.assertEqual(self.tag.id, ref.oid)

    def test_short_name_equal_to_long_name(self) -> None:
        self.assertIsNone(Reference(b"FETCH_HEAD", MISSING_SHA, b"FETCH_HEAD").short_name)
        self.assertEqual(b"x", Reference(b"refs/x", MISSING_SHA, b"x").short_name)


class EqualityTests(TestCase):
    def test_equal_across_kinds(self) -> None:
        a = Reference(b"refs/heads/main", MISSING_SHA)
        b = Branch(b"refs/heads/main", b"main", MISSING_SHA)
        self.assertEqual(a, b)
        self.assertEqual(b, a)
        self.assertEqual(hash(a), hash(b))
        self.assertTrue(references_equal(a, b))

    def test_different_oid(self) -> None:
        a = Branch(b"refs/heads/main", b"main", MISSING_SHA)
        b = Branch(b"refs/heads/main", b"main", b"b" * 40)
        self.assertNotEqual(a, b)

    def test_different_name(self) -> None:
        a = LightweightTag(b"refs/tags/a", MISSING_SHA)
        b = LightweightTag(b"refs/tags/b", MISSING_SHA)
        self.assertNotEqual(a, b)

    def test_annotated_equals_lightweight_with_same_oid(self) -> None:
        commit = make_commit()
        tag = make_tag(commit, name=b"v1")
        annotated = AnnotatedTag(b"refs/tags/v1", tag)
        lightweight = LightweightTag(b"refs/tags/v1", commit.id)
        self.assertEqual(annotated, lightweight)
        self.assertEqual(1, len({annotated, lightweight}))

    def test_set_and_dict_keys(self) -> None:
        refs = {
            Branch(b"refs/heads/main", b"main", MISSING_SHA),
            Reference(b"refs/heads/main", MISSING_SHA),
            LightweightTag(b"refs/tags/v1", MISSING_SHA),
        }
        self.assertEqual(2, len(refs))
        d = {Branch(b"refs/heads/main", b"main", MISSING_SHA): 1}
        self.assertEqual(1, d[Reference(b"refs/heads/main", MISSING_SHA)])

    def test_reference_key(self) -> None:
        ref = LightweightTag(b"refs/tags/v1", MISSING_SHA)
        self.assertEqual((b"refs/tags/v1", MISSING_SHA), reference_key(ref))

    def test_not_equal_to_other_types(self) -> None:
        ref = Reference(b"HEAD", MISSING_SHA)
        self.assertNotEqual(ref, (b"HEAD", MISSING_SHA))
        self.assertFalse(ref == "HEAD")
        self.assertTrue(ref != "HEAD")

    def test_immutable(self) -> None:
        ref = Branch(b"refs/heads/main", b"main", MISSING_SHA)
        self.assertRaises(AttributeError, setattr, ref, "_long_name", b"refs/heads/x")
        self.assertRaises(AttributeError, setattr, ref, "extra", 1)


class PointerToTests(TestCase):
    def test_resolve_missing(self) -> None:
        store = MemoryObjectStore()
        self.assertRaises(ObjectMissing, PointerTo(MISSING_SHA, b"commit").resolve, store)
        self.assertEqual(0, store.open_handle_count())

    def test_unknown_kind(self) -> None:
        self.assertRaises(ValueError, PointerTo, MISSING_SHA, b"note")

    def test_eq(self) -> None:
        self.assertEqual(PointerTo(MISSING_SHA, b"tree"), PointerTo(MISSING_SHA, b"tree"))
        self.assertNotEqual(PointerTo(MISSING_SHA, b"tree"), PointerTo(MISSING_SHA, b"blob"))


class MakeRefsTests(TestCase):
    def test_refs_share_store(self) -> None:
        store = MemoryObjectStore()
        refs = make_refs({b"refs/heads/main": MISSING_SHA}, store)
        self.assertIs(store, refs.object_store)
