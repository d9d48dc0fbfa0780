# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2020 Recidiviz, Inc.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Test-only implementation of the FirestoreClient"""
import copy
import operator
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from covidnearme.firestore.firestore_client import FieldCondition, FirestoreClient

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class FakeFirestoreError(Exception):
    """Raised by the fake for writes that a test has asked to fail."""


class FakeFirestoreClient(FirestoreClient):
    """Test-only implementation of the FirestoreClient, backed by a dict of
    document path to document contents."""

    def __init__(self) -> None:
        self.mutex = threading.Lock()
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.failing_document_paths: Set[str] = set()
        self.set_document_calls: List[str] = []

    @property
    def project_id(self) -> str:
        return "fake-project"

    def test_fail_writes_to(self, document_path: str) -> None:
        self.failing_document_paths.add(document_path)

    def test_add_document(self, document_path: str, data: Dict[str, Any]) -> None:
        with self.mutex:
            self.documents[document_path] = copy.deepcopy(data)

    def collection_contents(self, collection_path: str) -> Dict[str, Dict[str, Any]]:
        """Returns document id to contents for every document in the collection."""
        with self.mutex:
            return {
                document_id: copy.deepcopy(data)
                for document_id, data in self._collection_items(collection_path)
            }

    def get_document(self, document_path: str) -> Optional[Dict[str, Any]]:
        with self.mutex:
            data = self.documents.get(document_path)
            return copy.deepcopy(data) if data is not None else None

    def set_document(
        self, document_path: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        with self.mutex:
            self.set_document_calls.append(document_path)
            if document_path in self.failing_document_paths:
                raise FakeFirestoreError(f"Write to {document_path} failed")
            if merge and document_path in self.documents:
                self.documents[document_path].update(copy.deepcopy(data))
            else:
                self.documents[document_path] = copy.deepcopy(data)

    def stream_collection(
        self, collection_path: str
    ) -> Iterator[Tuple[str, Dict[str, Any]]]:
        with self.mutex:
            items = [
                (document_id, copy.deepcopy(data))
                for document_id, data in self._collection_items(collection_path)
            ]
        yield from items

    def query_collection(
        self,
        collection_path: str,
        conditions: List[FieldCondition],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self.mutex:
            results = [
                copy.deepcopy(data)
                for _, data in self._collection_items(collection_path)
                if all(
                    condition.field_path in data
                    and _OPERATORS[condition.op_string](
                        data[condition.field_path], condition.value
                    )
                    for condition in conditions
                )
            ]
        if order_by:
            results = [data for data in results if order_by in data]
            results.sort(key=lambda data: data[order_by], reverse=descending)
        if limit:
            results = results[:limit]
        return results

    def _collection_items(
        self, collection_path: str
    ) -> List[Tuple[str, Dict[str, Any]]]:
        prefix = f"{collection_path}/"
        items = [
            (path[len(prefix) :], data)
            for path, data in self.documents.items()
            if path.startswith(prefix) and "/" not in path[len(prefix) :]
        ]
        return sorted(items, key=lambda item: item[0])
