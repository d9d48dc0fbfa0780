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
"""Client wrapper for interacting with Firestore."""
import abc
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

import attr
from google.cloud import firestore_v1
from google.cloud.firestore_v1 import FieldFilter

from covidnearme.utils import environment

OFFSETS_COLLECTION = "offsets"


@attr.s(frozen=True)
class FieldCondition:
    """A single `where` clause of a collection query."""

    field_path: str = attr.ib()
    op_string: str = attr.ib()
    value: Any = attr.ib()


class FirestoreClient(abc.ABC):
    """Interface for a wrapper around the Google Cloud Firestore API.

    Implementations must be safe to share between threads, since a single
    client is built per process and handed to every worker.
    """

    @property
    @abc.abstractmethod
    def project_id(self) -> str:
        """Returns the GCP ID for the Firestore client."""

    @abc.abstractmethod
    def get_document(self, document_path: str) -> Optional[Dict[str, Any]]:
        """Returns the contents of a Firestore document, or None if it does not exist."""

    @abc.abstractmethod
    def set_document(
        self, document_path: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        """Sets the data for a Firestore document. With |merge|, fields not in
        |data| are left untouched."""

    @abc.abstractmethod
    def stream_collection(
        self, collection_path: str
    ) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Yields (document id, document contents) for every document in a collection."""

    @abc.abstractmethod
    def query_collection(
        self,
        collection_path: str,
        conditions: List[FieldCondition],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Returns the contents of every document in a collection matching all
        |conditions|, optionally ordered and limited."""


class FirestoreClientImpl(FirestoreClient):
    """Base implementation of the FirestoreClient interface."""

    def __init__(self, project_id: Optional[str] = None):
        if not project_id:
            project_id = environment.get_project_id()

        self._project_id = project_id
        self.client = firestore_v1.Client(project=self.project_id)

    @property
    def project_id(self) -> str:
        return self._project_id

    def get_document(self, document_path: str) -> Optional[Dict[str, Any]]:
        snapshot = self.client.document(document_path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set_document(
        self, document_path: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        self.client.document(document_path).set(data, merge=merge)

    def stream_collection(
        self, collection_path: str
    ) -> Iterator[Tuple[str, Dict[str, Any]]]:
        for snapshot in self.client.collection(collection_path).stream():
            yield snapshot.id, snapshot.to_dict() or {}

    def query_collection(
        self,
        collection_path: str,
        conditions: List[FieldCondition],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query: Any = self.client.collection(collection_path)
        for condition in conditions:
            query = query.where(
                filter=FieldFilter(
                    condition.field_path, condition.op_string, condition.value
                )
            )
        if order_by:
            query = query.order_by(
                order_by,
                direction=firestore_v1.Query.DESCENDING
                if descending
                else firestore_v1.Query.ASCENDING,
            )
        if limit:
            query = query.limit(limit)
        return [snapshot.to_dict() or {} for snapshot in query.stream()]


def build_firestore_client() -> FirestoreClient:
    """Builds the process-wide Firestore client. Must not be called from tests,
    which should pass a fake client instead."""
    if environment.in_test():
        raise RuntimeError(
            "May not be called from test, should this be using a fake client?"
        )
    client = FirestoreClientImpl()
    logging.info("Built Firestore client for project [%s]", client.project_id)
    return client
