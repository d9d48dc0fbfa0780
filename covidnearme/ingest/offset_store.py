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
"""Persists how many bytes of each append-only feed have already been ingested."""
import logging

from covidnearme.common.errors import InvalidOffsetError, OffsetNotFoundError
from covidnearme.firestore.firestore_client import OFFSETS_COLLECTION, FirestoreClient
from covidnearme.ingest.constants import Scope

OFFSET_FIELD = "offset"


class OffsetStore:
    """Reads and writes the per-scope ingest offset in the offsets collection."""

    def __init__(self, firestore_client: FirestoreClient):
        self.firestore_client = firestore_client

    def get(self, scope: Scope) -> int:
        """Returns the last committed byte offset for |scope|.

        Raises:
            OffsetNotFoundError: if the scope has never been initialized.
            InvalidOffsetError: if the stored value is not a non-negative integer.
        """
        document = self.firestore_client.get_document(self._document_path(scope))
        if document is None or OFFSET_FIELD not in document:
            raise OffsetNotFoundError(
                f"No offset found for scope [{scope.value}]. Initialize the "
                f"offset before running a historical ingest."
            )
        offset = document[OFFSET_FIELD]
        # bool is a subclass of int but is never a valid offset
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidOffsetError(
                f"Stored offset for scope [{scope.value}] is invalid: [{offset!r}]"
            )
        return offset

    def commit(self, scope: Scope, offset: int) -> None:
        """Overwrites the offset for |scope|. Must only be called once every row
        before |offset| has been durably written."""
        logging.info("Committing offset [%d] for scope [%s]", offset, scope.value)
        self.firestore_client.set_document(
            self._document_path(scope), {OFFSET_FIELD: offset}, merge=True
        )

    def initialize(self, scope: Scope) -> int:
        """Creates a zero offset for |scope| if none exists yet and returns the
        current offset."""
        try:
            return self.get(scope)
        except OffsetNotFoundError:
            logging.info("Initializing offset for scope [%s]", scope.value)
            self.commit(scope, 0)
            return 0

    @staticmethod
    def _document_path(scope: Scope) -> str:
        return f"{OFFSETS_COLLECTION}/{scope.offset_name}"
