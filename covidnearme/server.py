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
"""Entrypoint for the application."""
import logging
from http import HTTPStatus
from typing import Optional, Tuple

from flask import Flask

from covidnearme.endpoints import get_covid_blueprint
from covidnearme.firestore.firestore_client import (
    FirestoreClient,
    build_firestore_client,
)
from covidnearme.ingest.incremental_fetcher import IncrementalFetcher, build_session
from covidnearme.utils import environment, structured_logging


def create_app(firestore_client: Optional[FirestoreClient] = None) -> Flask:
    """Builds the Flask app. The Firestore client and HTTP session are created
    once here and shared by every request."""
    structured_logging.setup()

    max_workers = environment.get_max_workers()
    if firestore_client is None:
        firestore_client = build_firestore_client()
    fetcher = IncrementalFetcher(build_session(pool_maxsize=max_workers))

    app = Flask(__name__)

    @app.route("/health")
    def health() -> Tuple[str, HTTPStatus]:
        """Used by uptime checks to verify that the workers are serving requests."""
        return "", HTTPStatus.OK

    app.register_blueprint(
        get_covid_blueprint(firestore_client, fetcher, max_workers),
        url_prefix="/covid",
    )
    logging.info("Created app for project [%s]", firestore_client.project_id)
    return app
