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
"""Endpoints that trigger COVID ingest and active case calculation.

Each endpoint is meant to be hit on a schedule and is safe to re-invoke.
"""
import logging
from http import HTTPStatus
from typing import Tuple

from flask import Blueprint
from google.api_core import exceptions

from covidnearme.calculator.active_case_calculator import store_active_cases
from covidnearme.common.errors import CovidNearMeError
from covidnearme.firestore.firestore_client import FirestoreClient
from covidnearme.ingest.constants import Scope
from covidnearme.ingest.covid_ingest import ingest_historical, ingest_live
from covidnearme.ingest.incremental_fetcher import IncrementalFetcher
from covidnearme.utils import structured_logging


def _parse_scope(scope_name: str) -> Scope:
    try:
        return Scope(scope_name)
    except ValueError as e:
        raise ValueError(
            f"Unknown scope [{scope_name}], expected one of "
            f"{[scope.value for scope in Scope]}"
        ) from e


def get_covid_blueprint(
    firestore_client: FirestoreClient,
    fetcher: IncrementalFetcher,
    max_workers: int,
) -> Blueprint:
    """Creates a Flask Blueprint for COVID ingest and calculation routes. The
    given client and fetcher are shared by every request."""
    covid_blueprint = Blueprint("covid", __name__)

    @covid_blueprint.route("/ingest_live/<scope_name>", methods=["POST"])
    def _ingest_live(scope_name: str) -> Tuple[str, HTTPStatus]:
        try:
            scope = _parse_scope(scope_name)
        except ValueError as e:
            return str(e), HTTPStatus.BAD_REQUEST

        with structured_logging.scope_context(scope.value):
            try:
                summary = ingest_live(scope, firestore_client, fetcher, max_workers)
            except CovidNearMeError as e:
                logging.error("Live ingest for scope [%s] failed: %s", scope.value, e)
                return str(e), HTTPStatus.INTERNAL_SERVER_ERROR

        logging.info(
            "Live ingest for scope [%s] wrote [%d] rows",
            scope.value,
            summary.rows_written,
        )
        return "", HTTPStatus.OK

    @covid_blueprint.route("/ingest_historical/<scope_name>", methods=["POST"])
    def _ingest_historical(scope_name: str) -> Tuple[str, HTTPStatus]:
        try:
            scope = _parse_scope(scope_name)
        except ValueError as e:
            return str(e), HTTPStatus.BAD_REQUEST

        with structured_logging.scope_context(scope.value):
            try:
                summary = ingest_historical(
                    scope, firestore_client, fetcher, max_workers
                )
            except CovidNearMeError as e:
                logging.error(
                    "Historical ingest for scope [%s] failed: %s", scope.value, e
                )
                return str(e), HTTPStatus.INTERNAL_SERVER_ERROR

        logging.info(
            "Historical ingest for scope [%s] wrote [%d] rows, committed offset [%s]",
            scope.value,
            summary.rows_written,
            summary.committed_offset,
        )
        return "", HTTPStatus.OK

    @covid_blueprint.route("/store_active_cases/<scope_name>", methods=["POST"])
    def _store_active_cases(scope_name: str) -> Tuple[str, HTTPStatus]:
        try:
            scope = _parse_scope(scope_name)
        except ValueError as e:
            return str(e), HTTPStatus.BAD_REQUEST

        # Failures for single entities are logged by store_active_cases and
        # do not fail the request.
        with structured_logging.scope_context(scope.value):
            try:
                store_active_cases(scope, firestore_client, max_workers)
            except exceptions.GoogleAPICallError as e:
                logging.error(
                    "Reading live collection for scope [%s] failed: %s",
                    scope.value,
                    e,
                )
                return str(e), HTTPStatus.INTERNAL_SERVER_ERROR
        return "", HTTPStatus.OK

    return covid_blueprint
