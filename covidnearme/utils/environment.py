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

"""Tools for working with environment variables.

Cloud Functions and App Engine both pass configuration through environment
variables, so this module is the single place that reads them and decides
which environment we are running in.
"""
import os
import sys
from enum import Enum
from typing import Optional

import covidnearme


class GCPEnvironment(Enum):
    STAGING = "staging"
    PRODUCTION = "production"


GCP_ENVIRONMENTS = {env.value for env in GCPEnvironment}

DEFAULT_FIRESTORE_PROJECT_ID = "covid-near-me-296621"

# The Firestore client is thread-safe, but each in-flight write holds a
# connection, so this also bounds the number of concurrent requests we make.
DEFAULT_MAX_WORKERS = 32


def in_gcp() -> bool:
    """Check whether we're currently running on local dev machine or in prod

    Returns:
        True if on hosted GCP instance
        False if not
    """
    return get_gcp_environment() in GCP_ENVIRONMENTS


def get_gcp_environment() -> Optional[str]:
    """Get the environment we are running in, or None if it is not set.

    COVID_NEAR_ME_ENV should never be set locally.
    """
    return os.getenv("COVID_NEAR_ME_ENV")


def get_project_id() -> str:
    """Returns the GCP project that hosts the Firestore database."""
    return os.getenv("GCP_PROJECT") or DEFAULT_FIRESTORE_PROJECT_ID


def get_max_workers() -> int:
    """Returns the size of the worker pool used for per-row and per-entity work."""
    raw_value = os.getenv("COVID_NEAR_ME_MAX_WORKERS")
    if not raw_value:
        return DEFAULT_MAX_WORKERS
    max_workers = int(raw_value)
    if max_workers < 1:
        raise ValueError(
            f"COVID_NEAR_ME_MAX_WORKERS must be a positive integer, found [{raw_value}]"
        )
    return max_workers


def in_test() -> bool:
    """Check whether we are running in a test"""
    # Pytest sets covidnearme.called_from_test in conftest.py
    if not hasattr(covidnearme, "called_from_test"):
        # If it is not set, we may have been called from unittest. Check if unittest has been imported, if it has then
        # we assume we are running from a unittest
        setattr(covidnearme, "called_from_test", "unittest" in sys.modules)
    return getattr(covidnearme, "called_from_test")
