# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2019 Recidiviz, Inc.
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
"""Packaging for the covidnearme ingest and active case service.

The REQUIRED_PACKAGES are the external packages imported by ./covidnearme and
must be manually updated any time a dependency is added to the project.
"""
import setuptools

REQUIRED_PACKAGES = [
    "attrs",
    "Flask",
    "google-api-core",
    "google-cloud-firestore",
    "google-cloud-logging",
    "gunicorn",
    "opentelemetry-api",
    "requests",
    "urllib3",
]

TEST_PACKAGES = [
    "freezegun",
    "pytest",
]

setuptools.setup(
    name="covidnearme",
    version="1.0.0",
    python_requires=">=3.10",
    install_requires=REQUIRED_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
    packages=setuptools.find_packages(include=["covidnearme", "covidnearme.*"]),
)
