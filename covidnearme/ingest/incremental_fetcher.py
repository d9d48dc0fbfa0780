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
"""Fetches only the bytes of a remote append-only feed that have not yet been
ingested."""
import logging
import re
from http import HTTPStatus
from typing import List, Optional

import attr
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from covidnearme.common.errors import FetchFailedError, MalformedRowError

DEFAULT_TIMEOUT_SECONDS = 60

# Retries are only for connection-level failures; an HTTP error status is
# surfaced to the caller as-is.
CONNECT_RETRIES = 3
RETRY_BACKOFF_FACTOR = 0.5

# e.g. "bytes 100-199/200", "bytes */200", "bytes 100-199/*"
_CONTENT_RANGE_TOTAL_REGEX = re.compile(r"^bytes\s+(?:\*|\d+-\d+)/(\d+|\*)$")


@attr.s(frozen=True)
class FetchResult:
    """The unconsumed tail of a feed, starting at |start_offset|."""

    content: bytes = attr.ib()
    start_offset: int = attr.ib()

    # Total size of the remote resource when it could be determined
    resource_length: Optional[int] = attr.ib()

    # True when the remote resource has not grown past |start_offset|
    no_new_data: bool = attr.ib(default=False)

    @property
    def next_offset(self) -> int:
        """The offset to commit once every row in |content| has been ingested."""
        return self.start_offset + len(self.content)

    def lines(self, skip_header: bool) -> List[str]:
        """Returns the decoded lines of |content|, dropping the first one if
        |skip_header| is set.

        Raises:
            MalformedRowError: if the content is not valid UTF-8.
        """
        try:
            text = self.content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRowError(
                f"Feed content starting at offset [{self.start_offset}] is not "
                f"valid UTF-8: {e}"
            ) from e
        lines = text.splitlines()
        if skip_header:
            return lines[1:]
        return lines


def build_session(pool_maxsize: int) -> requests.Session:
    """Builds the session shared by every fetch in this process."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_maxsize=pool_maxsize,
        max_retries=Retry(
            connect=CONNECT_RETRIES,
            read=0,
            status=0,
            backoff_factor=RETRY_BACKOFF_FACTOR,
        ),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _parse_content_range_total(content_range: Optional[str]) -> Optional[int]:
    if not content_range:
        return None
    match = _CONTENT_RANGE_TOTAL_REGEX.match(content_range.strip())
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


def _truncate_to_last_complete_line(content: bytes) -> bytes:
    """Drops a trailing partial line so an offset never lands in the middle of
    a row. The dropped bytes are fetched again on the next pass."""
    last_newline = content.rfind(b"\n")
    if last_newline == -1:
        return b""
    return content[: last_newline + 1]


class IncrementalFetcher:
    """Retrieves whole feeds or just their unconsumed byte range."""

    def __init__(
        self, session: requests.Session, timeout: int = DEFAULT_TIMEOUT_SECONDS
    ):
        self.session = session
        self.timeout = timeout

    def fetch_full(self, url: str) -> FetchResult:
        """Fetches the whole of |url|. Used for feeds that are replaced rather
        than appended to."""
        response = self._get(url, headers={})
        if response.status_code != HTTPStatus.OK:
            raise FetchFailedError(
                f"Unexpected status [{response.status_code}] fetching {url}"
            )
        logging.info("Fetched [%d] bytes from %s", len(response.content), url)
        return FetchResult(
            content=response.content,
            start_offset=0,
            resource_length=len(response.content),
        )

    def fetch_range(self, url: str, previous_offset: int) -> FetchResult:
        """Fetches the bytes of |url| from |previous_offset| to the end of the
        resource.

        A "range not satisfiable" response means the resource has not grown and
        is returned as a result with |no_new_data| set.

        Raises:
            FetchFailedError: on a transport error or any unexpected status.
        """
        if previous_offset < 0:
            raise ValueError(f"Offset must be non-negative, found [{previous_offset}]")

        response = self._get(url, headers={"Range": f"bytes={previous_offset}-"})

        if response.status_code == HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE:
            resource_length = _parse_content_range_total(
                response.headers.get("Content-Range")
            )
            if resource_length is None:
                resource_length = self._head_content_length(url)
            logging.info(
                "No new data in %s past offset [%d]", url, previous_offset
            )
            return FetchResult(
                content=b"",
                start_offset=previous_offset,
                resource_length=resource_length,
                no_new_data=True,
            )

        if response.status_code == HTTPStatus.PARTIAL_CONTENT:
            content = response.content
            resource_length = _parse_content_range_total(
                response.headers.get("Content-Range")
            )
        elif response.status_code == HTTPStatus.OK:
            # The server ignored the Range header and sent the whole resource.
            content = response.content[previous_offset:]
            resource_length = len(response.content)
        else:
            raise FetchFailedError(
                f"Unexpected status [{response.status_code}] fetching {url} "
                f"from offset [{previous_offset}]"
            )

        content = _truncate_to_last_complete_line(content)
        logging.info(
            "Fetched [%d] new bytes from %s starting at offset [%d]",
            len(content),
            url,
            previous_offset,
        )
        return FetchResult(
            content=content,
            start_offset=previous_offset,
            resource_length=resource_length,
            no_new_data=not content,
        )

    def _get(self, url: str, headers: dict) -> requests.Response:
        try:
            return self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchFailedError(f"Failed to fetch {url}: {e}") from e

    def _head_content_length(self, url: str) -> Optional[int]:
        """Returns the size of |url| reported by a HEAD request, or None if it
        cannot be determined."""
        try:
            response = self.session.head(url, timeout=self.timeout)
        except requests.RequestException as e:
            logging.warning("HEAD request to %s failed: %s", url, e)
            return None
        content_length = response.headers.get("Content-Length")
        if response.status_code != HTTPStatus.OK or not content_length:
            return None
        try:
            return int(content_length)
        except ValueError:
            return None
