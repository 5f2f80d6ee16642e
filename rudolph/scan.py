"""Paginated scanning over every row that a DynamoDB scan query matches."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

ScanOutput = Mapping[str, Any]


class _Scanner(Protocol):
    def scan(self, scan_input: dict[str, Any]) -> ScanOutput: ...


class ScanService:
    """Walks every page of a scan, handing each page to a callback.

    After a page has been passed to the callback it is passed to ``stop``;
    a true result halts the walk. Otherwise scanning continues until the
    table reports no further pages. Exceptions from the scanner, the
    callback or ``stop`` propagate to the caller.
    """

    def __init__(self, scanner: _Scanner) -> None:
        self._scanner = scanner

    def scan_all(
        self,
        scan_input: Mapping[str, Any],
        callback: Callable[[ScanOutput], None],
        stop: Callable[[ScanOutput], bool],
    ) -> None:
        """Scan all pages starting from scan_input."""
        request = dict(scan_input)
        while True:
            output = self._scanner.scan(dict(request))
            callback(output)
            last_key = output.get("LastEvaluatedKey")
            if not last_key:
                return
            if stop(output):
                return
            request["ExclusiveStartKey"] = last_key


def get_scan_service(scanner: _Scanner) -> ScanService:
    """Return a scan service backed by scanner."""
    return ScanService(scanner)