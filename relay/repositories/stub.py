from __future__ import annotations

from dataclasses import dataclass, field

from relay.domain.errors import DataSourceError
from relay.domain.models import Row


@dataclass
class InMemoryDataSource:
    """Non-network data source with scripted results for skeleton mode and tests.

    ``results`` maps a query text to its rows; ``failures`` maps a query text
    to the error it raises. Unknown queries return an empty row-set.
    """

    results: dict[str, list[Row]] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def execute(self, query: str) -> list[Row]:
        self.calls.append(query)
        error = self.failures.get(query)
        if error is not None:
            if isinstance(error, DataSourceError):
                raise error
            raise DataSourceError(str(error)) from error
        return [dict(row) for row in self.results.get(query, [])]
