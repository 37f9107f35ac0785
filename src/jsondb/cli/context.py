"""Per-invocation state shared by the CLI commands."""

import os
from dataclasses import dataclass, field

from jsondb import JSONDb
from jsondb.core.connection import DEFAULT_URL

URL_ENV_VAR = "JSONDB_URL"


def get_database_url(url: str | None) -> str:
    """``--database`` wins over ``$JSONDB_URL``, which wins over the local file."""
    return url or os.getenv(URL_ENV_VAR) or DEFAULT_URL


@dataclass
class CLIContext:
    """Options from the app callback plus the database a command opens."""

    database_url: str
    echo: bool
    json_output: bool
    _db: JSONDb | None = field(default=None, init=False, repr=False)

    def get_db(self) -> JSONDb:
        """Open the database on first use; commands that fail early never touch it."""
        if self._db is None:
            self._db = JSONDb(self.database_url, echo=self.echo)
        return self._db

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
