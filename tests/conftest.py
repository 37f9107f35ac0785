"""Shared test fixtures for JSONDb."""

from collections.abc import Generator

import pytest

from jsondb import JSONDb, Table


@pytest.fixture
def memory_db() -> Generator[JSONDb, None, None]:
    """Create a JSONDb instance with SQLite in-memory.

    Every store call opens its own session; SQLite's in-memory database is
    shared through the single pooled connection.
    """
    database = JSONDb("sqlite:///:memory:")
    yield database
    database.close()


@pytest.fixture
def users(memory_db: JSONDb) -> Table:
    """A ``users`` table with three rows."""
    table = memory_db.create("users", {"name": "string", "age": "integer"})
    for name, age in [("Ann", 30), ("Bo", 20), ("Cy", 40)]:
        table.insert({"name": name, "age": age})
    return table


@pytest.fixture
def library(memory_db: JSONDb) -> JSONDb:
    """Authors, books and reviews joined by declared relations."""
    authors = memory_db.create("authors", {"name": "string", "country": "string"})
    books = memory_db.create("books", {"title": "string", "author_id": "integer"})
    reviews = memory_db.create("reviews", {"book_id": "integer", "stars": "integer"})

    authors.insert({"name": "Le Guin", "country": "US"})
    authors.insert({"name": "Lem", "country": "PL"})
    authors.insert({"name": "Tolkien", "country": "UK"})

    books.insert({"title": "Earthsea", "author_id": 1})
    books.insert({"title": "Solaris", "author_id": 2})
    books.insert({"title": "The Dispossessed", "author_id": 1})

    reviews.insert({"book_id": 1, "stars": 5})
    reviews.insert({"book_id": 1, "stars": 4})
    reviews.insert({"book_id": 2, "stars": 3})

    authors.add_relation("has_many", "books", "id", "author_id")
    books.add_relation("belongs_to", "authors", "author_id", "id")
    books.add_relation("has_many", "reviews", "id", "book_id")
    return memory_db
