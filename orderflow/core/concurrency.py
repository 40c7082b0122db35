from sqlalchemy.orm import Query


def lock_for_update(query: Query) -> Query:  # type: ignore[type-arg]
    """Apply row-level locking for read-then-write sequences.

    SQLite ignores SELECT ... FOR UPDATE; the version columns on orders and
    clients still turn a lost race into a StaleDataError at flush time.
    """
    return query.with_for_update()
