class StoreError(Exception):
    pass


class RecordNotFound(StoreError):
    def __init__(self, collection: str, record_id=None):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} #{record_id} not found")


class DependentRecordsExist(StoreError):
    def __init__(self, collection: str, dependent: str, count: int):
        self.collection = collection
        self.dependent = dependent
        self.count = count
        super().__init__(
            f"{collection} still referenced by {count} {dependent} row(s); pass cascade=true to delete them too"
        )


class InvoiceNumberConflict(StoreError):
    pass


class SnapshotError(StoreError):
    """A collection read failed while building a statistics snapshot."""


_INTEGRITY_ERRORS = ("IntegrityError", "UniqueViolationError", "ForeignKeyViolationError")


def is_integrity_error(exc: BaseException) -> bool:
    # sqlite3, asyncpg and psycopg raise unrelated classes for the same thing
    return any(k.__name__ in _INTEGRITY_ERRORS for k in type(exc).__mro__)
