"""Error taxonomy for the data layer. Nothing here is retried; callers own user messaging."""


class BabyLogError(Exception):
    pass


class StoreError(BabyLogError):
    pass


class NotFound(StoreError):
    def __init__(self, collection: str, key):
        super().__init__(f"{collection}: no record with key {key!r}")
        self.collection = collection
        self.key = key


class DuplicateKey(StoreError):
    def __init__(self, collection: str, key):
        super().__init__(f"{collection}: key {key!r} already exists")
        self.collection = collection
        self.key = key


class SchemaError(StoreError):
    """Unknown collection, non-indexed field, missing natural key, or collection outside a transaction."""


class InvalidFormat(BabyLogError):
    """Backup document rejected before the store was touched."""
