# errors.py
"""Error kinds raised by the order workflow.

Every error carries a stable ``kind`` string and the HTTP status the API
answers with; ``core.create_app`` registers one handler for all of them.
"""


class BookstoreError(Exception):
    """Base exception for all BookHeaven errors."""

    kind = "bookstore_error"
    status_code = 400


class ValidationError(BookstoreError):
    """Raised when an order request is malformed."""

    kind = "validation_error"


class BookNotFound(BookstoreError):
    """Raised when requested book ids have no catalog entry."""

    kind = "book_not_found"

    def __init__(self, book_ids):
        self.book_ids = sorted(book_ids)
        ids = ", ".join(str(i) for i in self.book_ids)
        super().__init__(f"Book(s) not found: {ids}")


class OrderNotFound(BookstoreError):
    kind = "order_not_found"
    status_code = 404

    def __init__(self, message="Order not found"):
        super().__init__(message)


class InvalidState(BookstoreError):
    """Raised when an order's status does not allow the transition."""

    kind = "invalid_state"

    def __init__(self, order_id, status):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Only pending orders can be cancelled (order #{order_id} is {status})")


class AlreadyFulfilled(BookstoreError):
    kind = "already_fulfilled"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} has already been fulfilled.")


class CatalogIntegrityError(BookstoreError):
    """Raised when a catalog record holds values the pricing rules reject."""

    kind = "catalog_integrity"
    status_code = 500

    def __init__(self, book_id, discount_percent):
        self.book_id = book_id
        self.discount_percent = discount_percent
        super().__init__(
            f"Book {book_id} has discount percent {discount_percent} outside 0-100"
        )


class PersistenceError(BookstoreError):
    """Raised when a transactional write fails; nothing was saved."""

    kind = "persistence_error"
    status_code = 500
