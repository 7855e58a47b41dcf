"""Custom exceptions for the pharmacy API."""


class PharmacyError(Exception):
    """Base exception for all pharmacy errors."""

    status_code = 500
    code = "INTERNAL_ERROR"


# --- Authentication / authorization ---


class AuthenticationError(PharmacyError):
    """Raised when a request carries no usable bearer token."""

    status_code = 401
    code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Please authenticate"):
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Invalid credentials")


class PermissionDeniedError(PharmacyError):
    """Raised when the caller's role or ownership does not allow the action."""

    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


# --- Validation ---


class ValidationFailedError(PharmacyError):
    status_code = 400
    code = "VALIDATION_ERROR"


# --- Not found ---


class NotFoundError(PharmacyError):
    status_code = 404
    code = "NOT_FOUND"


class MedicineNotFoundError(NotFoundError):
    """Raised when a medicine ID doesn't exist."""

    code = "MEDICINE_NOT_FOUND"

    def __init__(self, medicine_id: str):
        self.medicine_id = medicine_id
        super().__init__(f"Medicine not found: {medicine_id}")


class OrderNotFoundError(NotFoundError):
    """Raised when an order ID doesn't exist."""

    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


# --- Conflict ---


class ConflictError(PharmacyError):
    status_code = 409
    code = "CONFLICT"


class InsufficientStockError(ConflictError):
    """Raised when a line item asks for more units than are in stock."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, medicine_id: str, name: str, requested: int, available: int):
        self.medicine_id = medicine_id
        self.name = name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {name} (requested {requested}, available {available})"
        )


class InvalidTransitionError(ConflictError):
    """Raised when an order cannot move from its current status to the target."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from {current} to {target}")


class RejectionReasonRequiredError(ConflictError):
    code = "REJECTION_REASON_REQUIRED"

    def __init__(self):
        super().__init__("A rejection reason is required to reject an order")


class EmailAlreadyRegisteredError(ConflictError):
    code = "EMAIL_ALREADY_REGISTERED"

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


# --- Internal ---


class DatabaseError(PharmacyError):
    """Raised when a database operation fails unexpectedly."""

    status_code = 500
    code = "DATABASE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Database operation failed: {operation}")


class DatabaseUnavailableError(PharmacyError):
    """Raised when DATABASE_URL / DATABASE_NAME are not configured."""

    status_code = 503
    code = "DATABASE_UNAVAILABLE"

    def __init__(self):
        super().__init__("Database not available. Set DATABASE_URL and DATABASE_NAME.")
