"""Domain errors raised by the service layer.

Messages are free text meant for logs and UI toasts; the code only selects
the HTTP status and the error envelope code.
"""

from shop_boost.core.error_codes import ErrorCode


class DomainException(Exception):
    status_code = 400

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationError(DomainException):
    def __init__(self, message: str):
        super().__init__(ErrorCode.VALIDATION_ERROR, message)


class IntakeNotFoundError(DomainException):
    status_code = 404

    def __init__(self, shop_id: str, intake_id: str):
        super().__init__(
            ErrorCode.NOT_FOUND,
            f"shop_boost_intakes not found ({shop_id}/{intake_id})",
        )
        self.shop_id = shop_id
        self.intake_id = intake_id


class SuggestionNotFoundError(DomainException):
    status_code = 404

    def __init__(self, suggestion_id: str):
        super().__init__(ErrorCode.NOT_FOUND, "Suggestion not found")
        self.suggestion_id = suggestion_id


class ForbiddenError(DomainException):
    status_code = 403

    def __init__(self, message: str):
        super().__init__(ErrorCode.FORBIDDEN, message)


class StorageFetchError(DomainException):
    status_code = 502

    def __init__(self, path: str, reason: str):
        super().__init__(
            ErrorCode.STORAGE_ERROR,
            f"Failed to download CSV: {path} ({reason})",
        )
        self.path = path


class PersistenceError(DomainException):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(ErrorCode.PERSISTENCE_ERROR, message)
