class BookmarkServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookmarkServiceError):
    status_code = 400


class AuthRequiredError(BookmarkServiceError):
    status_code = 401

    def __init__(self, message: str = "authentication required"):
        super().__init__(message)


class NotFoundError(BookmarkServiceError):
    status_code = 404

    def __init__(self, message: str = "bookmark not found"):
        super().__init__(message)


class DuplicateError(BookmarkServiceError):
    status_code = 409

    def __init__(self, message: str = "a bookmark with the same url or name exists"):
        super().__init__(message)
