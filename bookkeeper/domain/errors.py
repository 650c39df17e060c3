class Unauthorized(Exception):
    """No valid session, or the caller's role may not run the operation.

    ``authenticated`` distinguishes a missing session from a role violation so
    the HTTP layer can answer 401 or 403.
    """

    def __init__(self, message: str = "Unauthorized", authenticated: bool = False):
        super().__init__(message)
        self.authenticated = authenticated


class NotFound(LookupError):
    pass


class ValidationFailure(ValueError):
    pass
