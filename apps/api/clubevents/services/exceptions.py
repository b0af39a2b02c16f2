class ServiceError(Exception):
    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    pass


class AuthzError(ServiceError):
    pass


class UnauthenticatedError(AuthzError):
    pass


class PermissionDeniedError(AuthzError):
    pass


class ConflictError(ServiceError):
    pass


class ValidationError(ServiceError):
    pass


class DependencyError(ServiceError):
    """A downstream collaborator (email, export target) failed."""
