class OrderClientError(Exception):
    """Base class."""


class NotFoundError(OrderClientError):
    pass


class PermissionDeniedError(OrderClientError):
    pass


class ValidationError(OrderClientError):
    pass


class GroupClosedError(OrderClientError):
    """Группа уже отправлена или дедлайн прошёл (при включённой политике)."""


class GatewayError(OrderClientError):
    pass
class DatabaseError(GatewayError):
    pass
