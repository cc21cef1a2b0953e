class ServiceException(Exception):
    pass


class ValidationError(ServiceException):
    pass


class ResourceNotFound(ServiceException):
    pass


class TicketNotFound(ResourceNotFound):
    pass


class StoreUnavailable(ServiceException):
    pass


class SequencingFailed(ServiceException):
    pass
