class DomainException(Exception):
    pass


class TicketAlreadyServed(DomainException):
    pass
