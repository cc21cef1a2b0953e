class RepositoryError(Exception):
    pass


class DuplicateTicketNumber(RepositoryError):
    pass
