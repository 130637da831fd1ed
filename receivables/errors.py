class LedgerError(Exception):
    pass


class LedgerFormatError(LedgerError):
    pass


class SessionNotFoundError(LedgerError):
    pass
