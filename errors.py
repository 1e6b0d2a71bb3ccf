"""Domain errors raised by the ledger services.

Each error carries a stable ``kind`` so callers can tell failures apart
without parsing messages.
"""


class LedgerError(ValueError):
    kind = "ledger_error"


class MonthNotFound(LedgerError):
    kind = "month_not_found"

    def __init__(self, month_id: int) -> None:
        super().__init__(f"Month {month_id} not found")
        self.month_id = month_id


class MonthExists(LedgerError):
    kind = "month_exists"

    def __init__(self, year: int, month: int) -> None:
        super().__init__(f"Month {year}-{month + 1:02d} already exists")
        self.year = year
        self.month = month


class EntryNotFound(LedgerError):
    kind = "entry_not_found"

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Entry {entry_id} not found")
        self.entry_id = entry_id


class DeletionBlocked(LedgerError):
    kind = "deletion_blocked"


class TemplateNotFound(LedgerError):
    kind = "template_not_found"

    def __init__(self, template_id: int) -> None:
        super().__init__(f"Recurring expense {template_id} not found")
        self.template_id = template_id


class UserNotFound(LedgerError):
    kind = "user_not_found"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class ConcurrentUpdate(LedgerError):
    kind = "concurrent_update"
