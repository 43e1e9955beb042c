class SyncError(Exception):
    """Base error for all command failures"""


class ConfigError(SyncError):
    """Missing or invalid configuration"""


class AggregatorError(SyncError):
    """SnapTrade call failed"""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class NoAccountsError(AggregatorError):
    def __init__(self, user_id: str):
        super().__init__("list_accounts", f"no accounts linked for user {user_id}")


class AccountNotFoundError(AggregatorError):
    def __init__(self, selector: str):
        super().__init__("select_account", f"no linked account matches {selector}")


class PositionParseError(AggregatorError):
    def __init__(self, index: int, message: str):
        self.index = index
        super().__init__("list_positions", f"position #{index} is malformed: {message}")


class SheetsError(SyncError):
    """Google Sheets call failed"""

    def __init__(self, operation: str, range_: str, message: str):
        self.operation = operation
        self.range = range_
        super().__init__(f"{operation} {range_} failed: {message}")
