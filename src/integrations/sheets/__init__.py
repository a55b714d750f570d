from src.integrations.sheets.service import SheetsNotifier, get_notifier, sheets_notifier

__all__ = ["SheetsNotifier", "get_notifier", "sheets_notifier"]
