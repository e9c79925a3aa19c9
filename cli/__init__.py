from .app import main
from .report import ErrorRecord, ValidationReport
from .rich_display import (
    console,
    create_error_table,
    print_error_panel,
    print_report,
    setup_logging,
)

__all__ = [
    "main",
    "ErrorRecord",
    "ValidationReport",
    "console",
    "create_error_table",
    "print_error_panel",
    "print_report",
    "setup_logging",
]
