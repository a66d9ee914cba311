import sys
from typing import Any


_debug_trace_table = False


def set_debug_trace_table(b: bool):
    global _debug_trace_table
    _debug_trace_table = b


def printf(format: str, *args: Any):
    print(format.format(*args), end="")


def printf_err(format: str, *args: Any):
    # sys.stderr may be replaced after import
    print(format.format(*args), end="", file=sys.stderr)


def trace(format: str, *args: Any):
    if _debug_trace_table:
        printf_err("[table] " + format + "\n", *args)
