"""Time & attendance accounting package.

Organized by feature modules (schedules, attendance, ledger, edits) with a thin
Flask controller layer on top of service/repository layers.
"""

__version__ = "0.1.0"
