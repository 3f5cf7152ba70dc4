"""CFDI spreadsheet / JSON reconciliation tool.

Counts the data rows of a spreadsheet sheet, stream-decodes every CFDI record
in a directory of JSON / NDJSON files and checks that both totals agree.
"""

__version__ = "0.1.0"
