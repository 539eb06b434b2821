"""
Field Operations Kernel

Read-side core for the field-service operations console:
- Record mirrors of backend entities (projects, invoices, tasks, jobs, customers)
- Read-only selectors returning frozen record dataclasses
- Structured JSON logging and typed exceptions
- Deterministic time via injectable clocks
"""

__version__ = "0.1.0"
