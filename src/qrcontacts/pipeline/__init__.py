"""
Pipeline module for qrcontacts batch processing.

Provides reusable functions for record planning, per-record processing,
output management, and batch orchestration.
"""
