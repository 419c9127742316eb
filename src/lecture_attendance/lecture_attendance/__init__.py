"""Lecture attendance engine.

Feature modules (sessions, records, lifecycle, reports) with a thin Flask
controller layer over service and repository layers.
"""
