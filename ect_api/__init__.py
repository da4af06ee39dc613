"""
ECT API - entity helper service and its FastAPI REST surface.

This package contains:
- EntityTools helper service (crud.py)
- Per-field-type update policies for bulk node updates (field_updaters.py)
- FastAPI application (main.py)
"""
