# src/summary/__init__.py - v1
