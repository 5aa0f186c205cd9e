# src/dispatch/__init__.py - v1
