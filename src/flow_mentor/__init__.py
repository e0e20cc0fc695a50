# src/flow_mentor/__init__.py

"""Task tracker core with a live-synced chat assistant."""

__version__ = "0.1.0"
