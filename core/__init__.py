"""Core module - ERP-neutral cross-cutting services.

Holds observability (structured, correlated logging) shared by the
injection engine, the Temporal activities and the API.

ERP-specific logic (MKG, ...) belongs in /connectors/.
"""

__version__ = "1.0.0"
