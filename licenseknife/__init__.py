"""
Назначение и снятие лицензий Microsoft 365 через Microsoft Graph.
"""

__version__ = "0.1.0"
