"""
Domain Layer

Query model, rendering and execution.
"""
