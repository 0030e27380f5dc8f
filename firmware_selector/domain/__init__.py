"""
Domain models, selection state and dependency-graph queries.
"""
