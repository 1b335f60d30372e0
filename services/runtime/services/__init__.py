"""
Runtime services: handler registry, execution engine and invocation pipeline.
"""
