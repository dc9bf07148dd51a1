"""
HTTP surface: routes, request dependencies, error taxonomy and env config.
"""
