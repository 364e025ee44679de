"""
Core module - Settings, logging, errors and caller identity.
"""
