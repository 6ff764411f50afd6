"""Core configuration.

Contains:
- config.py: default paths, port and the immutable Settings model
"""
