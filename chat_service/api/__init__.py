"""
HTTP API layer for Chat Service.
"""
