"""
Pydantic schemas for API request and response validation.

Request models validate shape and enumerations; ownership and visibility are
decided by the access layer, never by fields the client sends.
"""
