# Security package init
"""
DeskBook Backend - Security Layer
===================================

What:  Session verification and field-level protection of personal data.

Module Inventory:
    - field_cipher.py:    AES-SIV / AES-GCM / HMAC primitives keyed per session
    - field_protector.py: Stored-value + lookup-index strategy for sensitive columns
    - session.py:         Bearer JWT verification → SessionContext dependency
    - tokens.py:          Email confirmation tokens
"""
