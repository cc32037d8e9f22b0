# Middleware package init
"""
Emuji Backend: Middleware Package
====================================

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

The request ID is set first so the access log line carries it.
"""
