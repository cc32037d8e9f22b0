# Services package init
"""
Emuji Backend: Services Layer
================================

What:  Data access sitting between routes (HTTP) and the connection pool.
How:   Services receive the `Database` handle per call and return schema objects.

Service Inventory:
    - EmujiService: insert_vote, list_recent_entries, get_entry_by_uri
"""
