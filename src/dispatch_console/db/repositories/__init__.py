"""
dispatch_console.db.repositories

Document-style access to the five collections. Callers only ever see plain dicts
keyed by wire field names, never ORM rows.
"""
