# Generic data access
# POST /database accepts one query command and runs it against the tables
# declared in folio/database/tables.py. No table of its own.

"""
Access rules:
- users, revoked_tokens, schema_migrations are never addressable
- profiles, contact_messages need a signed-in user to read
- site_settings is publicly readable without its credential columns;
  only admins can read, filter on or write those columns
- every other table is publicly readable
- insert, update, upsert and delete need the admin or editor role
"""
