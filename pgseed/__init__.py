"""
Fixture seeding for PostgreSQL test databases.

Seeds tables with explicit primary keys, even when `id` is an identity column:
- identity generation is dropped for the insert and restored as GENERATED ALWAYS
- the identity sequence is moved to max(id) so later inserts continue from there
"""
