"""inventory/ -- Inventory item records and their persistence.

Plain data-access glue behind the protected API routes.
Layer rule: no imports from api/ or auth/. core/ is allowed.
"""
