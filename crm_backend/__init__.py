"""Team CRM backend: FastAPI service over Supabase with row-level access rules."""

__version__ = "0.1.0"
