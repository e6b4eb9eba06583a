"""Ledger persistence: in-memory and Supabase-backed stores."""
