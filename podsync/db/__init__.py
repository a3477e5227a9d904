"""Database layer for the relational backend."""
