"""pgconverge: declarative, idempotent PostgreSQL provisioning."""
