"""audit/ -- Best-effort, append-only audit trail."""
