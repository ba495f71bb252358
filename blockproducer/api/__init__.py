"""HTTP surface: JWT-guarded endpoint."""
