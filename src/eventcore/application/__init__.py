"""Application layer – event sourcing use-case building blocks."""
