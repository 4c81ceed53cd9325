"""Core domain logic for genbatch: batches and their reconciliation."""
