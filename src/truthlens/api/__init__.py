"""HTTP interface for TruthLens."""
