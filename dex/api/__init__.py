"""HTTP surface for the exchange core."""
