"""HTTP surface for the carbon metrics engine."""
