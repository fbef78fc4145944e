"""HTTP surface for report generation."""
