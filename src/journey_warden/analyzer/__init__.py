"""DOM and accessibility analysis."""
